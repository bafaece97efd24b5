"""
Service wiring and FastAPI dependencies.

Services are built once at startup and kept on ``app.state``; building them
is where missing provider credentials are detected.
"""

import logging
from typing import Optional

import httpx
from fastapi import FastAPI, Request

from chatdomain.core.config import Settings
from chatdomain.db.repositories import DomainOrderRepository, InMemoryDomainOrderRepository
from chatdomain.services.billing import StripeWebhookHandler
from chatdomain.services.domains.delegation import DelegationChecker
from chatdomain.services.domains.provisioner import DomainProvisioner
from chatdomain.services.order_fulfillment import OrderFulfillmentService

# Configure logging
logger = logging.getLogger(__name__)


def init_services(
    app: FastAPI,
    settings: Settings,
    orders: Optional[DomainOrderRepository] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    delegation_checker: Optional[DelegationChecker] = None,
) -> None:
    """
    Build the provisioning services and attach them to the app.

    Raises:
        ConfigurationError: If Cloudflare or Name.com credentials are missing
    """
    provisioner = DomainProvisioner.from_settings(settings, transport=transport)
    fulfillment = OrderFulfillmentService(
        orders=orders or InMemoryDomainOrderRepository(),
        registrar=provisioner.registrar,
        provisioner=provisioner,
        delegation_checker=delegation_checker,
        max_attempts=settings.PROVISIONING_MAX_ATTEMPTS,
    )

    app.state.settings = settings
    app.state.provisioner = provisioner
    app.state.fulfillment = fulfillment
    app.state.webhook_handler = StripeWebhookHandler(fulfillment, settings.STRIPE_WEBHOOK_SECRET)
    logger.info("Provisioning services initialized")


def get_provisioner(request: Request) -> DomainProvisioner:
    return request.app.state.provisioner


def get_fulfillment_service(request: Request) -> OrderFulfillmentService:
    return request.app.state.fulfillment


def get_webhook_handler(request: Request) -> StripeWebhookHandler:
    return request.app.state.webhook_handler
