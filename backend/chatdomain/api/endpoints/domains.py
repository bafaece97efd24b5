"""
Domain provisioning API endpoints.

Operator endpoints for checking configuration, provisioning a domain by
hand and retrying failed orders. All of them require the admin key.
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Path, Request

from chatdomain.api.dependencies import get_fulfillment_service, get_provisioner
from chatdomain.core.auth import require_admin
from chatdomain.core.exceptions import (
    InvalidDomainError,
    OrderNotFoundError,
    OrderStateError,
    ProviderError,
)
from chatdomain.services.domains.provisioner import DomainProvisioner
from chatdomain.services.order_fulfillment import OrderFulfillmentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/domains", tags=["domains"], dependencies=[Depends(require_admin)])


@router.get("/config-status", response_model=Dict[str, Any])
async def config_status(
    request: Request,
    provisioner: DomainProvisioner = Depends(get_provisioner),
):
    """
    Report whether the provider credentials are accepted.
    """
    settings = request.app.state.settings
    try:
        cloudflare_ok = await provisioner.dns_provider.verify_token()
    except ProviderError as e:
        logger.warning(f"Cloudflare token check failed: {str(e)}")
        cloudflare_ok = False

    try:
        namecom_user = await provisioner.registrar.verify_connection()
    except ProviderError as e:
        logger.warning(f"Name.com connection check failed: {str(e)}")
        namecom_user = None

    return {
        "cloudflare": {"configured": True, "token_active": cloudflare_ok},
        "namecom": {"configured": True, "connected": namecom_user is not None, "username": namecom_user},
        "worker_script": settings.CLOUDFLARE_WORKER_SCRIPT,
    }


@router.post("/{domain}/provision", response_model=Dict[str, Any])
async def provision_domain(
    domain: str = Path(...),
    provisioner: DomainProvisioner = Depends(get_provisioner),
):
    """
    Provision a domain directly. Safe to repeat.
    """
    try:
        result = await provisioner.provision_domain(domain)
    except InvalidDomainError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ProviderError as e:
        raise HTTPException(status_code=502, detail=str(e))

    return result.to_response()


@router.get("/orders/{order_id}", response_model=Dict[str, Any])
async def get_order(
    order_id: int = Path(...),
    fulfillment: OrderFulfillmentService = Depends(get_fulfillment_service),
):
    """
    Get the fulfillment state of a domain order.
    """
    try:
        order = await fulfillment.get_order(order_id)
    except OrderNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return order.model_dump(mode="json")


@router.post("/orders/{order_id}/provision", response_model=Dict[str, Any])
async def retry_order_provisioning(
    order_id: int = Path(...),
    fulfillment: OrderFulfillmentService = Depends(get_fulfillment_service),
):
    """
    Re-run provisioning for a registered order whose DNS setup failed.
    """
    try:
        result = await fulfillment.retry_provisioning(order_id)
    except OrderNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except OrderStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except InvalidDomainError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ProviderError as e:
        raise HTTPException(status_code=502, detail=str(e))

    return result.to_response()


@router.post("/orders/{order_id}/delegation-check", response_model=Dict[str, Any])
async def check_order_delegation(
    order_id: int = Path(...),
    fulfillment: OrderFulfillmentService = Depends(get_fulfillment_service),
):
    """
    Check whether public DNS already delegates the order's domain to its zone.
    """
    try:
        status = await fulfillment.refresh_delegation(order_id)
    except OrderNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except OrderStateError as e:
        raise HTTPException(status_code=409, detail=str(e))

    return status.model_dump()
