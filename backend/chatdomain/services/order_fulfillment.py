"""
Order fulfillment for custom domain purchases.

Turns a paid domain order into a registered, provisioned domain: registrar
purchase first, then ``DomainProvisioner.provision_domain``. Failures are
recorded on the order with the provider's message and re-raised.
"""

import logging
from datetime import datetime
from typing import Any, Mapping, Optional

from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential
from tenacity.wait import wait_base

from chatdomain.core.exceptions import (
    LookupInconsistencyError,
    OrderNotFoundError,
    OrderStateError,
    ProviderError,
)
from chatdomain.db.repositories import DomainOrderRepository
from chatdomain.models.domain import DelegationStatus, ProvisionResult
from chatdomain.models.order import DnsStatus, DomainOrder, OrderStatus
from chatdomain.services.domain_service.registrars.base_registrar import BaseRegistrar
from chatdomain.services.domains.delegation import DelegationChecker
from chatdomain.services.domains.provisioner import DomainProvisioner
from chatdomain.utils.metrics import order_events

logger = logging.getLogger(__name__)

FULFILLED_STATUSES = {OrderStatus.REGISTERING, OrderStatus.REGISTERED}


def _is_retryable(error: BaseException) -> bool:
    # A duplicate that cannot be looked up needs a human, not another attempt
    return isinstance(error, ProviderError) and not isinstance(error, LookupInconsistencyError)


def _parse_expire_date(raw: Optional[str]) -> Optional[datetime]:
    if not raw:
        return None
    try:
        return datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        logger.warning(f"Unparseable registrar expiry date: {raw}")
        return None


def _order_id_from(stripe_object: Mapping[str, Any]) -> Optional[int]:
    metadata = stripe_object.get("metadata") or {}
    raw = metadata.get("orderId")
    if raw is None:
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


class OrderFulfillmentService:
    """
    Drives a domain order from payment to a provisioned domain.
    """

    def __init__(
        self,
        orders: DomainOrderRepository,
        registrar: BaseRegistrar,
        provisioner: DomainProvisioner,
        delegation_checker: Optional[DelegationChecker] = None,
        max_attempts: int = 3,
        retry_wait: Optional[wait_base] = None,
    ):
        self.orders = orders
        self.registrar = registrar
        self.provisioner = provisioner
        self.delegation_checker = delegation_checker or DelegationChecker()
        self.max_attempts = max_attempts
        self.retry_wait = retry_wait or wait_exponential(multiplier=1, min=2, max=30)

    async def get_order(self, order_id: int) -> DomainOrder:
        order = await self.orders.get(order_id)
        if order is None:
            raise OrderNotFoundError(f"Order not found: {order_id}")
        return order

    async def handle_payment_succeeded(self, payment_intent: Mapping[str, Any]) -> Optional[DomainOrder]:
        """
        Fulfill the order referenced by a succeeded payment intent.

        Args:
            payment_intent: Stripe PaymentIntent object; ``metadata.orderId``
                names the order

        Returns:
            The fulfilled order, or None when the event was ignored
        """
        order_id = _order_id_from(payment_intent)
        if order_id is None:
            logger.error("Payment intent missing orderId in metadata")
            order_events.labels(event_type="payment_succeeded", outcome="ignored").inc()
            return None

        order = await self.orders.get(order_id)
        if order is None:
            logger.error(f"Order not found: {order_id}")
            order_events.labels(event_type="payment_succeeded", outcome="ignored").inc()
            return None

        if order.status == OrderStatus.REGISTERED and order.dns_status == DnsStatus.ERROR:
            # Redelivery after a failed provisioning run
            logger.info(f"Order {order_id} registered but DNS setup failed, provisioning again")
            await self.provision(order)
            order_events.labels(event_type="payment_succeeded", outcome="fulfilled").inc()
            return await self.get_order(order_id)

        if order.status in FULFILLED_STATUSES:
            # Stripe delivers events at least once
            logger.info(f"Order {order_id} already {order.status.value}, ignoring repeated payment event")
            order_events.labels(event_type="payment_succeeded", outcome="duplicate").inc()
            return order

        amount = payment_intent.get("amount")
        if amount != order.total_price:
            logger.error(
                f"Payment amount mismatch for order {order_id}. Expected: {order.total_price}, Got: {amount}"
            )
            order_events.labels(event_type="payment_succeeded", outcome="amount_mismatch").inc()
            return None

        order = await self.orders.update(order_id, {
            "status": OrderStatus.PAYMENT_COMPLETED,
            "stripe_payment_intent_id": payment_intent.get("id"),
        })

        order = await self.register(order)
        await self.provision(order)

        order_events.labels(event_type="payment_succeeded", outcome="fulfilled").inc()
        return await self.get_order(order_id)

    async def register(self, order: DomainOrder) -> DomainOrder:
        """Purchase the order's domain at the registrar."""
        order = await self.orders.update(order.id, {"status": OrderStatus.REGISTERING})

        if order.registrar_purchase_price is not None:
            purchase_price = order.registrar_purchase_price
        else:
            purchase_price = order.domain_price / 100

        logger.info(f"Triggering domain registration for order {order.id}: {order.domain}")
        try:
            registration = await self.registrar.register_domain(
                order.domain,
                purchase_price=purchase_price,
                years=order.years,
            )
        except ProviderError as e:
            logger.error(f"Failed to register {order.domain} for order {order.id}: {str(e)}")
            await self.orders.update(order.id, {
                "status": OrderStatus.FAILED,
                "last_error_message": str(e),
            })
            raise

        logger.info(f"Domain registered successfully: {order.domain}")
        return await self.orders.update(order.id, {
            "status": OrderStatus.REGISTERED,
            "registrar_order_id": str(registration.get("order_id") or f"namecom_{order.id}"),
            "expiration_date": _parse_expire_date(registration.get("expire_date")),
            "last_error_message": None,
        })

    async def provision(self, order: DomainOrder) -> ProvisionResult:
        """
        Provision DNS for a registered order and record the outcome.

        Raises:
            ChatDomainError: Whatever the provisioner raised, after it was
                stored on the order as the DNS error message
        """
        await self.orders.update(order.id, {"dns_status": DnsStatus.CONFIGURING})

        try:
            result = await self.provisioner.provision_domain(order.domain)
        except Exception as e:
            await self.orders.update(order.id, {
                "dns_status": DnsStatus.ERROR,
                "dns_error_message": str(e),
            })
            raise

        await self._store_result(order.id, result)
        return result

    async def retry_provisioning(self, order_id: int) -> ProvisionResult:
        """
        Re-run provisioning for a registered order.

        Provider errors are retried with exponential backoff; the provisioner
        is idempotent so every attempt starts from scratch.

        Raises:
            OrderNotFoundError: If the order does not exist
            OrderStateError: If the domain has not been registered
        """
        order = await self.get_order(order_id)
        if order.status != OrderStatus.REGISTERED:
            raise OrderStateError(
                f"Order {order_id} is {order.status.value}; only registered orders can be provisioned"
            )

        await self.orders.update(order.id, {"dns_status": DnsStatus.CONFIGURING})

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.max_attempts),
                wait=self.retry_wait,
                retry=retry_if_exception(_is_retryable),
                reraise=True,
            ):
                with attempt:
                    if attempt.retry_state.attempt_number > 1:
                        logger.warning(
                            f"Retrying provisioning for {order.domain} "
                            f"(attempt {attempt.retry_state.attempt_number}/{self.max_attempts})"
                        )
                    result = await self.provisioner.provision_domain(order.domain)
        except Exception as e:
            await self.orders.update(order.id, {
                "dns_status": DnsStatus.ERROR,
                "dns_error_message": str(e),
            })
            raise

        await self._store_result(order.id, result)
        return result

    async def refresh_delegation(self, order_id: int) -> DelegationStatus:
        """Check public DNS and mark the order active once delegation is visible."""
        order = await self.get_order(order_id)
        if not order.nameservers:
            raise OrderStateError(f"Order {order_id} has not been provisioned yet")

        status = await self.delegation_checker.check(order.domain, order.nameservers)
        if status.propagated and order.dns_status != DnsStatus.ACTIVE:
            await self.orders.update(order.id, {"dns_status": DnsStatus.ACTIVE})
            logger.info(f"Nameserver delegation live for {order.domain}")
        return status

    async def handle_payment_failed(self, payment_intent: Mapping[str, Any]) -> Optional[DomainOrder]:
        order_id = _order_id_from(payment_intent)
        if order_id is None:
            logger.error("Payment intent missing orderId in metadata")
            return None

        try:
            order = await self.orders.update(order_id, {"status": OrderStatus.PAYMENT_FAILED})
        except OrderNotFoundError:
            logger.error(f"Order not found: {order_id}")
            return None

        logger.info(f"Payment failed for order: {order_id}")
        order_events.labels(event_type="payment_failed", outcome="recorded").inc()
        return order

    async def handle_refund(self, charge: Mapping[str, Any]) -> Optional[DomainOrder]:
        order_id = _order_id_from(charge)
        if order_id is None:
            logger.info(f"Refunded charge {charge.get('id')} is not linked to a domain order")
            return None

        try:
            order = await self.orders.update(order_id, {"status": OrderStatus.REFUNDED})
        except OrderNotFoundError:
            logger.error(f"Order not found: {order_id}")
            return None

        logger.info(f"Charge refunded for order: {order_id}")
        order_events.labels(event_type="charge_refunded", outcome="recorded").inc()
        return order

    async def _store_result(self, order_id: int, result: ProvisionResult) -> None:
        await self.orders.update(order_id, {
            "dns_status": DnsStatus.PROPAGATING,
            "cloudflare_zone_id": result.zone_id,
            "cloudflare_route_id": result.route_id,
            "nameservers": list(result.nameservers),
            "dns_error_message": None,
        })
