import hashlib
import hmac
import json
import time

import pytest
from unittest.mock import AsyncMock, MagicMock

from chatdomain.core.exceptions import ConfigurationError, WebhookSignatureError
from chatdomain.models.order import DomainOrder, OrderStatus
from chatdomain.services.billing import StripeWebhookHandler

SECRET = "whsec_test_secret"


@pytest.fixture
def fulfillment():
    service = MagicMock()
    service.handle_payment_succeeded = AsyncMock()
    service.handle_payment_failed = AsyncMock()
    service.handle_refund = AsyncMock()
    return service


def signed(payload: dict, secret: str = SECRET):
    body = json.dumps(payload)
    timestamp = int(time.time())
    signature = hmac.new(secret.encode(), f"{timestamp}.{body}".encode(), hashlib.sha256).hexdigest()
    return body.encode(), f"t={timestamp},v1={signature}"


def test_construct_event_verifies_signature(fulfillment):
    body, signature = signed({"id": "evt_1", "object": "event", "type": "charge.refunded", "data": {"object": {}}})

    event = StripeWebhookHandler(fulfillment, SECRET).construct_event(body, signature)

    assert event["id"] == "evt_1"
    assert event["type"] == "charge.refunded"


def test_construct_event_rejects_tampered_payload(fulfillment):
    body, signature = signed({"id": "evt_1", "object": "event", "type": "charge.refunded", "data": {"object": {}}})

    with pytest.raises(WebhookSignatureError):
        StripeWebhookHandler(fulfillment, SECRET).construct_event(body.replace(b"evt_1", b"evt_2"), signature)


def test_construct_event_requires_signature_header(fulfillment):
    with pytest.raises(WebhookSignatureError):
        StripeWebhookHandler(fulfillment, SECRET).construct_event(b"{}", None)


def test_construct_event_requires_secret(fulfillment):
    with pytest.raises(ConfigurationError) as exc_info:
        StripeWebhookHandler(fulfillment, None).construct_event(b"{}", "t=1,v1=abc")

    assert exc_info.value.missing == ["STRIPE_WEBHOOK_SECRET"]


@pytest.mark.asyncio
async def test_dispatch_routes_events(fulfillment):
    order = DomainOrder(id=3, user_id=1, domain="example.xyz", domain_price=100, status=OrderStatus.REFUNDED)
    fulfillment.handle_refund.return_value = order
    handler = StripeWebhookHandler(fulfillment, SECRET)

    result = await handler.dispatch({
        "id": "evt_1", "type": "charge.refunded", "data": {"object": {"id": "ch_1", "metadata": {"orderId": "3"}}},
    })

    assert result == {"received": True, "handled": True, "order_id": 3, "status": "refunded"}
    fulfillment.handle_refund.assert_awaited_once_with({"id": "ch_1", "metadata": {"orderId": "3"}})
    fulfillment.handle_payment_succeeded.assert_not_awaited()


@pytest.mark.asyncio
async def test_dispatch_ignored_event(fulfillment):
    fulfillment.handle_payment_failed.return_value = None
    handler = StripeWebhookHandler(fulfillment, SECRET)

    result = await handler.dispatch({"id": "evt_2", "type": "payment_intent.payment_failed", "data": {"object": {}}})

    assert result == {"received": True, "handled": False, "order_id": None, "status": None}
