"""
Stripe webhook handling for domain purchases.
"""

import logging
from typing import Any, Dict, Optional

import stripe

from chatdomain.core.config import settings
from chatdomain.core.exceptions import ConfigurationError, WebhookSignatureError
from chatdomain.services.order_fulfillment import OrderFulfillmentService

logger = logging.getLogger(__name__)

# Initialize Stripe with API key
stripe.api_key = settings.STRIPE_API_KEY


class StripeWebhookHandler:
    """
    Verifies Stripe webhook payloads and routes payment events to order fulfillment.
    """

    def __init__(self, fulfillment: OrderFulfillmentService, webhook_secret: Optional[str] = None):
        self.fulfillment = fulfillment
        self.webhook_secret = webhook_secret

    def construct_event(self, payload: bytes, signature: Optional[str]) -> stripe.Event:
        """
        Verify a webhook payload against its ``Stripe-Signature`` header.

        Args:
            payload: Raw request body
            signature: Value of the Stripe-Signature header

        Returns:
            The verified event

        Raises:
            ConfigurationError: If no webhook secret is configured
            WebhookSignatureError: If the signature or payload is invalid
        """
        if not self.webhook_secret:
            raise ConfigurationError(["STRIPE_WEBHOOK_SECRET"])
        if not signature:
            raise WebhookSignatureError("Missing Stripe-Signature header")

        try:
            return stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except stripe.SignatureVerificationError as e:
            logger.error(f"Webhook signature verification failed: {str(e)}")
            raise WebhookSignatureError("Invalid webhook signature") from e
        except ValueError as e:
            logger.error(f"Webhook payload could not be parsed: {str(e)}")
            raise WebhookSignatureError("Invalid webhook payload") from e

    async def dispatch(self, event: Any) -> Dict[str, Any]:
        """
        Route a verified event to the matching order handler.

        Args:
            event: Stripe event (``type`` and ``data.object``)

        Returns:
            Summary of what was done with the event
        """
        event_type = event["type"]
        obj = event["data"]["object"]
        logger.info(f"Received Stripe event {event.get('id')} ({event_type})")

        if event_type == "payment_intent.succeeded":
            order = await self.fulfillment.handle_payment_succeeded(obj)
        elif event_type == "payment_intent.payment_failed":
            order = await self.fulfillment.handle_payment_failed(obj)
        elif event_type == "charge.refunded":
            order = await self.fulfillment.handle_refund(obj)
        else:
            logger.info(f"Unhandled event type: {event_type}")
            return {"received": True, "handled": False}

        return {
            "received": True,
            "handled": order is not None,
            "order_id": order.id if order else None,
            "status": order.status.value if order else None,
        }
