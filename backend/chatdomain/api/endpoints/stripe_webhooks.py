"""
Stripe webhook endpoint for domain purchase payments.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request

from chatdomain.api.dependencies import get_webhook_handler
from chatdomain.core.exceptions import ConfigurationError, ProviderError, WebhookSignatureError
from chatdomain.services.billing import StripeWebhookHandler

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@router.post("/stripe", response_model=Dict[str, Any])
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None),
    handler: StripeWebhookHandler = Depends(get_webhook_handler),
):
    """
    Receive a Stripe event.

    A provider failure during fulfillment answers 500 so Stripe redelivers
    the event; the order already carries the error message.
    """
    payload = await request.body()

    try:
        event = handler.construct_event(payload, stripe_signature)
    except WebhookSignatureError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ConfigurationError as e:
        logger.error(str(e))
        raise HTTPException(status_code=503, detail="Webhook endpoint is not configured")

    try:
        return await handler.dispatch(event)
    except ProviderError as e:
        logger.error(f"Fulfillment failed for event {event['id']}: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Fulfillment error: {str(e)}")
