"""
Admin authentication for operator endpoints.

Operator endpoints (manual provisioning, order retries) are called by staff
tooling, not end users; they are guarded by a shared key sent in the
``X-Admin-Key`` header.
"""

import hmac
import logging
from typing import Optional

from fastapi import Header, HTTPException, Request

logger = logging.getLogger(__name__)


async def require_admin(
    request: Request,
    x_admin_key: Optional[str] = Header(None),
) -> None:
    """
    Reject the request unless it carries the configured admin key.

    Raises:
        HTTPException: 503 if no admin key is configured, 401 if the key is
            missing or wrong
    """
    expected = request.app.state.settings.ADMIN_API_KEY
    if not expected:
        logger.warning("ADMIN_API_KEY not set. Admin endpoints are disabled.")
        raise HTTPException(status_code=503, detail="Admin API is not configured")

    if not x_admin_key or not hmac.compare_digest(x_admin_key, expected):
        raise HTTPException(status_code=401, detail="Invalid admin key")
