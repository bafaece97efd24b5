"""
Main API router for the ChatDomain backend.

This module sets up the main API router and includes all endpoint routers.
"""
import logging
from fastapi import APIRouter

from chatdomain.api.endpoints import domains, stripe_webhooks

logger = logging.getLogger(__name__)

# Create main API router
api_router = APIRouter()

# Include all endpoint routers
api_router.include_router(stripe_webhooks.router)
api_router.include_router(domains.router)
