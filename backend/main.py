import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from chatdomain.api.api import api_router
from chatdomain.api.dependencies import init_services
from chatdomain.core.config import Settings, settings as default_settings
from chatdomain.utils.logging.structured import configure_logging

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, **service_overrides) -> FastAPI:
    """
    Create the FastAPI application.

    Provider credentials are checked during startup; a missing credential
    stops the app before it serves any request.
    """
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting ChatDomain API")
        init_services(app, settings, **service_overrides)
        yield
        logger.info("Stopping ChatDomain API")

    app = FastAPI(
        title="ChatDomain API",
        description="Custom domain provisioning for branded chat widgets",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router, prefix=settings.API_PREFIX)

    @app.get("/health")
    def health_check():
        return {"status": "healthy"}

    if settings.ENABLE_METRICS:
        @app.get("/metrics")
        def metrics():
            return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    return app


configure_logging(log_level=default_settings.LOG_LEVEL, development_mode=default_settings.ENVIRONMENT == "development")
app = create_app()


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=default_settings.DEBUG)
