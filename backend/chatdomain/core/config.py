import os
import logging
import json
from pathlib import Path
from typing import List, Optional, Union
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

# Configure logging
logger = logging.getLogger(__name__)

# Load environment variables from .env file if it exists
load_dotenv()

# Check for secrets file
SECRETS_FILE = os.getenv("SECRETS_FILE", "")
if SECRETS_FILE and Path(SECRETS_FILE).exists():
    try:
        with open(SECRETS_FILE, "r") as f:
            secrets_data = json.load(f)
            for key, value in secrets_data.items():
                if key not in os.environ:
                    os.environ[key] = str(value)
        logger.info(f"Loaded secrets from {SECRETS_FILE}")
    except (OSError, ValueError) as e:
        logger.error(f"Error loading secrets file: {e}")


class Settings(BaseSettings):
    """Application settings.

    Values come from environment variables or a .env file. Provider credentials
    are optional here; they are checked when a provisioner or registrar client
    is built so the failure names exactly what is missing.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # API Configuration
    API_PREFIX: str = "/api"
    PROJECT_NAME: str = "ChatDomain"
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    DEBUG: bool = False

    # CORS
    CORS_ORIGINS: List[str] = ["*"]

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> Union[List[str], str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",")]
        elif isinstance(v, (list, str)):
            return v
        raise ValueError(v)

    # Cloudflare
    CLOUDFLARE_API_TOKEN: Optional[str] = None
    CLOUDFLARE_ACCOUNT_ID: Optional[str] = None
    CLOUDFLARE_API_URL: str = "https://api.cloudflare.com/client/v4"
    CLOUDFLARE_WORKER_SCRIPT: str = "chat-domain-router"
    # Proxied traffic is answered by the Worker route, never by this address
    PLACEHOLDER_ORIGIN_IP: str = "192.0.2.1"

    # Name.com
    NAMECOM_USERNAME: Optional[str] = None
    NAMECOM_API_TOKEN: Optional[str] = None
    NAMECOM_API_URL: str = "https://api.name.com/v4"

    # Outbound calls
    HTTP_TIMEOUT_SECONDS: float = 30.0
    PROVISIONING_MAX_ATTEMPTS: int = 3

    # Stripe Configuration
    STRIPE_API_KEY: Optional[str] = None
    STRIPE_WEBHOOK_SECRET: Optional[str] = None

    # Admin endpoints
    ADMIN_API_KEY: Optional[str] = None

    # Monitoring Configuration
    ENABLE_METRICS: bool = True

    @field_validator("STRIPE_WEBHOOK_SECRET")
    @classmethod
    def validate_webhook_secret(cls, v: Optional[str]) -> Optional[str]:
        # In production, this setting is required
        if os.getenv("ENVIRONMENT", "").lower() == "production" and not v:
            logger.warning("Missing STRIPE_WEBHOOK_SECRET in production environment")
        return v


settings = Settings()
