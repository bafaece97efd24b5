"""
Structured logging setup.

Modules log through ``logging.getLogger(__name__)``; this module decides how
those records are rendered: one JSON object per line in production, a plain
text line in development.
"""
import json
import logging
import os
import sys
import traceback
from datetime import datetime, timezone
from typing import Any, Dict, Optional

# Attributes every LogRecord has; anything else was passed through ``extra``
_RESERVED = set(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}


class JsonFormatter(logging.Formatter):
    """
    Format log records as JSON.
    """

    def __init__(self, service_name: str, include_caller: bool = True):
        super().__init__()
        self.service_name = service_name
        self.include_caller = include_caller

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.service_name,
        }

        # Include exception info if available
        if record.exc_info:
            exc_type, exc_value, _ = record.exc_info
            log_data["exception"] = {
                "type": exc_type.__name__ if exc_type else None,
                "message": str(exc_value),
                "traceback": "".join(traceback.format_exception(*record.exc_info)),
            }

        # Include caller info if enabled
        if self.include_caller:
            log_data["caller"] = {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            }

        # Include extra fields
        for key, value in vars(record).items():
            if key not in _RESERVED and key not in log_data:
                log_data[key] = value

        return json.dumps(log_data, default=str)


def configure_logging(
    service_name: str = "chatdomain",
    log_level: Optional[str] = None,
    development_mode: Optional[bool] = None,
) -> logging.Logger:
    """
    Install a single stdout handler on the root logger.

    Args:
        service_name: Name of the service, added to every JSON record
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        development_mode: Plain text output instead of JSON

    Returns:
        The configured root logger
    """
    # Get settings from environment variables if not provided
    if log_level is None:
        log_level = os.getenv("LOG_LEVEL", "INFO")

    if development_mode is None:
        development_mode = os.getenv("ENVIRONMENT", "development") == "development"

    root = logging.getLogger()
    root.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    # Remove existing handlers
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    if development_mode:
        handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))
    else:
        handler.setFormatter(JsonFormatter(service_name))
    root.addHandler(handler)

    return root
