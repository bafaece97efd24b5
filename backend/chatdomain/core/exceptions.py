"""
Exception types shared by the provisioning, registrar and order services.
"""
from typing import Any, Dict, List, Optional


class ChatDomainError(Exception):
    """Base class for all errors raised by this package."""
    pass


class ConfigurationError(ChatDomainError):
    """Raised when required credentials or settings are missing."""

    def __init__(self, missing: List[str]):
        self.missing = list(missing)
        super().__init__(f"Missing required configuration: {', '.join(self.missing)}")


class InvalidDomainError(ChatDomainError, ValueError):
    """Raised when a domain string is not a bare registrable host name."""
    pass


class ProviderError(ChatDomainError):
    """
    Fatal failure reported by an external provider.

    The provider's own messages are kept verbatim in ``messages``.
    """

    def __init__(
        self,
        provider: str,
        operation: str,
        messages: List[str],
        status_code: Optional[int] = None,
    ):
        self.provider = provider
        self.operation = operation
        self.messages = list(messages)
        self.status_code = status_code
        detail = ", ".join(self.messages) or "unknown error"
        super().__init__(f"{provider} {operation} failed: {detail}")


class CloudflareAPIError(ProviderError):
    """Error envelope returned by the Cloudflare v4 API."""

    def __init__(
        self,
        operation: str,
        errors: List[Dict[str, Any]],
        status_code: Optional[int] = None,
    ):
        self.errors = list(errors)
        messages = [str(error.get("message", "")) for error in self.errors]
        super().__init__("cloudflare", operation, messages, status_code)

    @property
    def codes(self) -> List[int]:
        return [error["code"] for error in self.errors if "code" in error]


class RegistrarAPIError(ProviderError):
    """Error returned by the Name.com API."""

    def __init__(self, operation: str, messages: List[str], status_code: Optional[int] = None):
        super().__init__("namecom", operation, messages, status_code)


class LookupInconsistencyError(ProviderError):
    """
    The provider reported a duplicate but the existing resource could not be found.

    Usually a race or propagation delay; surfaced instead of retried.
    """
    pass


class WebhookSignatureError(ChatDomainError):
    """Raised when a Stripe webhook payload fails signature verification."""
    pass


class OrderNotFoundError(ChatDomainError):
    """Raised when a domain order does not exist."""
    pass


class OrderStateError(ChatDomainError):
    """Raised when an order is not in a state that allows the requested action."""
    pass
