"""
HTTP client utilities for calls to external provider APIs.
"""
import logging
import time
from typing import Any, Dict, Optional
from contextlib import asynccontextmanager

import httpx
from pydantic import BaseModel

from chatdomain.utils.metrics import provider_call_duration

logger = logging.getLogger(__name__)


class HttpResponse(BaseModel):
    """Model for HTTP response data."""
    status_code: int
    content: Any
    headers: Dict[str, str] = {}

    @property
    def is_success(self) -> bool:
        """Check if the response status code indicates success."""
        return 200 <= self.status_code < 300

    @property
    def is_error(self) -> bool:
        """Check if the response status code indicates an error."""
        return not self.is_success


class HttpClientConfig(BaseModel):
    """Configuration for HTTP client."""
    model_config = {"arbitrary_types_allowed": True}

    base_url: str = ""
    headers: Dict[str, str] = {}
    timeout: float = 30.0
    verify: bool = True
    follow_redirects: bool = True
    # Replaced in tests with httpx.MockTransport
    transport: Optional[httpx.AsyncBaseTransport] = None


@asynccontextmanager
async def get_http_client(config: Optional[HttpClientConfig] = None):
    """
    Get an HTTP client with the specified configuration.

    Args:
        config: Configuration for the HTTP client

    Yields:
        An HTTP client instance
    """
    client_config = config or HttpClientConfig()

    async with httpx.AsyncClient(
        base_url=client_config.base_url,
        headers=client_config.headers,
        timeout=client_config.timeout,
        verify=client_config.verify,
        follow_redirects=client_config.follow_redirects,
        transport=client_config.transport,
    ) as client:
        yield client


async def make_request(
    method: str,
    url: str,
    *,
    provider: str,
    operation: str,
    params: Optional[Dict[str, Any]] = None,
    json_data: Optional[Dict[str, Any]] = None,
    config: Optional[HttpClientConfig] = None,
) -> HttpResponse:
    """
    Make an HTTP request and record its latency.

    Transport failures (connection errors, timeouts) are not caught here;
    callers translate them into their own provider errors.

    Args:
        method: HTTP method (GET, POST, PUT, PATCH, DELETE)
        url: URL, relative to the configured base URL
        provider: Provider name used as a metrics label
        operation: Operation name used as a metrics label
        params: Query parameters
        json_data: JSON data to send in the request body
        config: HTTP client configuration

    Returns:
        HTTP response
    """
    method = method.upper()
    start_time = time.perf_counter()

    try:
        async with get_http_client(config) as client:
            response = await client.request(
                method=method,
                url=url,
                params=params,
                json=json_data,
            )
    finally:
        provider_call_duration.labels(provider=provider, operation=operation).observe(
            time.perf_counter() - start_time
        )

    try:
        content = response.json()
    except ValueError:
        content = response.text

    logger.debug(f"{provider} {method} {url} -> {response.status_code}")

    return HttpResponse(
        status_code=response.status_code,
        content=content,
        headers=dict(response.headers),
    )
