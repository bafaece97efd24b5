"""
Cloudflare DNS provider implementation.

This module implements the DNS provider interface on top of the Cloudflare
v4 API: zones, DNS records and Worker routes.
"""
import logging
from typing import Any, Dict, List, Optional

import httpx

from chatdomain.core.config import Settings, settings as default_settings
from chatdomain.core.exceptions import CloudflareAPIError, ConfigurationError, ProviderError
from chatdomain.models.domain import DNSRecord, WorkerRoute, Zone
from chatdomain.services.domains.dns_providers.base import DNSProvider, ErrorClass, ProviderOperation
from chatdomain.utils.http.client import HttpClientConfig, make_request

logger = logging.getLogger(__name__)

# Error codes meaning "the resource you asked for already exists"
ZONE_ALREADY_EXISTS = 1061
ROUTE_PATTERN_EXISTS = 10020

# Largest page size the list endpoints accept
PAGE_SIZE = 100

DUPLICATE_CODES = {
    ProviderOperation.CREATE_ZONE: ZONE_ALREADY_EXISTS,
    ProviderOperation.CREATE_ROUTE: ROUTE_PATTERN_EXISTS,
}


class CloudflareDNSProvider(DNSProvider):
    """Cloudflare DNS provider implementation."""

    name = "cloudflare"

    def __init__(
        self,
        api_token: Optional[str],
        account_id: Optional[str],
        base_url: str = "https://api.cloudflare.com/client/v4",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the Cloudflare DNS provider.

        Args:
            api_token: API token with Zone:Edit and Workers Routes:Edit permissions
            account_id: Account that owns created zones
            base_url: API base URL
            timeout: Per-call timeout in seconds
            transport: Optional httpx transport override

        Raises:
            ConfigurationError: If the token or account id is missing
        """
        missing = []
        if not api_token:
            missing.append("CLOUDFLARE_API_TOKEN")
        if not account_id:
            missing.append("CLOUDFLARE_ACCOUNT_ID")
        if missing:
            raise ConfigurationError(missing)

        self.account_id = account_id
        self.http_config = HttpClientConfig(
            base_url=base_url,
            headers={
                "Authorization": f"Bearer {api_token}",
                "Content-Type": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )
        logger.info("Initialized Cloudflare DNS provider")

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "CloudflareDNSProvider":
        settings = settings or default_settings
        return cls(
            api_token=settings.CLOUDFLARE_API_TOKEN,
            account_id=settings.CLOUDFLARE_ACCOUNT_ID,
            base_url=settings.CLOUDFLARE_API_URL,
            timeout=settings.HTTP_TIMEOUT_SECONDS,
            transport=transport,
        )

    async def _request(
        self,
        method: str,
        path: str,
        operation: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json_data: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Call the API and return the envelope's ``result``."""
        data = await self._call(method, path, operation, params=params, json_data=json_data)
        return data.get("result")

    async def _paginate(
        self,
        path: str,
        operation: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        """Collect ``result`` items from every page of a list endpoint."""
        items: List[Dict[str, Any]] = []
        page = 1
        while True:
            data = await self._call(
                "GET",
                path,
                operation,
                params={**(params or {}), "page": page, "per_page": PAGE_SIZE},
            )
            items.extend(data.get("result") or [])

            total_pages = (data.get("result_info") or {}).get("total_pages") or 1
            if page >= total_pages:
                return items
            page += 1

    async def _call(
        self,
        method: str,
        path: str,
        operation: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json_data: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Call the API and check the ``{success, errors, result}`` envelope.

        Raises:
            CloudflareAPIError: On a non-2xx status or ``success: false``
            ProviderError: On transport failures and timeouts
        """
        try:
            response = await make_request(
                method,
                path,
                provider=self.name,
                operation=operation,
                params=params,
                json_data=json_data,
                config=self.http_config,
            )
        except httpx.RequestError as e:
            logger.error(f"Cloudflare {operation} request failed: {str(e)}")
            raise ProviderError(self.name, operation, [f"{type(e).__name__}: {e}"]) from e

        data = response.content if isinstance(response.content, dict) else {}
        if response.is_error or not data.get("success"):
            errors = data.get("errors") or [
                {"message": f"HTTP {response.status_code}: {response.content}"}
            ]
            raise CloudflareAPIError(operation, errors, response.status_code)

        return data

    async def create_zone(self, domain: str) -> Zone:
        result = await self._request(
            "POST",
            "/zones",
            ProviderOperation.CREATE_ZONE.value,
            json_data={
                "name": domain,
                "account": {"id": self.account_id},
                "jump_start": True,
                "type": "full",
            },
        )
        zone = Zone.model_validate(result)
        logger.info(f"Zone created for {domain}: {zone.id}")
        return zone

    async def find_zone(self, domain: str) -> Optional[Zone]:
        result = await self._request(
            "GET",
            "/zones",
            ProviderOperation.FIND_ZONE.value,
            params={"name": domain},
        )
        if not result:
            return None
        return Zone.model_validate(result[0])

    async def get_zone(self, zone_id: str) -> Zone:
        result = await self._request("GET", f"/zones/{zone_id}", "get_zone")
        return Zone.model_validate(result)

    async def list_records(self, zone_id: str) -> List[DNSRecord]:
        items = await self._paginate(f"/zones/{zone_id}/dns_records", ProviderOperation.LIST_RECORDS.value)
        return [DNSRecord.model_validate(item) for item in items]

    async def create_record(self, zone_id: str, record: DNSRecord) -> DNSRecord:
        result = await self._request(
            "POST",
            f"/zones/{zone_id}/dns_records",
            ProviderOperation.CREATE_RECORD.value,
            json_data=record.to_payload(),
        )
        return record.model_copy(update={"id": result["id"]})

    async def create_route(self, zone_id: str, pattern: str, script: str) -> WorkerRoute:
        result = await self._request(
            "POST",
            f"/zones/{zone_id}/workers/routes",
            ProviderOperation.CREATE_ROUTE.value,
            json_data={"pattern": pattern, "script": script},
        )
        # Creation only echoes the id back
        return WorkerRoute(id=result["id"], pattern=result.get("pattern", pattern), script=result.get("script", script))

    async def list_routes(self, zone_id: str) -> List[WorkerRoute]:
        result = await self._request(
            "GET",
            f"/zones/{zone_id}/workers/routes",
            ProviderOperation.LIST_ROUTES.value,
        )
        return [WorkerRoute.model_validate(item) for item in result or []]

    async def verify_token(self) -> bool:
        """
        Verify the API token against the account.

        Returns:
            Whether the token is active
        """
        try:
            result = await self._request(
                "GET", f"/accounts/{self.account_id}/tokens/verify", "verify_token"
            )
        except CloudflareAPIError as e:
            logger.warning(f"Cloudflare token verification failed: {str(e)}")
            return False
        return (result or {}).get("status") == "active"

    async def get_ssl_mode(self, zone_id: str) -> str:
        """Return the zone's SSL mode (off, flexible, full, strict)."""
        result = await self._request("GET", f"/zones/{zone_id}/settings/ssl", "get_ssl_mode")
        return result["value"]

    async def enable_full_ssl(self, zone_id: str) -> None:
        """Switch the zone to Full SSL so proxied traffic is encrypted end to end."""
        await self._request(
            "PATCH",
            f"/zones/{zone_id}/settings/ssl",
            "enable_full_ssl",
            json_data={"value": "full"},
        )
        logger.info(f"Enabled Full SSL for zone {zone_id}")

    def classify_error(self, operation: ProviderOperation, error: Exception) -> ErrorClass:
        duplicate_code = DUPLICATE_CODES.get(operation)
        if (
            duplicate_code is not None
            and isinstance(error, CloudflareAPIError)
            and duplicate_code in error.codes
        ):
            return ErrorClass.DUPLICATE
        return ErrorClass.FATAL
