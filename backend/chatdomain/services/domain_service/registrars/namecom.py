"""
Name.com API integration for ChatDomain.
Implements the Name.com v4 API for domain purchase and nameserver delegation.
"""

import base64
import logging
from typing import Dict, Any, List, Optional

import httpx

from chatdomain.core.config import Settings, settings as default_settings
from chatdomain.core.exceptions import ConfigurationError, ProviderError, RegistrarAPIError
from chatdomain.services.domain_service.registrars.base_registrar import BaseRegistrar
from chatdomain.utils.http.client import HttpClientConfig, HttpResponse, make_request

logger = logging.getLogger(__name__)


class NameComRegistrar(BaseRegistrar):
    """
    Name.com API client for domain management.

    Documentation: https://www.name.com/api-docs
    """

    name = "namecom"

    def __init__(
        self,
        username: Optional[str],
        api_token: Optional[str],
        base_url: str = "https://api.name.com/v4",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the Name.com API client.

        Args:
            username: Name.com account username
            api_token: Name.com API token
            base_url: API base URL (use https://api.dev.name.com/v4 for the sandbox)
            timeout: Per-call timeout in seconds
            transport: Optional httpx transport override

        Raises:
            ConfigurationError: If the username or token is missing
        """
        missing = []
        if not username:
            missing.append("NAMECOM_USERNAME")
        if not api_token:
            missing.append("NAMECOM_API_TOKEN")
        if missing:
            raise ConfigurationError(missing)

        basic = base64.b64encode(f"{username}:{api_token}".encode()).decode()
        self.http_config = HttpClientConfig(
            base_url=base_url,
            headers={
                "Authorization": f"Basic {basic}",
                "Content-Type": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "NameComRegistrar":
        settings = settings or default_settings
        return cls(
            username=settings.NAMECOM_USERNAME,
            api_token=settings.NAMECOM_API_TOKEN,
            base_url=settings.NAMECOM_API_URL,
            timeout=settings.HTTP_TIMEOUT_SECONDS,
            transport=transport,
        )

    async def _request(
        self,
        method: str,
        path: str,
        operation: str,
        json_data: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        try:
            response = await make_request(
                method,
                path,
                provider=self.name,
                operation=operation,
                json_data=json_data,
                config=self.http_config,
            )
        except httpx.RequestError as e:
            logger.error(f"Name.com {operation} request failed: {str(e)}")
            raise ProviderError(self.name, operation, [f"{type(e).__name__}: {e}"]) from e

        if response.is_error:
            if response.status_code == 429:
                logger.warning("Name.com API rate limit exceeded")
            raise RegistrarAPIError(operation, [self._error_message(response)], response.status_code)

        return response.content if isinstance(response.content, dict) else {}

    @staticmethod
    def _error_message(response: HttpResponse) -> str:
        content = response.content
        if isinstance(content, dict):
            message = content.get("message") or f"HTTP {response.status_code}"
            if content.get("details"):
                message = f"{message}: {content['details']}"
            return message
        return f"HTTP {response.status_code}: {content}"

    async def check_availability(self, domain_names: List[str]) -> List[Dict[str, Any]]:
        data = await self._request(
            "POST", "/domains:checkAvailability", "check_availability", {"domainNames": domain_names}
        )
        return [
            {
                "domain": result["domainName"],
                "available": result.get("purchasable", False),
                "premium": result.get("premium", False),
                "price": result.get("purchasePrice"),
                "renewal_price": result.get("renewalPrice"),
                "purchase_type": result.get("purchaseType"),
                "currency": "USD",
                "provider": self.name,
            }
            for result in data.get("results", [])
        ]

    async def register_domain(
        self,
        domain_name: str,
        purchase_price: float,
        years: int = 1,
        nameservers: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        domain: Dict[str, Any] = {"domainName": domain_name}
        if nameservers:
            domain["nameservers"] = nameservers

        logger.info(f"Registering {domain_name} at Name.com for {years} year(s)")
        data = await self._request(
            "POST",
            "/domains",
            "register_domain",
            {"domain": domain, "purchasePrice": purchase_price, "years": years},
        )

        registered = data.get("domain", {})
        return {
            "domain": registered.get("domainName", domain_name),
            "order_id": data.get("order"),
            "total_paid": data.get("totalPaid"),
            "expire_date": registered.get("expireDate"),
            "nameservers": registered.get("nameservers", []),
        }

    async def get_domain_details(self, domain_name: str) -> Dict[str, Any]:
        return await self._request("GET", f"/domains/{domain_name}", "get_domain_details")

    async def update_nameservers(self, domain_name: str, nameservers: List[str]) -> Dict[str, Any]:
        data = await self._request(
            "POST",
            f"/domains/{domain_name}:setNameservers",
            "update_nameservers",
            {"nameservers": list(nameservers)},
        )
        logger.info(f"Updated Name.com nameservers for {domain_name}: {', '.join(nameservers)}")
        return {
            "domain": domain_name,
            "nameservers": data.get("nameservers", list(nameservers)),
            "status": "updated",
        }

    async def verify_connection(self) -> str:
        data = await self._request("GET", "/hello", "verify_connection")
        return data.get("username", "")
