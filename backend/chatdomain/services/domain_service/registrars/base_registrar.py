"""
Base registrar interface for ChatDomain.
Defines the common interface for domain registrar implementations.
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, Any, List, Optional

logger = logging.getLogger(__name__)


class BaseRegistrar(ABC):
    """
    Base class for domain registrar implementations.
    All registrar-specific implementations should inherit from this class.
    """

    @abstractmethod
    async def check_availability(self, domain_names: List[str]) -> List[Dict[str, Any]]:
        """
        Check whether domains are available for registration.

        Args:
            domain_names: The domain names to check

        Returns:
            One entry per domain with availability status and pricing
        """
        pass

    async def search_domains(self, keyword: str, tlds: Optional[List[str]] = None) -> List[Dict[str, Any]]:
        """
        Check a keyword against a set of TLDs.

        Args:
            keyword: The keyword to search for
            tlds: TLDs to check, without the leading dot

        Returns:
            Availability and pricing for each candidate
        """
        if not tlds:
            tlds = ["com", "net", "org", "io", "co", "ai"]
        return await self.check_availability([f"{keyword}.{tld}" for tld in tlds])

    @abstractmethod
    async def register_domain(
        self,
        domain_name: str,
        purchase_price: float,
        years: int = 1,
        nameservers: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        """
        Register a domain.

        Args:
            domain_name: The domain name to register
            purchase_price: Price quoted by the registrar, in USD
            years: Number of years to register for
            nameservers: Nameservers to set at registration time

        Returns:
            Dictionary with registration details
        """
        pass

    @abstractmethod
    async def get_domain_details(self, domain_name: str) -> Dict[str, Any]:
        """
        Get details for a domain.

        Args:
            domain_name: The domain name to get details for

        Returns:
            Dictionary with domain details
        """
        pass

    @abstractmethod
    async def update_nameservers(self, domain_name: str, nameservers: List[str]) -> Dict[str, Any]:
        """
        Replace the nameservers of a domain.

        This is a full overwrite, not an append.

        Args:
            domain_name: The domain name to update nameservers for
            nameservers: Ordered list of nameservers to use

        Returns:
            Dictionary with update status
        """
        pass

    @abstractmethod
    async def verify_connection(self) -> str:
        """
        Check that the configured credentials are accepted.

        Returns:
            The account name the registrar reports
        """
        pass
