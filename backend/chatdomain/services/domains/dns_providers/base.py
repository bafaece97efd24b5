"""
Base interface for DNS providers.

This module defines the interface the domain provisioner drives. Provider
specific error codes stay behind ``classify_error`` so the orchestration
logic never looks at them.
"""
import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import List, Optional

from chatdomain.models.domain import DNSRecord, WorkerRoute, Zone

logger = logging.getLogger(__name__)


class ErrorClass(str, Enum):
    """Outcome of classifying a provider failure."""
    DUPLICATE = "duplicate"
    FATAL = "fatal"


class ProviderOperation(str, Enum):
    """Provider calls that may be classified."""
    CREATE_ZONE = "create_zone"
    FIND_ZONE = "find_zone"
    LIST_RECORDS = "list_records"
    CREATE_RECORD = "create_record"
    CREATE_ROUTE = "create_route"
    LIST_ROUTES = "list_routes"


class DNSProvider(ABC):
    """Base interface for DNS providers."""

    name: str = "dns"

    @abstractmethod
    async def create_zone(self, domain: str) -> Zone:
        """
        Create a hosting zone for a domain.

        Args:
            domain: Domain name

        Returns:
            Created zone
        """
        pass

    @abstractmethod
    async def find_zone(self, domain: str) -> Optional[Zone]:
        """
        Look up a zone by domain name.

        Args:
            domain: Domain name

        Returns:
            The zone, or None if the provider has none for this name
        """
        pass

    @abstractmethod
    async def list_records(self, zone_id: str) -> List[DNSRecord]:
        """
        List all DNS records in a zone.

        Args:
            zone_id: Zone ID

        Returns:
            List of DNS records
        """
        pass

    @abstractmethod
    async def create_record(self, zone_id: str, record: DNSRecord) -> DNSRecord:
        """
        Create a DNS record.

        Args:
            zone_id: Zone ID
            record: DNS record to create

        Returns:
            Created DNS record, with its id
        """
        pass

    @abstractmethod
    async def create_route(self, zone_id: str, pattern: str, script: str) -> WorkerRoute:
        """
        Bind a URL pattern to a compute target.

        Args:
            zone_id: Zone ID
            pattern: URL pattern, e.g. ``example.com/*``
            script: Name of the target script

        Returns:
            Created route
        """
        pass

    @abstractmethod
    async def list_routes(self, zone_id: str) -> List[WorkerRoute]:
        """
        List routing rules in a zone.

        Args:
            zone_id: Zone ID

        Returns:
            List of routes
        """
        pass

    @abstractmethod
    def classify_error(self, operation: ProviderOperation, error: Exception) -> ErrorClass:
        """
        Decide whether a failed call means the resource already exists.

        Args:
            operation: The call that failed
            error: The raised exception

        Returns:
            ErrorClass.DUPLICATE for the one benign "already exists" case of
            the operation, ErrorClass.FATAL for everything else
        """
        pass
