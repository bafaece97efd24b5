"""
Nameserver delegation checks.

After provisioning, the registrar change takes time to reach the TLD servers.
This module compares what public DNS currently answers for a domain's NS
records with the nameservers the zone was assigned.
"""
import logging
from typing import Iterable, List, Optional

import dns.asyncresolver
import dns.exception
import dns.resolver

from chatdomain.models.domain import DelegationStatus

logger = logging.getLogger(__name__)


def _clean(nameserver: str) -> str:
    return nameserver.strip().rstrip(".").lower()


class DelegationChecker:
    """Compares live NS records against the expected nameservers."""

    def __init__(self, resolver: Optional[dns.asyncresolver.Resolver] = None, lifetime: float = 10.0):
        self.resolver = resolver or dns.asyncresolver.Resolver()
        self.resolver.lifetime = lifetime

    async def lookup_nameservers(self, domain: str) -> List[str]:
        answers = await self.resolver.resolve(domain, "NS")
        return sorted(_clean(answer.to_text()) for answer in answers)

    async def check(self, domain: str, expected_nameservers: Iterable[str]) -> DelegationStatus:
        """
        Check whether a domain is delegated to the expected nameservers.

        Lookup failures are reported in the result rather than raised.

        Args:
            domain: Domain name
            expected_nameservers: Nameservers assigned to the domain's zone

        Returns:
            Delegation status; ``propagated`` is true when any expected
            nameserver is already answering for the domain
        """
        expected = [_clean(ns) for ns in expected_nameservers]

        try:
            current = await self.lookup_nameservers(domain)
        except dns.resolver.NXDOMAIN:
            return DelegationStatus(
                domain=domain,
                propagated=False,
                expected_nameservers=expected,
                error=f"{domain} does not exist in public DNS yet",
            )
        except dns.resolver.NoAnswer:
            return DelegationStatus(
                domain=domain,
                propagated=False,
                expected_nameservers=expected,
                error=f"No NS records found for {domain}",
            )
        except dns.exception.DNSException as e:
            logger.warning(f"NS lookup failed for {domain}: {str(e)}")
            return DelegationStatus(
                domain=domain,
                propagated=False,
                expected_nameservers=expected,
                error=str(e) or type(e).__name__,
            )

        propagated = any(ns in current for ns in expected)
        return DelegationStatus(
            domain=domain,
            propagated=propagated,
            current_nameservers=current,
            expected_nameservers=expected,
        )
