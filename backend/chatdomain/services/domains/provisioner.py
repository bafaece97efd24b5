"""
Custom domain provisioning.

``DomainProvisioner.provision_domain`` takes a bare domain name and makes sure
that, at the DNS provider, a zone, an A record, a ``www`` CNAME record and a
Worker route for ``<domain>/*`` exist, and that the registrar delegates the
domain to the zone's nameservers. The four steps always run in this order:

1. ensure zone
2. ensure DNS records
3. ensure routing rule
4. delegate nameservers

Every step looks before it creates, or recovers from the provider's one
"already exists" error by reading the existing resource back, so the whole
call can be repeated for the same domain and converges to the same result.

NO ROLLBACK: when a step fails the error propagates and the remaining steps
are skipped, but resources created by earlier steps stay in place. They are
cheap, harmless when orphaned and found again by the next run. Recovery from
a partial failure is calling ``provision_domain`` again, not cleanup.
"""
import logging
import re
from typing import List, Optional, Tuple

import httpx
from pydantic import BaseModel

from chatdomain.core.config import Settings, settings as default_settings
from chatdomain.core.exceptions import ConfigurationError, InvalidDomainError, LookupInconsistencyError
from chatdomain.models.domain import DNSRecord, ProvisionResult, RecordType, WorkerRoute, Zone
from chatdomain.services.domain_service.registrars.base_registrar import BaseRegistrar
from chatdomain.services.domain_service.registrars.namecom import NameComRegistrar
from chatdomain.services.domains.dns_providers.base import DNSProvider, ErrorClass, ProviderOperation
from chatdomain.services.domains.dns_providers.cloudflare import CloudflareDNSProvider
from chatdomain.utils.metrics import duplicate_recoveries, provisioning_runs

logger = logging.getLogger(__name__)

_LABEL = r"(?!-)[a-z0-9-]{1,63}(?<!-)"
_DOMAIN_RE = re.compile(rf"^(?:{_LABEL}\.)+(?:[a-z]{{2,63}}|xn--[a-z0-9-]{{1,59}})$")


def normalize_domain(domain: str) -> str:
    """
    Validate a bare domain name and return it lower-cased, without a trailing dot.

    Raises:
        InvalidDomainError: If the value carries a scheme, path, port or is
            not a well-formed host name
    """
    if not isinstance(domain, str):
        raise InvalidDomainError(f"Domain must be a string, got {type(domain).__name__}")

    candidate = domain.strip().rstrip(".").lower()
    try:
        candidate = candidate.encode("idna").decode("ascii")
    except UnicodeError as e:
        raise InvalidDomainError(f"Invalid domain name: {domain!r}") from e

    if len(candidate) > 253 or not _DOMAIN_RE.match(candidate):
        raise InvalidDomainError(f"Invalid domain name: {domain!r}")
    return candidate


class ProvisioningConfig(BaseModel):
    """Fixed values the provisioner writes into every domain."""
    worker_script: str = "chat-domain-router"
    placeholder_ip: str = "192.0.2.1"

    @classmethod
    def from_settings(cls, settings: Settings) -> "ProvisioningConfig":
        return cls(
            worker_script=settings.CLOUDFLARE_WORKER_SCRIPT,
            placeholder_ip=settings.PLACEHOLDER_ORIGIN_IP,
        )


class DomainProvisioner:
    """
    Idempotent zone, record, route and delegation setup for one domain per call.

    Holds no state between calls; concurrent calls for different domains are
    independent.
    """

    def __init__(
        self,
        dns_provider: DNSProvider,
        registrar: BaseRegistrar,
        config: Optional[ProvisioningConfig] = None,
    ):
        self.dns_provider = dns_provider
        self.registrar = registrar
        self.config = config or ProvisioningConfig()

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "DomainProvisioner":
        """
        Build a provisioner backed by Cloudflare and Name.com.

        Raises:
            ConfigurationError: Naming every missing credential, before any
                network call is made
        """
        settings = settings or default_settings
        missing: List[str] = []
        dns_provider = registrar = None

        try:
            dns_provider = CloudflareDNSProvider.from_settings(settings, transport=transport)
        except ConfigurationError as e:
            missing.extend(e.missing)
        try:
            registrar = NameComRegistrar.from_settings(settings, transport=transport)
        except ConfigurationError as e:
            missing.extend(e.missing)

        if missing:
            raise ConfigurationError(missing)

        return cls(dns_provider, registrar, ProvisioningConfig.from_settings(settings))

    async def provision_domain(self, domain: str) -> ProvisionResult:
        """
        Provision a domain end to end.

        Args:
            domain: Bare domain name, e.g. ``example.com``

        Returns:
            Identifiers of the zone, records and route plus the delegated nameservers

        Raises:
            InvalidDomainError: If the domain is malformed
            ProviderError: If any step fails for a reason other than a
                benign duplicate; later steps are not attempted
        """
        domain = normalize_domain(domain)
        logger.info(f"Starting provisioning for {domain}")

        try:
            zone = await self.ensure_zone(domain)
            logger.info(f"Zone ready for {domain}: {zone.id} (status: {zone.status})")

            a_record, cname_record = await self.ensure_dns_records(zone.id, domain)
            route = await self.ensure_route(zone.id, domain)
            await self.delegate_nameservers(domain, zone.name_servers)
        except Exception:
            provisioning_runs.labels(outcome="failed").inc()
            logger.error(f"Provisioning failed for {domain}", exc_info=True)
            raise

        provisioning_runs.labels(outcome="succeeded").inc()
        logger.info(f"Provisioning complete for {domain}")

        return ProvisionResult(
            zone_id=zone.id,
            nameservers=zone.name_servers,
            route_id=route.id,
            a_record_id=a_record.id,
            cname_record_id=cname_record.id,
        )

    async def ensure_zone(self, domain: str) -> Zone:
        """Create the zone, or reuse it when the provider says it already exists."""
        try:
            return await self.dns_provider.create_zone(domain)
        except Exception as e:
            if self.dns_provider.classify_error(ProviderOperation.CREATE_ZONE, e) is not ErrorClass.DUPLICATE:
                raise
            logger.info(f"Zone already exists for {domain}, looking up existing zone")

        existing = await self.dns_provider.find_zone(domain)
        if existing is None:
            raise LookupInconsistencyError(
                self.dns_provider.name,
                ProviderOperation.FIND_ZONE.value,
                [f"Zone already exists for {domain} but could not be retrieved"],
            )

        duplicate_recoveries.labels(step="zone").inc()
        logger.info(f"Reusing existing zone {existing.id} for {domain}")
        return existing

    async def ensure_dns_records(self, zone_id: str, domain: str) -> Tuple[DNSRecord, DNSRecord]:
        """
        Make sure the apex A record and the ``www`` CNAME exist.

        Records are listed once up front; only missing records are created.

        Returns:
            The A record and the CNAME record, both with ids
        """
        existing = await self.dns_provider.list_records(zone_id)
        www_names = {f"www.{domain}", "www"}

        a_record = next(
            (r for r in existing if r.type == RecordType.A.value and r.name == domain),
            None,
        )
        if a_record is not None:
            logger.info(f"A record already exists for {domain}, reusing id={a_record.id}")
        else:
            a_record = await self.dns_provider.create_record(
                zone_id,
                DNSRecord(
                    type=RecordType.A.value,
                    name=domain,
                    content=self.config.placeholder_ip,
                    proxied=True,
                ),
            )
            logger.info(f"A record created for {domain}: {a_record.id}")

        cname_record = next(
            (r for r in existing if r.type == RecordType.CNAME.value and r.name in www_names),
            None,
        )
        if cname_record is not None:
            logger.info(f"CNAME record already exists for www.{domain}, reusing id={cname_record.id}")
        else:
            cname_record = await self.dns_provider.create_record(
                zone_id,
                DNSRecord(
                    type=RecordType.CNAME.value,
                    name="www",
                    content=domain,
                    proxied=True,
                ),
            )
            logger.info(f"CNAME record created for www.{domain}: {cname_record.id}")

        return a_record, cname_record

    async def ensure_route(self, zone_id: str, domain: str) -> WorkerRoute:
        """Create the ``<domain>/*`` route, or reuse the one already bound to that pattern."""
        pattern = f"{domain}/*"
        try:
            route = await self.dns_provider.create_route(zone_id, pattern, self.config.worker_script)
            logger.info(f"Worker route created for {pattern}: {route.id}")
            return route
        except Exception as e:
            if self.dns_provider.classify_error(ProviderOperation.CREATE_ROUTE, e) is not ErrorClass.DUPLICATE:
                raise
            logger.info(f"Worker route already exists for {pattern}, looking up existing route")

        routes = await self.dns_provider.list_routes(zone_id)
        existing = next((r for r in routes if r.pattern == pattern), None)
        if existing is None:
            raise LookupInconsistencyError(
                self.dns_provider.name,
                ProviderOperation.LIST_ROUTES.value,
                [f"Worker route already exists for {pattern} but could not be retrieved"],
            )

        duplicate_recoveries.labels(step="route").inc()
        logger.info(f"Reusing existing worker route {existing.id} for {pattern}")
        return existing

    async def delegate_nameservers(self, domain: str, nameservers: List[str]) -> None:
        """Point the registrar at the zone's nameservers. Runs on every call."""
        await self.registrar.update_nameservers(domain, nameservers)
