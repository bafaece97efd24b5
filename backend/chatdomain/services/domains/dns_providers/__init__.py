"""
DNS provider implementations.
"""
from chatdomain.services.domains.dns_providers.base import DNSProvider, ErrorClass, ProviderOperation
from chatdomain.services.domains.dns_providers.cloudflare import CloudflareDNSProvider

__all__ = ["DNSProvider", "ErrorClass", "ProviderOperation", "CloudflareDNSProvider"]
