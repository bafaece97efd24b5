from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class RecordType(str, Enum):
    """Common DNS record types. Zones may hold types not listed here."""
    A = "A"
    AAAA = "AAAA"
    CNAME = "CNAME"
    MX = "MX"
    TXT = "TXT"
    NS = "NS"
    SRV = "SRV"
    CAA = "CAA"


class ZoneStatus(str, Enum):
    PENDING = "pending"
    INITIALIZING = "initializing"
    ACTIVE = "active"
    MOVED = "moved"
    DELETED = "deleted"
    DEACTIVATED = "deactivated"


class Zone(BaseModel):
    """DNS hosting zone at the DNS provider"""
    model_config = {"extra": "ignore"}

    id: str
    name: str
    # Plain strings; the provider may add values
    status: str = ZoneStatus.PENDING.value
    name_servers: List[str] = Field(default_factory=list)


class DNSRecord(BaseModel):
    """A record inside a zone"""
    model_config = {"extra": "ignore"}

    id: Optional[str] = None
    type: str
    name: str
    content: str
    proxied: bool = False
    ttl: int = 1  # 1 means automatic

    def to_payload(self) -> Dict[str, Any]:
        """Body for a record creation call."""
        return {
            "type": self.type,
            "name": self.name,
            "content": self.content,
            "ttl": self.ttl,
            "proxied": self.proxied,
        }


class WorkerRoute(BaseModel):
    """Route binding a URL pattern to a Worker script"""
    model_config = {"extra": "ignore"}

    id: str
    pattern: str
    script: Optional[str] = None


class ProvisionResult(BaseModel):
    """Identifiers of every resource backing a provisioned domain"""
    zone_id: str
    nameservers: List[str]
    route_id: str
    a_record_id: str
    cname_record_id: str

    def to_response(self) -> Dict[str, Any]:
        return {
            "zoneId": self.zone_id,
            "nameservers": list(self.nameservers),
            "routeId": self.route_id,
            "aRecordId": self.a_record_id,
            "cnameRecordId": self.cname_record_id,
        }


class DelegationStatus(BaseModel):
    """Live nameserver delegation compared against the zone's nameservers"""
    domain: str
    propagated: bool
    current_nameservers: List[str] = Field(default_factory=list)
    expected_nameservers: List[str] = Field(default_factory=list)
    error: Optional[str] = None
