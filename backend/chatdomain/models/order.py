from enum import Enum
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field


class OrderStatus(str, Enum):
    PENDING_PAYMENT = "pending_payment"
    PAYMENT_FAILED = "payment_failed"
    PAYMENT_COMPLETED = "payment_completed"
    REGISTERING = "registering"
    REGISTERED = "registered"
    FAILED = "failed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class DnsStatus(str, Enum):
    PENDING = "pending"
    CONFIGURING = "configuring"
    PROPAGATING = "propagating"
    ACTIVE = "active"
    ERROR = "error"


class DomainOrder(BaseModel):
    """Model representing a custom domain purchase"""
    id: int
    user_id: int
    domain: str
    status: OrderStatus = OrderStatus.PENDING_PAYMENT
    dns_status: DnsStatus = DnsStatus.PENDING
    domain_price: int  # smallest currency unit
    management_fee: int = 0
    currency: str = "HKD"
    registrar_purchase_price: Optional[float] = None  # USD, as quoted by the registrar
    years: int = 1
    stripe_payment_intent_id: Optional[str] = None
    registrar_order_id: Optional[str] = None
    expiration_date: Optional[datetime] = None
    cloudflare_zone_id: Optional[str] = None
    cloudflare_route_id: Optional[str] = None
    nameservers: List[str] = Field(default_factory=list)
    last_error_message: Optional[str] = None
    dns_error_message: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def total_price(self) -> int:
        return self.domain_price + self.management_fee
