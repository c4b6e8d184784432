"""Delivery token domain models."""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class DeliveryStatus(str, Enum):
    """Delivery token status enum."""
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


@dataclass
class DeliveryToken:
    """Single-use capability authorizing one physical handoff."""
    id: str
    code: str
    product_id: str
    product_title: Optional[str]
    seller_id: str
    buyer_id: str
    transaction_id: Optional[str]
    created_at: datetime
    expires_at: datetime
    is_used: bool
    used_at: Optional[datetime]
    status: DeliveryStatus

    def is_expired(self, now: datetime) -> bool:
        """True once now is past the validity window."""
        return now > self.expires_at

    @property
    def is_revoked(self) -> bool:
        return self.status == DeliveryStatus.CANCELLED and not self.is_used
