"""Catalog domain models."""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class ProductKind(str, Enum):
    """How a listing changes hands."""
    SALE = "SALE"
    DONATION = "DONATION"
    TRADE = "TRADE"


@dataclass
class Product:
    """Product domain model (live catalog record, authoritative for ownership and flags)."""
    id: str
    owner_id: str
    owner_name: Optional[str]
    kind: ProductKind
    title: str
    thumbnail_url: Optional[str]
    is_active: bool
    is_reserved: bool
    is_sold: bool
    created_at: datetime
    updated_at: datetime
    sold_at: Optional[datetime] = None

    @property
    def is_available(self) -> bool:
        """Active, not sold, not locked by another transaction."""
        return self.is_active and not self.is_sold and not self.is_reserved
