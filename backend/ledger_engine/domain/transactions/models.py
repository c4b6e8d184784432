"""Transaction domain models and lifecycle."""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from ledger_engine.domain.catalog.models import ProductKind


class TransactionStatus(str, Enum):
    """Transaction status enum."""
    PENDING = "PENDING"      # Offer made, waiting for the seller
    ACCEPTED = "ACCEPTED"    # Seller accepted, products reserved, delivery outstanding
    REJECTED = "REJECTED"
    COMPLETED = "COMPLETED"  # Delivery confirmed by token redemption
    CANCELLED = "CANCELLED"


ALLOWED_TRANSITIONS: dict[TransactionStatus, frozenset[TransactionStatus]] = {
    TransactionStatus.PENDING: frozenset(
        {TransactionStatus.ACCEPTED, TransactionStatus.REJECTED, TransactionStatus.CANCELLED}
    ),
    TransactionStatus.ACCEPTED: frozenset({TransactionStatus.COMPLETED, TransactionStatus.CANCELLED}),
    TransactionStatus.REJECTED: frozenset(),
    TransactionStatus.COMPLETED: frozenset(),
    TransactionStatus.CANCELLED: frozenset(),
}


def can_transition(current: TransactionStatus, target: TransactionStatus) -> bool:
    """True if target is a forward edge from current."""
    return target in ALLOWED_TRANSITIONS[current]


def is_terminal(status: TransactionStatus) -> bool:
    return not ALLOWED_TRANSITIONS[status]


@dataclass
class Participant:
    """A user taking part in an exchange, with a display name snapshot."""
    user_id: str
    display_name: Optional[str] = None


@dataclass
class Transaction:
    """Transaction domain model.

    Product title/thumbnail and party names are display snapshots taken at
    creation time; ownership and reservation always come from the catalog.
    """
    id: str
    seller_id: str
    seller_name: Optional[str]
    buyer_id: str
    buyer_name: Optional[str]
    product_id: str
    product_title: str
    product_thumbnail_url: Optional[str]
    kind: ProductKind
    status: TransactionStatus
    created_at: datetime
    updated_at: datetime
    offered_product_id: Optional[str] = None
    offered_product_title: Optional[str] = None
    offer_message: Optional[str] = None
    version: int = 1

    @property
    def product_ids(self) -> list[str]:
        """Products that change hands: the subject, plus the offered product for trades."""
        if self.kind == ProductKind.TRADE and self.offered_product_id:
            return [self.product_id, self.offered_product_id]
        return [self.product_id]

    def is_party(self, user_id: str) -> bool:
        return user_id in (self.seller_id, self.buyer_id)

    def counterparty_of(self, user_id: str) -> str:
        """The other side of the exchange."""
        return self.buyer_id if user_id == self.seller_id else self.seller_id
