"""Transaction repository protocol."""
from datetime import datetime
from typing import Optional, Protocol

from ledger_engine.domain.transactions.models import Transaction, TransactionStatus


class TransactionRepository(Protocol):
    """Transaction repository protocol."""

    async def create(self, transaction: Transaction) -> Transaction:
        """Create a transaction."""
        ...

    async def get(self, transaction_id: str) -> Optional[Transaction]:
        """Get transaction by ID."""
        ...

    async def update_status(
        self,
        transaction_id: str,
        expected_status: TransactionStatus,
        expected_version: int,
        new_status: TransactionStatus,
        updated_at: datetime,
    ) -> Optional[Transaction]:
        """Conditional status write. Returns None if status/version no longer match."""
        ...

    async def list_accepted_for_product(self, product_id: str) -> list[Transaction]:
        """ACCEPTED transactions that move product_id, as subject or as offered product."""
        ...

    async def list_by_seller(self, seller_id: str) -> list[Transaction]:
        """Incoming offers for a seller, newest first."""
        ...

    async def list_by_buyer(self, buyer_id: str) -> list[Transaction]:
        """Offers sent by a buyer, newest first."""
        ...
