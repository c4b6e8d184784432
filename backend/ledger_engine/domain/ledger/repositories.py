"""Ledger repository protocols."""
from typing import Optional, Protocol

from ledger_engine.domain.ledger.models import Balance, LedgerEntry


class ProfileService(Protocol):
    """User/profile service protocol: balance storage."""

    async def get_balance(self, user_id: str) -> Optional[Balance]:
        """Get balances for a user."""
        ...

    async def set_balance(
        self, user_id: str, points: int, credits: int, expected_version: int
    ) -> Optional[Balance]:
        """Write both balances if the stored version still equals expected_version.

        Returns the new Balance, or None when another writer got there first.
        """
        ...


class LedgerJournal(Protocol):
    """Append-only audit journal for balance mutations."""

    async def record(self, entry: LedgerEntry) -> LedgerEntry:
        """Persist a new entry."""
        ...

    async def list_for_user(self, user_id: str, limit: int = 50) -> list[LedgerEntry]:
        """Entries touching user_id, newest first."""
        ...
