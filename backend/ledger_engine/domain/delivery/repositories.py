"""Delivery token repository protocol."""
from datetime import datetime
from typing import Optional, Protocol

from ledger_engine.domain.delivery.models import DeliveryToken


class DeliveryTokenRepository(Protocol):
    """Delivery token repository protocol."""

    async def create(self, token: DeliveryToken) -> DeliveryToken:
        """Persist a new token."""
        ...

    async def get(self, token_id: str) -> Optional[DeliveryToken]:
        """Get token by ID."""
        ...

    async def mark_used(self, token_id: str, now: datetime) -> Optional[DeliveryToken]:
        """Consume the token in one conditional write.

        Succeeds only while the token is unused, not cancelled and not expired
        at `now`; returns None otherwise.
        """
        ...

    async def list_for_transaction(self, transaction_id: str) -> list[DeliveryToken]:
        """All tokens bound to a transaction, oldest first (expired ones included)."""
        ...

    async def revoke_for_transaction(self, transaction_id: str) -> int:
        """Cancel every unused token bound to a transaction. Returns the count."""
        ...
