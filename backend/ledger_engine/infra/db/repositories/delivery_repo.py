"""Delivery token repository implementation."""
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_engine.domain.delivery.models import DeliveryStatus, DeliveryToken
from ledger_engine.infra.db.models.exchange import DeliveryTokenModel


class DeliveryTokenRepositoryImpl:
    """Delivery token repository implementation."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, token: DeliveryToken) -> DeliveryToken:
        """Persist a new token."""
        model = DeliveryTokenModel.from_entity(token)
        self.session.add(model)
        await self.session.commit()
        await self.session.refresh(model)
        return model.to_entity()

    async def get(self, token_id: str) -> Optional[DeliveryToken]:
        """Get token by ID."""
        result = await self.session.execute(
            select(DeliveryTokenModel)
            .where(DeliveryTokenModel.id == token_id)
            .execution_options(populate_existing=True)
        )
        model = result.scalar_one_or_none()
        return model.to_entity() if model else None

    async def mark_used(self, token_id: str, now: datetime) -> Optional[DeliveryToken]:
        """Flip used false -> true while unused, not cancelled and not expired."""
        result = await self.session.execute(
            update(DeliveryTokenModel)
            .where(
                DeliveryTokenModel.id == token_id,
                DeliveryTokenModel.is_used.is_(False),
                DeliveryTokenModel.status != DeliveryStatus.CANCELLED,
                DeliveryTokenModel.expires_at >= now,
            )
            .values(is_used=True, used_at=now, status=DeliveryStatus.COMPLETED)
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()
        if result.rowcount == 0:
            return None
        return await self.get(token_id)

    async def list_for_transaction(self, transaction_id: str) -> List[DeliveryToken]:
        """All tokens bound to a transaction, oldest first."""
        result = await self.session.execute(
            select(DeliveryTokenModel)
            .where(DeliveryTokenModel.transaction_id == transaction_id)
            .order_by(DeliveryTokenModel.created_at.asc())
            .execution_options(populate_existing=True)
        )
        return [m.to_entity() for m in result.scalars().all()]

    async def revoke_for_transaction(self, transaction_id: str) -> int:
        """Cancel unused tokens of a transaction. Returns count updated."""
        result = await self.session.execute(
            update(DeliveryTokenModel)
            .where(
                DeliveryTokenModel.transaction_id == transaction_id,
                DeliveryTokenModel.is_used.is_(False),
                DeliveryTokenModel.status != DeliveryStatus.CANCELLED,
            )
            .values(status=DeliveryStatus.CANCELLED)
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()
        return result.rowcount or 0
