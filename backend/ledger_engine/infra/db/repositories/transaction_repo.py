"""Transaction repository implementation."""
from datetime import datetime
from typing import List, Optional

from sqlalchemy import and_, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_engine.domain.transactions.models import Transaction, TransactionStatus
from ledger_engine.infra.db.models.exchange import TransactionModel


class TransactionRepositoryImpl:
    """Transaction repository implementation."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, transaction: Transaction) -> Transaction:
        """Create a transaction."""
        model = TransactionModel.from_entity(transaction)
        self.session.add(model)
        await self.session.commit()
        await self.session.refresh(model)
        return model.to_entity()

    async def get(self, transaction_id: str) -> Optional[Transaction]:
        """Get transaction by ID."""
        result = await self.session.execute(
            select(TransactionModel)
            .where(TransactionModel.id == transaction_id)
            .execution_options(populate_existing=True)
        )
        model = result.scalar_one_or_none()
        return model.to_entity() if model else None

    async def update_status(
        self,
        transaction_id: str,
        expected_status: TransactionStatus,
        expected_version: int,
        new_status: TransactionStatus,
        updated_at: datetime,
    ) -> Optional[Transaction]:
        """UPDATE ... WHERE status = expected AND version = expected; None when no row matched."""
        result = await self.session.execute(
            update(TransactionModel)
            .where(
                TransactionModel.id == transaction_id,
                TransactionModel.status == expected_status,
                TransactionModel.version == expected_version,
            )
            .values(status=new_status, version=TransactionModel.version + 1, updated_at=updated_at)
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()
        if result.rowcount == 0:
            return None
        return await self.get(transaction_id)

    async def list_accepted_for_product(self, product_id: str) -> List[Transaction]:
        return await self._list(
            and_(
                TransactionModel.status == TransactionStatus.ACCEPTED,
                or_(
                    TransactionModel.product_id == product_id,
                    TransactionModel.offered_product_id == product_id,
                ),
            )
        )

    async def list_by_seller(self, seller_id: str) -> List[Transaction]:
        """Incoming offers for a seller, newest first."""
        return await self._list(TransactionModel.seller_id == seller_id)

    async def list_by_buyer(self, buyer_id: str) -> List[Transaction]:
        """Offers sent by a buyer, newest first."""
        return await self._list(TransactionModel.buyer_id == buyer_id)

    async def _list(self, condition) -> List[Transaction]:
        result = await self.session.execute(
            select(TransactionModel)
            .where(condition)
            .order_by(TransactionModel.created_at.desc())
            .execution_options(populate_existing=True)
        )
        return [m.to_entity() for m in result.scalars().all()]
