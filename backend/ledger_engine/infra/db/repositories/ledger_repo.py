"""Profile balances and ledger journal repositories."""
from typing import List, Optional

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_engine.domain.common.types import utcnow
from ledger_engine.domain.ledger.models import Balance, LedgerEntry
from ledger_engine.infra.db.models.catalog import UserProfileModel
from ledger_engine.infra.db.models.ledger import LedgerEntryModel


class ProfileRepositoryImpl:
    """Balance storage on the user_profiles table (ProfileService protocol)."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_profile(
        self, user_id: str, display_name: Optional[str] = None, points: int = 0, credits: int = 0
    ) -> Balance:
        """Create a profile row with opening balances."""
        model = UserProfileModel(
            user_id=user_id,
            display_name=display_name,
            points=points,
            credits=credits,
            version=1,
            updated_at=utcnow(),
        )
        self.session.add(model)
        await self.session.commit()
        await self.session.refresh(model)
        return model.to_entity()

    async def get_balance(self, user_id: str) -> Optional[Balance]:
        """Get balances for a user."""
        result = await self.session.execute(
            select(UserProfileModel)
            .where(UserProfileModel.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        model = result.scalar_one_or_none()
        return model.to_entity() if model else None

    async def set_balance(
        self, user_id: str, points: int, credits: int, expected_version: int
    ) -> Optional[Balance]:
        """Versioned write of both balances; None when the version moved on."""
        result = await self.session.execute(
            update(UserProfileModel)
            .where(UserProfileModel.user_id == user_id, UserProfileModel.version == expected_version)
            .values(
                points=points,
                credits=credits,
                version=UserProfileModel.version + 1,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()
        if result.rowcount == 0:
            return None
        return await self.get_balance(user_id)


class LedgerJournalImpl:
    """ledger_entries table (LedgerJournal protocol)."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def record(self, entry: LedgerEntry) -> LedgerEntry:
        model = LedgerEntryModel.from_entity(entry)
        self.session.add(model)
        await self.session.commit()
        await self.session.refresh(model)
        return model.to_entity()

    async def list_for_user(self, user_id: str, limit: int = 50) -> List[LedgerEntry]:
        """Entries touching user_id, newest first."""
        result = await self.session.execute(
            select(LedgerEntryModel)
            .where(or_(LedgerEntryModel.from_user_id == user_id, LedgerEntryModel.to_user_id == user_id))
            .order_by(LedgerEntryModel.created_at.desc())
            .limit(limit)
        )
        return [m.to_entity() for m in result.scalars().all()]
