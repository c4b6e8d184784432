"""Notification repository: the per-user inbox behind every Notify side effect."""
from typing import List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_engine.domain.common.types import generate_id, utcnow
from ledger_engine.domain.notifications.models import Notification, NotificationKind
from ledger_engine.infra.db.models.notification import NotificationModel


class NotificationRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    def _inbox(self, user_id: str):
        return NotificationModel.user_id == user_id

    async def create(
        self,
        user_id: str,
        kind: NotificationKind,
        title: str,
        message: str,
        action_ref: Optional[str] = None,
    ) -> Notification:
        row = NotificationModel(
            id=generate_id(),
            user_id=user_id,
            kind=kind.value,
            title=title,
            message=message,
            action_ref=action_ref,
            read=False,
            created_at=utcnow(),
        )
        self.session.add(row)
        try:
            await self.session.commit()
        except Exception:
            # The session is shared with the engine's writes; leave it usable.
            await self.session.rollback()
            raise
        await self.session.refresh(row)
        return row.to_entity()

    async def list_by_user(
        self,
        user_id: str,
        limit: int = 50,
        kind: Optional[NotificationKind] = None,
        unread_only: bool = False,
    ) -> List[Notification]:
        """Newest first. ``kind`` and ``unread_only`` narrow the inbox."""
        stmt = select(NotificationModel).where(self._inbox(user_id))
        if kind is not None:
            stmt = stmt.where(NotificationModel.kind == kind.value)
        if unread_only:
            stmt = stmt.where(NotificationModel.read.is_(False))
        stmt = stmt.order_by(NotificationModel.created_at.desc()).limit(limit)
        rows = (await self.session.execute(stmt)).scalars().all()
        return [row.to_entity() for row in rows]

    async def count_unread(self, user_id: str) -> int:
        stmt = (
            select(func.count(NotificationModel.id))
            .where(self._inbox(user_id), NotificationModel.read.is_(False))
        )
        return (await self.session.execute(stmt)).scalar_one()

    async def _set_read(self, *criteria) -> int:
        result = await self.session.execute(
            update(NotificationModel)
            .where(*criteria, NotificationModel.read.is_(False))
            .values(read=True)
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()
        return result.rowcount

    async def mark_read(self, notification_id: str, user_id: str) -> bool:
        """False when the notification does not exist or is not in this user's inbox."""
        if await self._set_read(NotificationModel.id == notification_id, self._inbox(user_id)):
            return True
        # Already read still counts as found.
        owned = await self.session.execute(
            select(NotificationModel.id).where(
                NotificationModel.id == notification_id, self._inbox(user_id)
            )
        )
        return owned.scalar_one_or_none() is not None

    async def mark_all_read(self, user_id: str) -> int:
        """Returns how many notifications flipped to read."""
        return await self._set_read(self._inbox(user_id))
