"""
Central notification delivery for the exchange engine.

The domain services call Notifier.notify after a state change has been
committed. NotificationDispatcher is that notifier:
- DB notification (inbox, read/unread)
- Redis `notification.new` event for real-time consumers, when enabled

Delivery never raises; the engine's consistency does not depend on it.
"""
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ledger_engine.domain.notifications.models import NotificationKind
from ledger_engine.infra.db.repositories.notification_repo import NotificationRepository
from ledger_engine.infra.messaging.redis_bus import RedisBus

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Notifier backed by the notifications inbox and an optional Redis channel."""

    def __init__(
        self,
        session: AsyncSession,
        bus: Optional[RedisBus] = None,
        channel: str = "notifications",
    ):
        self.repo = NotificationRepository(session)
        self.bus = bus
        self.channel = channel

    async def notify(
        self,
        user_id: str,
        kind: NotificationKind,
        title: str,
        message: str,
        action_ref: Optional[str] = None,
    ) -> None:
        """Create the inbox row, then publish the event. Failures are logged and swallowed."""
        try:
            notif = await self.repo.create(user_id, kind, title, message, action_ref)
        except Exception as e:
            logger.warning("Inbox write failed for user %s (%s): %s", user_id, kind.value, e)
            return

        if self.bus is None:
            return
        ts_ms = int(notif.created_at.timestamp() * 1000) if notif.created_at else 0
        payload = {
            "id": notif.id,
            "user_id": user_id,
            "kind": notif.kind.value,
            "title": notif.title,
            "message": notif.message,
            "action_ref": notif.action_ref,
            "read": notif.read,
            "timestamp": ts_ms,
        }
        try:
            await self.bus.publish(self.channel, {"type": "notification.new", "payload": payload})
        except Exception as e:
            logger.warning("Notification publish failed for user %s: %s", user_id, e)
