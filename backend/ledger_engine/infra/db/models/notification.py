"""Notification database model."""
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, String, Text

from ledger_engine.infra.db.base import Base


class NotificationModel(Base):
    """User notification inbox row: offers, deliveries, service requests, rewards."""

    __tablename__ = "notifications"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    kind = Column(String, nullable=False)  # NotificationKind value
    title = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    action_ref = Column(String, nullable=True)  # e.g. transactions/<id>
    read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def to_entity(self):
        """Convert to domain entity."""
        from ledger_engine.domain.notifications.models import Notification, NotificationKind
        return Notification(
            id=self.id,
            user_id=self.user_id,
            kind=NotificationKind(self.kind),
            title=self.title,
            message=self.message,
            action_ref=self.action_ref,
            read=self.read,
            created_at=self.created_at,
        )
