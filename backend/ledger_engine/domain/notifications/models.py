"""Notification domain models and the outbound notifier protocol."""
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Protocol

logger = logging.getLogger(__name__)


class NotificationKind(str, Enum):
    """Notification kinds emitted by the exchange engine."""
    NEW_OFFER = "NEW_OFFER"
    OFFER_ACCEPTED = "OFFER_ACCEPTED"
    OFFER_REJECTED = "OFFER_REJECTED"
    OFFER_CANCELLED = "OFFER_CANCELLED"
    DELIVERY_COMPLETED = "DELIVERY_COMPLETED"
    SERVICE_REQUESTED = "SERVICE_REQUESTED"
    SERVICE_ACCEPTED = "SERVICE_ACCEPTED"
    SERVICE_DECLINED = "SERVICE_DECLINED"
    SERVICE_COMPLETED = "SERVICE_COMPLETED"
    SURPRISE_BOX_WON = "SURPRISE_BOX_WON"


@dataclass
class Notification:
    """Notification domain model (inbox row)."""
    id: str
    user_id: str
    kind: NotificationKind
    title: str
    message: str
    action_ref: Optional[str]
    read: bool
    created_at: datetime


class Notifier(Protocol):
    """Notification service protocol. Fire and forget: implementations never raise."""

    async def notify(
        self,
        user_id: str,
        kind: NotificationKind,
        title: str,
        message: str,
        action_ref: Optional[str] = None,
    ) -> None:
        """Deliver a notification to user_id."""
        ...


async def notify_safely(
    notifier: Optional[Notifier],
    user_id: str,
    kind: NotificationKind,
    title: str,
    message: str,
    action_ref: Optional[str] = None,
) -> None:
    """Emit a notification after a committed state change; delivery failures are only logged."""
    if notifier is None:
        return
    try:
        await notifier.notify(user_id, kind, title, message, action_ref)
    except Exception as e:
        logger.warning("Notification %s to user %s failed: %s", kind.value, user_id, e)


def transaction_ref(transaction_id: str) -> str:
    """Stable, navigable reference to a transaction."""
    return f"transactions/{transaction_id}"


def service_request_ref(request_id: str) -> str:
    """Stable, navigable reference to a service request."""
    return f"service-requests/{request_id}"
