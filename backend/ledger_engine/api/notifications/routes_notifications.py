"""Notification inbox routes."""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_engine.api.deps import get_current_user, get_db
from ledger_engine.domain.notifications.models import Notification, NotificationKind
from ledger_engine.domain.transactions.models import Participant
from ledger_engine.infra.db.repositories.notification_repo import NotificationRepository

router = APIRouter()


class NotificationResponse(BaseModel):
    id: str
    kind: str
    title: str
    message: str
    action_ref: Optional[str]
    read: bool
    timestamp: int  # ms since epoch

    @classmethod
    def from_entity(cls, n: Notification) -> "NotificationResponse":
        return cls(
            id=n.id,
            kind=n.kind.value,
            title=n.title,
            message=n.message,
            action_ref=n.action_ref,
            read=n.read,
            timestamp=int(n.created_at.timestamp() * 1000) if n.created_at else 0,
        )


class UnreadCountResponse(BaseModel):
    unread: int


class MarkAllReadResponse(BaseModel):
    marked: int


@router.get("", response_model=List[NotificationResponse])
async def list_notifications(
    limit: int = Query(50, ge=1, le=100),
    kind: Optional[NotificationKind] = None,
    unread_only: bool = False,
    current_user: Participant = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Current user's inbox, newest first."""
    inbox = await NotificationRepository(db).list_by_user(
        current_user.user_id, limit=limit, kind=kind, unread_only=unread_only
    )
    return [NotificationResponse.from_entity(n) for n in inbox]


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    current_user: Participant = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return UnreadCountResponse(unread=await NotificationRepository(db).count_unread(current_user.user_id))


@router.post("/read-all", response_model=MarkAllReadResponse)
async def mark_all_read(
    current_user: Participant = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return MarkAllReadResponse(marked=await NotificationRepository(db).mark_all_read(current_user.user_id))


@router.post("/{notification_id}/read", status_code=status.HTTP_204_NO_CONTENT)
async def mark_notification_read(
    notification_id: str,
    current_user: Participant = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if not await NotificationRepository(db).mark_read(notification_id, current_user.user_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
