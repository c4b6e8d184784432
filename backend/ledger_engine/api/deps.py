"""API dependencies."""
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_engine.domain.delivery.services import DeliveryTokenService
from ledger_engine.domain.exchange.workflow import ExchangeWorkflow
from ledger_engine.domain.ledger.services import CreditLedger
from ledger_engine.domain.reservations.services import ReservationManager
from ledger_engine.domain.service_sharing.services import ServiceSharingService
from ledger_engine.domain.surprise_box.services import SurpriseBoxService
from ledger_engine.domain.transactions.models import Participant
from ledger_engine.domain.transactions.services import TransactionService
from ledger_engine.infra.db.repositories.catalog_repo import CatalogRepositoryImpl
from ledger_engine.infra.db.repositories.delivery_repo import DeliveryTokenRepositoryImpl
from ledger_engine.infra.db.repositories.ledger_repo import LedgerJournalImpl, ProfileRepositoryImpl
from ledger_engine.infra.db.repositories.service_sharing_repo import ServiceSharingRepositoryImpl
from ledger_engine.infra.db.repositories.transaction_repo import TransactionRepositoryImpl
from ledger_engine.infra.db.session import get_db
from ledger_engine.infra.messaging.redis_bus import redis_bus
from ledger_engine.services.notification_service import NotificationDispatcher
from ledger_engine.settings import settings

__all__ = ["get_db", "get_current_user", "get_workflow", "get_ledger", "get_service_sharing", "get_notifier"]


async def get_current_user(
    x_user_id: Optional[str] = Header(default=None),
    x_user_name: Optional[str] = Header(default=None),
) -> Participant:
    """Caller identity, set by the upstream gateway after authentication."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Id header",
        )
    return Participant(user_id=x_user_id.strip(), display_name=x_user_name)


def get_notifier(db: AsyncSession = Depends(get_db)) -> NotificationDispatcher:
    bus = redis_bus if settings.notifications_publish_enabled else None
    return NotificationDispatcher(db, bus=bus, channel=settings.notifications_channel)


def get_ledger(db: AsyncSession = Depends(get_db)) -> CreditLedger:
    return CreditLedger(
        ProfileRepositoryImpl(db),
        LedgerJournalImpl(db),
        max_retries=settings.ledger_max_retries,
    )


def get_service_sharing(
    db: AsyncSession = Depends(get_db),
    ledger: CreditLedger = Depends(get_ledger),
    notifier: NotificationDispatcher = Depends(get_notifier),
) -> ServiceSharingService:
    return ServiceSharingService(ServiceSharingRepositoryImpl(db), ledger, notifier)


def get_workflow(
    db: AsyncSession = Depends(get_db),
    ledger: CreditLedger = Depends(get_ledger),
    service_sharing: ServiceSharingService = Depends(get_service_sharing),
    notifier: NotificationDispatcher = Depends(get_notifier),
) -> ExchangeWorkflow:
    """Wire the engine for one request; all collaborators share the request's session."""
    catalog = CatalogRepositoryImpl(db)
    reservations = ReservationManager(catalog)
    transactions = TransactionService(TransactionRepositoryImpl(db), catalog, reservations, notifier)
    tokens = DeliveryTokenService(
        DeliveryTokenRepositoryImpl(db),
        transactions,
        reservations,
        catalog,
        ttl_hours=settings.delivery_token_ttl_hours,
        prefix=settings.delivery_token_prefix,
    )
    surprise_box = SurpriseBoxService(
        ledger,
        catalog,
        reservations,
        notifier,
        cost=settings.surprise_box_cost,
    )
    return ExchangeWorkflow(
        transactions,
        tokens,
        service_sharing,
        surprise_box,
        catalog,
        issue_tokens_on_accept=settings.issue_tokens_on_accept,
    )
