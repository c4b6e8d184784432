"""Pytest configuration and shared fixtures for the exchange ledger tests."""
import sys
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional

# Add the backend directory to Python path
backend_dir = Path(__file__).parent.parent
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from ledger_engine.domain.catalog.models import Product, ProductKind
from ledger_engine.domain.common.types import generate_id, utcnow
from ledger_engine.domain.delivery.services import DeliveryTokenService
from ledger_engine.domain.exchange.workflow import ExchangeWorkflow
from ledger_engine.domain.ledger.services import CreditLedger
from ledger_engine.domain.reservations.services import ReservationManager
from ledger_engine.domain.service_sharing.services import ServiceSharingService
from ledger_engine.domain.surprise_box.services import SurpriseBoxService
from ledger_engine.domain.transactions.models import Participant
from ledger_engine.domain.transactions.services import TransactionService
from ledger_engine.infra.db.base import Base
from ledger_engine.infra.db import models  # noqa: F401
from ledger_engine.infra.db.repositories.catalog_repo import CatalogRepositoryImpl
from ledger_engine.infra.db.repositories.delivery_repo import DeliveryTokenRepositoryImpl
from ledger_engine.infra.db.repositories.ledger_repo import LedgerJournalImpl, ProfileRepositoryImpl
from ledger_engine.infra.db.repositories.notification_repo import NotificationRepository
from ledger_engine.infra.db.repositories.service_sharing_repo import ServiceSharingRepositoryImpl
from ledger_engine.infra.db.repositories.transaction_repo import TransactionRepositoryImpl
from ledger_engine.services.notification_service import NotificationDispatcher


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "integration: marks tests that need real services (deselect with '-m \"not integration\"')"
    )


class FakeClock:
    """Controllable clock for token expiry."""

    def __init__(self, now: Optional[datetime] = None):
        self.now = now or utcnow()

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class Harness:
    """All engine services wired over one session, as the API does per request."""

    def __init__(self, session: AsyncSession, clock: FakeClock, issue_tokens_on_accept: bool = False):
        self.session = session
        self.clock = clock
        self.catalog = CatalogRepositoryImpl(session)
        self.profiles = ProfileRepositoryImpl(session)
        self.journal = LedgerJournalImpl(session)
        self.inbox = NotificationRepository(session)
        self.notifier = NotificationDispatcher(session)
        self.reservations = ReservationManager(self.catalog)
        self.ledger = CreditLedger(self.profiles, self.journal, max_retries=3)
        self.transactions = TransactionService(
            TransactionRepositoryImpl(session), self.catalog, self.reservations, self.notifier
        )
        self.tokens = DeliveryTokenService(
            DeliveryTokenRepositoryImpl(session),
            self.transactions,
            self.reservations,
            self.catalog,
            ttl_hours=24,
            clock=clock,
        )
        self.service_sharing = ServiceSharingService(ServiceSharingRepositoryImpl(session), self.ledger, self.notifier)
        self.surprise_box = SurpriseBoxService(self.ledger, self.catalog, self.reservations, self.notifier, cost=50)
        self.workflow = ExchangeWorkflow(
            self.transactions,
            self.tokens,
            self.service_sharing,
            self.surprise_box,
            self.catalog,
            issue_tokens_on_accept=issue_tokens_on_accept,
        )

    async def add_product(
        self,
        owner_id: str,
        kind: ProductKind = ProductKind.SALE,
        title: str = "Calculus textbook",
        owner_name: Optional[str] = None,
        is_active: bool = True,
    ) -> Product:
        now = utcnow()
        return await self.catalog.add_product(
            Product(
                id=generate_id(),
                owner_id=owner_id,
                owner_name=owner_name,
                kind=kind,
                title=title,
                thumbnail_url=None,
                is_active=is_active,
                is_reserved=False,
                is_sold=False,
                created_at=now,
                updated_at=now,
            )
        )

    async def add_user(self, name: str, points: int = 0, credits: int = 0) -> Participant:
        user_id = generate_id()
        await self.profiles.create_profile(user_id, display_name=name, points=points, credits=credits)
        return Participant(user_id=user_id, display_name=name)


async def create_schema(engine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


# Test database setup
@pytest.fixture
async def db_engine():
    """In-memory SQLite engine with the full schema."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(db_engine):
    """Create a test database session."""
    session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 3, 1, 12, 0, 0))


@pytest.fixture
def harness(db_session: AsyncSession, clock: FakeClock) -> "Harness":
    return Harness(db_session, clock)


@pytest.fixture
async def users(harness: Harness) -> dict:
    """Seller, buyer and a third student, each with a profile."""
    return {
        "seller": await harness.add_user("Ayse", points=0, credits=10),
        "buyer": await harness.add_user("Mehmet", points=120, credits=10),
        "other": await harness.add_user("Zeynep", points=0, credits=0),
    }
