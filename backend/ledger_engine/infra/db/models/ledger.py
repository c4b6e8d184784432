"""Ledger journal database model."""
from datetime import datetime

from sqlalchemy import Column, DateTime, Enum as SAEnum, Index, Integer, String

from ledger_engine.domain.ledger.models import LedgerEntryKind, LedgerOutcome
from ledger_engine.infra.db.base import Base


class LedgerEntryModel(Base):
    """Append-only record of balance mutations and their outcome."""

    __tablename__ = "ledger_entries"

    id = Column(String, primary_key=True)
    kind = Column(SAEnum(LedgerEntryKind, name="ledger_entry_kind", native_enum=False, length=24), nullable=False)
    from_user_id = Column(String, nullable=True)
    to_user_id = Column(String, nullable=True)
    amount = Column(Integer, nullable=False)  # Signed for points adjustments
    reason = Column(String, nullable=False)
    outcome = Column(SAEnum(LedgerOutcome, name="ledger_outcome", native_enum=False, length=16), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("ix_ledger_entries_from_user_id", "from_user_id"),
        Index("ix_ledger_entries_to_user_id", "to_user_id"),
        Index("ix_ledger_entries_created_at", "created_at"),
    )

    def to_entity(self):
        """Convert to domain entity."""
        from ledger_engine.domain.ledger.models import LedgerEntry
        return LedgerEntry(
            id=self.id,
            kind=self.kind,
            from_user_id=self.from_user_id,
            to_user_id=self.to_user_id,
            amount=self.amount,
            reason=self.reason,
            outcome=self.outcome,
            created_at=self.created_at,
        )

    @classmethod
    def from_entity(cls, entity):
        """Create from domain entity."""
        return cls(
            id=entity.id,
            kind=entity.kind,
            from_user_id=entity.from_user_id,
            to_user_id=entity.to_user_id,
            amount=entity.amount,
            reason=entity.reason,
            outcome=entity.outcome,
            created_at=entity.created_at,
        )
