"""Ledger domain models."""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class LedgerEntryKind(str, Enum):
    """What a journal entry records."""
    CREDIT_TRANSFER = "CREDIT_TRANSFER"
    CREDIT_GRANT = "CREDIT_GRANT"
    POINTS_ADJUSTMENT = "POINTS_ADJUSTMENT"


class LedgerOutcome(str, Enum):
    """Final state of a journaled mutation."""
    APPLIED = "APPLIED"
    COMPENSATED = "COMPENSATED"  # Debit undone after the credit side failed
    FAILED = "FAILED"            # Compensation failed too; balances need manual repair


@dataclass
class Balance:
    """Per-user balances held on the profile record."""
    user_id: str
    display_name: Optional[str]
    points: int
    credits: int
    version: int
    updated_at: datetime


@dataclass
class LedgerEntry:
    """Ledger journal entry."""
    id: str
    kind: LedgerEntryKind
    from_user_id: Optional[str]
    to_user_id: Optional[str]
    amount: int
    reason: str
    outcome: LedgerOutcome
    created_at: datetime
