"""Credit ledger: time-credit transfers and points adjustments."""
import logging
from typing import Optional

from ledger_engine.domain.common.errors import (
    ConcurrencyConflict,
    InsufficientCredits,
    NotFoundError,
    ValidationError,
)
from ledger_engine.domain.common.types import generate_id, utcnow
from ledger_engine.domain.ledger.models import Balance, LedgerEntry, LedgerEntryKind, LedgerOutcome
from ledger_engine.domain.ledger.repositories import LedgerJournal, ProfileService

logger = logging.getLogger(__name__)


class CreditLedger:
    """Moves time credits between two users and adjusts gamification points.

    The balance store has no multi-row transactions, so a transfer is two
    versioned single-row writes (debit, then credit). If the credit side
    fails after the debit landed, the debit is undone before the original
    error is re-raised.
    """

    def __init__(self, profiles: ProfileService, journal: LedgerJournal, max_retries: int = 3):
        self.profiles = profiles
        self.journal = journal
        self.max_retries = max(1, max_retries)

    async def get_balance(self, user_id: str) -> Balance:
        """Get balances for a user."""
        balance = await self.profiles.get_balance(user_id)
        if balance is None:
            raise NotFoundError("UserProfile", user_id)
        return balance

    async def transfer(self, from_user_id: str, to_user_id: str, amount: int, reason: str) -> LedgerEntry:
        """Move amount credits from one user to another."""
        if amount <= 0:
            raise ValidationError("Transfer amount must be positive")
        if from_user_id == to_user_id:
            raise ValidationError("Cannot transfer credits to the same user")

        sender = await self.get_balance(from_user_id)
        await self.get_balance(to_user_id)
        if sender.credits < amount:
            raise InsufficientCredits(from_user_id, amount, sender.credits)

        await self._apply(from_user_id, credits_delta=-amount)
        try:
            await self._apply(to_user_id, credits_delta=amount)
        except Exception:
            outcome = await self._compensate(from_user_id, amount, reason)
            await self._journal(LedgerEntryKind.CREDIT_TRANSFER, from_user_id, to_user_id, amount, reason, outcome)
            raise

        logger.info("Transferred %d credits %s -> %s (%s)", amount, from_user_id, to_user_id, reason)
        return await self._journal(
            LedgerEntryKind.CREDIT_TRANSFER, from_user_id, to_user_id, amount, reason, LedgerOutcome.APPLIED
        )

    async def grant_credits(self, user_id: str, amount: int, reason: str) -> Balance:
        """Issue new credits to a user (onboarding bonus, admin top-up)."""
        if amount <= 0:
            raise ValidationError("Granted credits must be positive")
        balance = await self._apply(user_id, credits_delta=amount)
        await self._journal(LedgerEntryKind.CREDIT_GRANT, None, user_id, amount, reason, LedgerOutcome.APPLIED)
        return balance

    async def add_points(self, user_id: str, delta: int, reason: str) -> Balance:
        """Signed adjustment of the points balance (rewards and compensating deductions)."""
        balance = await self._apply(user_id, points_delta=delta)
        await self._journal(LedgerEntryKind.POINTS_ADJUSTMENT, None, user_id, delta, reason, LedgerOutcome.APPLIED)
        logger.info("Points %+d for %s (%s); now %d", delta, user_id, reason, balance.points)
        return balance

    async def history(self, user_id: str, limit: int = 50) -> list[LedgerEntry]:
        """Journal entries touching a user, newest first."""
        return await self.journal.list_for_user(user_id, limit=limit)

    async def _apply(self, user_id: str, credits_delta: int = 0, points_delta: int = 0) -> Balance:
        """Read-modify-write one balance row, retrying when a concurrent writer wins."""
        for attempt in range(1, self.max_retries + 1):
            current = await self.get_balance(user_id)
            new_credits = current.credits + credits_delta
            if credits_delta < 0 and new_credits < 0:
                raise InsufficientCredits(user_id, -credits_delta, current.credits)
            written = await self.profiles.set_balance(
                user_id,
                points=current.points + points_delta,
                credits=new_credits,
                expected_version=current.version,
            )
            if written is not None:
                return written
            logger.warning("Balance write for %s lost a race (attempt %d/%d)", user_id, attempt, self.max_retries)
        raise ConcurrencyConflict(f"Balance for user {user_id} is changing too fast; try again")

    async def _compensate(self, user_id: str, amount: int, reason: str) -> LedgerOutcome:
        try:
            await self._apply(user_id, credits_delta=amount)
        except Exception:
            logger.exception(
                "Ledger compensation failed: %d credits debited from %s were not restored (%s)",
                amount, user_id, reason,
            )
            return LedgerOutcome.FAILED
        logger.warning("Re-credited %d credits to %s after failed transfer (%s)", amount, user_id, reason)
        return LedgerOutcome.COMPENSATED

    async def _journal(
        self,
        kind: LedgerEntryKind,
        from_user_id: Optional[str],
        to_user_id: Optional[str],
        amount: int,
        reason: str,
        outcome: LedgerOutcome,
    ) -> LedgerEntry:
        entry = LedgerEntry(
            id=generate_id(),
            kind=kind,
            from_user_id=from_user_id,
            to_user_id=to_user_id,
            amount=amount,
            reason=reason,
            outcome=outcome,
            created_at=utcnow(),
        )
        return await self.journal.record(entry)
