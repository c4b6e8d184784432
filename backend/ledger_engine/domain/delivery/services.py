"""Delivery token store: issue, validate and redeem single-use handoff codes."""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from ledger_engine.domain.catalog.repositories import CatalogService
from ledger_engine.domain.common.errors import (
    AlreadySold,
    AlreadyUsed,
    ConcurrencyConflict,
    Expired,
    InvalidFormat,
    NotFoundError,
    TokenRevoked,
)
from ledger_engine.domain.common.types import generate_id, utcnow
from ledger_engine.domain.delivery.codec import DEFAULT_PREFIX, MalformedToken, decode_token, encode_token
from ledger_engine.domain.delivery.models import DeliveryStatus, DeliveryToken
from ledger_engine.domain.delivery.repositories import DeliveryTokenRepository
from ledger_engine.domain.reservations.services import ReservationManager
from ledger_engine.domain.transactions.models import Transaction, TransactionStatus
from ledger_engine.domain.transactions.services import TransactionService

logger = logging.getLogger(__name__)


@dataclass
class Redemption:
    """Outcome of consuming a delivery token."""
    token: DeliveryToken
    transaction: Optional[Transaction]

    @property
    def status(self) -> Optional[TransactionStatus]:
        """Stored status of the settled transaction; None when no transaction held the product."""
        return self.transaction.status if self.transaction else None


class DeliveryTokenService:
    """Lifecycle of delivery tokens.

    Expired tokens are never deleted: they stay queryable for audit and can
    no longer be redeemed.
    """

    def __init__(
        self,
        repo: DeliveryTokenRepository,
        transactions: TransactionService,
        reservations: ReservationManager,
        catalog: CatalogService,
        ttl_hours: int = 24,
        prefix: str = DEFAULT_PREFIX,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.repo = repo
        self.transactions = transactions
        self.reservations = reservations
        self.catalog = catalog
        self.ttl = timedelta(hours=ttl_hours)
        self.prefix = prefix
        self.clock = clock

    async def create(
        self,
        product_id: str,
        product_title: Optional[str],
        seller_id: str,
        buyer_id: str,
        transaction_id: Optional[str] = None,
    ) -> DeliveryToken:
        """Issue a new PENDING token valid for the configured TTL."""
        now = self.clock()
        token_id = generate_id()
        token = DeliveryToken(
            id=token_id,
            code=encode_token(token_id, product_id, now, prefix=self.prefix),
            product_id=product_id,
            product_title=product_title,
            seller_id=seller_id,
            buyer_id=buyer_id,
            transaction_id=transaction_id,
            created_at=now,
            expires_at=now + self.ttl,
            is_used=False,
            used_at=None,
            status=DeliveryStatus.PENDING,
        )
        created = await self.repo.create(token)
        logger.info("Issued delivery token %s for product %s (expires %s)", created.id, product_id, created.expires_at)
        return created

    async def get_token(self, token_id: str) -> DeliveryToken:
        """Get token by ID."""
        token = await self.repo.get(token_id)
        if token is None:
            raise NotFoundError("DeliveryToken", token_id)
        return token

    async def list_for_transaction(self, transaction_id: str) -> list[DeliveryToken]:
        """Tokens bound to a transaction, expired and used ones included."""
        return await self.repo.list_for_transaction(transaction_id)

    async def validate(self, raw_code: str) -> DeliveryToken:
        """Check a scanned code without changing anything."""
        decoded = decode_token(raw_code, prefix=self.prefix)
        if isinstance(decoded, MalformedToken):
            raise InvalidFormat(decoded.reason)

        token = await self.repo.get(decoded.token_id)
        if token is None or token.product_id != decoded.product_id:
            raise NotFoundError("DeliveryToken", decoded.token_id)
        self._check_redeemable(token, self.clock())
        return token

    async def redeem(self, token_id: str, actor_id: Optional[str] = None) -> Redemption:
        """Consume a token exactly once and settle what it is bound to.

        The used flag is written with a conditional update that re-checks
        used/cancelled/expired in the same statement; a losing or repeated
        call raises and performs no side effect.
        """
        await self.get_token(token_id)
        used = await self.repo.mark_used(token_id, self.clock())
        if used is None:
            current = await self.get_token(token_id)
            self._check_redeemable(current, self.clock())
            raise ConcurrencyConflict(f"Delivery code {token_id} changed while redeeming")

        logger.info("Delivery token %s redeemed for product %s", token_id, used.product_id)
        try:
            await self.reservations.finalize_sale(used.product_id)
        except AlreadySold:
            logger.info("Product %s was already finalized", used.product_id)

        # A scan without an actor is the receiver confirming, so the giver gets the notice.
        confirmed_by = actor_id or used.buyer_id
        transaction = await self._holding_transaction(used)
        if transaction is not None:
            transaction = await self._settle(transaction, confirmed_by)
        return Redemption(token=used, transaction=transaction)

    async def revoke_for_transaction(self, transaction_id: str) -> int:
        """Cancel outstanding tokens of a cancelled transaction."""
        revoked = await self.repo.revoke_for_transaction(transaction_id)
        if revoked:
            logger.info("Revoked %d delivery token(s) of transaction %s", revoked, transaction_id)
        return revoked

    async def _holding_transaction(self, token: DeliveryToken) -> Optional[Transaction]:
        """The bound transaction, or for an unbound token the accepted one that reserved its product."""
        if token.transaction_id:
            return await self.transactions.get_transaction(token.transaction_id)
        holder = await self.transactions.find_accepted_for_product(token.product_id)
        if holder is None:
            logger.warning("No accepted transaction holds product %s of unbound token %s", token.product_id, token.id)
        return holder

    async def _settle(self, transaction: Transaction, actor_id: str) -> Transaction:
        """Complete the transaction once every product in it has been handed over."""
        if transaction.status != TransactionStatus.ACCEPTED:
            return transaction
        for product_id in transaction.product_ids:
            product = await self.catalog.get_product(product_id)
            if product is None or not product.is_sold:
                logger.info("Transaction %s waiting for delivery of product %s", transaction.id, product_id)
                return transaction
        return await self.transactions.complete_via_delivery(transaction.id, actor_id=actor_id)

    @staticmethod
    def _check_redeemable(token: DeliveryToken, now: datetime) -> None:
        if token.is_used:
            raise AlreadyUsed(token.id)
        if token.is_revoked:
            raise TokenRevoked(token.id)
        if token.is_expired(now):
            raise Expired(token.id)
