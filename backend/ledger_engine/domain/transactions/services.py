"""Transaction state machine: offers, responses, completion and cancellation."""
import logging
from typing import Optional

from ledger_engine.domain.catalog.models import Product, ProductKind
from ledger_engine.domain.catalog.repositories import CatalogService
from ledger_engine.domain.common.errors import (
    AlreadyReserved,
    AlreadySold,
    ConcurrencyConflict,
    HandoffStarted,
    InvalidTransition,
    NotAuthorized,
    NotFoundError,
    ReservationConflict,
    SelfTransactionNotAllowed,
    ValidationError,
)
from ledger_engine.domain.common.types import generate_id, utcnow
from ledger_engine.domain.notifications.models import (
    NotificationKind,
    Notifier,
    notify_safely,
    transaction_ref,
)
from ledger_engine.domain.reservations.services import ReservationManager
from ledger_engine.domain.transactions.models import (
    Participant,
    Transaction,
    TransactionStatus,
    can_transition,
)
from ledger_engine.domain.transactions.repositories import TransactionRepository

logger = logging.getLogger(__name__)


class TransactionService:
    """Owns the Transaction lifecycle.

    Every status change is a conditional write on (expected status, version),
    so two callers racing on the same transaction cannot both succeed.
    """

    def __init__(
        self,
        repo: TransactionRepository,
        catalog: CatalogService,
        reservations: ReservationManager,
        notifier: Optional[Notifier] = None,
    ):
        self.repo = repo
        self.catalog = catalog
        self.reservations = reservations
        self.notifier = notifier

    async def get_transaction(self, transaction_id: str) -> Transaction:
        """Get transaction by ID."""
        transaction = await self.repo.get(transaction_id)
        if transaction is None:
            raise NotFoundError("Transaction", transaction_id)
        return transaction

    async def get_incoming_offers(self, seller_id: str) -> list[Transaction]:
        """Offers received by a seller, newest first."""
        return await self.repo.list_by_seller(seller_id)

    async def get_my_offers(self, buyer_id: str) -> list[Transaction]:
        """Offers sent by a buyer, newest first."""
        return await self.repo.list_by_buyer(buyer_id)

    async def find_accepted_for_product(self, product_id: str) -> Optional[Transaction]:
        """The ACCEPTED transaction holding the reservation on product_id, if any."""
        holders = [t for t in await self.repo.list_accepted_for_product(product_id) if product_id in t.product_ids]
        if len(holders) > 1:
            logger.error("Product %s is held by %d accepted transactions", product_id, len(holders))
        return holders[0] if holders else None

    # Creation
    async def create_request(self, product_id: str, buyer: Participant) -> Transaction:
        """Request a SALE or DONATION product."""
        product = await self._get_listed_product(product_id, buyer)
        if product.kind == ProductKind.TRADE:
            raise ValidationError("Trade listings need an offered product; use a trade offer")

        transaction = self._new_transaction(product, buyer, product.kind)
        created = await self.repo.create(transaction)
        logger.info("Created %s request %s for product %s", created.kind.value, created.id, product_id)

        await notify_safely(
            self.notifier,
            created.seller_id,
            NotificationKind.NEW_OFFER,
            "You have a new request!",
            f"{buyer.display_name or 'Someone'} sent a request for '{product.title}'.",
            transaction_ref(created.id),
        )
        return created

    async def create_trade_offer(
        self,
        product_id: str,
        offered_product_id: str,
        message: Optional[str],
        buyer: Participant,
    ) -> Transaction:
        """Offer one of the buyer's own products in exchange for product_id."""
        product = await self._get_listed_product(product_id, buyer)
        if offered_product_id == product_id:
            raise ValidationError("A product cannot be traded for itself")

        offered = await self.catalog.get_product(offered_product_id)
        if offered is None:
            raise NotFoundError("Product", offered_product_id)
        if not offered.is_active or offered.is_sold:
            raise ValidationError("The offered product is no longer available")
        if offered.owner_id != buyer.user_id:
            raise ValidationError("You can only offer products you own")

        transaction = self._new_transaction(product, buyer, ProductKind.TRADE)
        transaction.offered_product_id = offered.id
        transaction.offered_product_title = offered.title
        transaction.offer_message = message
        created = await self.repo.create(transaction)
        logger.info("Created trade offer %s: %s for %s", created.id, offered.id, product_id)

        await notify_safely(
            self.notifier,
            created.seller_id,
            NotificationKind.NEW_OFFER,
            "You have a new trade offer!",
            f"{buyer.display_name or 'Someone'} offered '{offered.title}' for your '{product.title}'.",
            transaction_ref(created.id),
        )
        return created

    # Seller response
    async def respond_to_offer(
        self, transaction_id: str, accept: bool, actor_id: Optional[str] = None
    ) -> Transaction:
        """Accept or reject a pending offer.

        Re-responding to an ACCEPTED or COMPLETED transaction is a no-op that
        returns the current state without repeating any side effect.
        """
        transaction = await self.get_transaction(transaction_id)
        if actor_id is not None and actor_id != transaction.seller_id:
            raise NotAuthorized("Only the seller can respond to this offer")
        if transaction.status in (TransactionStatus.ACCEPTED, TransactionStatus.COMPLETED):
            logger.info("Transaction %s already answered (%s)", transaction_id, transaction.status.value)
            return transaction

        target = TransactionStatus.ACCEPTED if accept else TransactionStatus.REJECTED
        self._check_transition(transaction, target)

        claimed = await self._write_status(transaction, target)
        if claimed is None:
            current = await self.get_transaction(transaction_id)
            if current.status in (TransactionStatus.ACCEPTED, TransactionStatus.COMPLETED):
                logger.info("Transaction %s was answered concurrently", transaction_id)
                return current
            raise ConcurrencyConflict(f"Transaction {transaction_id} changed while responding")

        if accept:
            await self._reserve_for(claimed)
            kind, title, verb = NotificationKind.OFFER_ACCEPTED, "Your offer was accepted!", "accepted"
        else:
            kind, title, verb = NotificationKind.OFFER_REJECTED, "Your offer was declined", "declined"

        logger.info("Transaction %s %s", transaction_id, claimed.status.value)
        await notify_safely(
            self.notifier,
            claimed.buyer_id,
            kind,
            title,
            f"{claimed.seller_name or 'The seller'} {verb} your offer for '{claimed.product_title}'.",
            transaction_ref(claimed.id),
        )
        return claimed

    # Completion / cancellation
    async def complete_via_delivery(self, transaction_id: str, actor_id: Optional[str] = None) -> Transaction:
        """Close an accepted transaction after its delivery was confirmed.

        Every product still reserved for the transaction is finalized as sold.
        The notification goes to the counterparty of actor_id (the seller when
        no actor is given, since the receiving buyer confirms delivery).
        """
        transaction = await self.get_transaction(transaction_id)
        if transaction.status == TransactionStatus.COMPLETED:
            return transaction
        self._check_transition(transaction, TransactionStatus.COMPLETED)

        completed = await self._write_status(transaction, TransactionStatus.COMPLETED)
        if completed is None:
            current = await self.get_transaction(transaction_id)
            if current.status == TransactionStatus.COMPLETED:
                return current
            raise ConcurrencyConflict(f"Transaction {transaction_id} changed while completing")

        for product_id in completed.product_ids:
            try:
                await self.reservations.finalize_sale(product_id)
            except AlreadySold:
                logger.debug("Product %s was already finalized by its delivery token", product_id)

        logger.info("Transaction %s completed via delivery", transaction_id)
        recipient = completed.counterparty_of(actor_id) if actor_id else completed.seller_id
        await notify_safely(
            self.notifier,
            recipient,
            NotificationKind.DELIVERY_COMPLETED,
            "Delivery completed",
            f"The exchange for '{completed.product_title}' is complete.",
            transaction_ref(completed.id),
        )
        return completed

    async def cancel(self, transaction_id: str, actor_id: str) -> Transaction:
        """Cancel a PENDING or ACCEPTED transaction; releases any reservation it holds.

        An accepted trade with one product already handed over cannot be
        cancelled (HandoffStarted): releasing only the other side would leave
        a half-done exchange.
        """
        transaction = await self.get_transaction(transaction_id)
        if not transaction.is_party(actor_id):
            raise NotAuthorized("Only the buyer or the seller can cancel this transaction")
        self._check_transition(transaction, TransactionStatus.CANCELLED)

        held_reservation = transaction.status == TransactionStatus.ACCEPTED
        if held_reservation:
            await self.ensure_nothing_handed_over(transaction)
        cancelled = await self._write_status(transaction, TransactionStatus.CANCELLED)
        if cancelled is None:
            raise ConcurrencyConflict(f"Transaction {transaction_id} changed while cancelling")

        if held_reservation:
            for product_id in cancelled.product_ids:
                await self.reservations.release(product_id)

        logger.info("Transaction %s cancelled by %s", transaction_id, actor_id)
        await notify_safely(
            self.notifier,
            cancelled.counterparty_of(actor_id),
            NotificationKind.OFFER_CANCELLED,
            "An exchange was cancelled",
            f"The exchange for '{cancelled.product_title}' was cancelled.",
            transaction_ref(cancelled.id),
        )
        return cancelled

    async def ensure_nothing_handed_over(self, transaction: Transaction) -> None:
        for product_id in transaction.product_ids:
            product = await self.catalog.get_product(product_id)
            if product is not None and product.is_sold:
                raise HandoffStarted(transaction.id, product_id)

    # Helpers
    async def _get_listed_product(self, product_id: str, buyer: Participant) -> Product:
        product = await self.catalog.get_product(product_id)
        if product is None:
            raise NotFoundError("Product", product_id)
        if buyer.user_id == product.owner_id:
            raise SelfTransactionNotAllowed()
        if not product.is_active or product.is_sold:
            raise ValidationError("This product is no longer available")
        return product

    @staticmethod
    def _new_transaction(product: Product, buyer: Participant, kind: ProductKind) -> Transaction:
        now = utcnow()
        return Transaction(
            id=generate_id(),
            seller_id=product.owner_id,
            seller_name=product.owner_name,
            buyer_id=buyer.user_id,
            buyer_name=buyer.display_name,
            product_id=product.id,
            product_title=product.title,
            product_thumbnail_url=product.thumbnail_url,
            kind=kind,
            status=TransactionStatus.PENDING,
            created_at=now,
            updated_at=now,
        )

    @staticmethod
    def _check_transition(transaction: Transaction, target: TransactionStatus) -> None:
        if not can_transition(transaction.status, target):
            raise InvalidTransition("Transaction", transaction.status.value, target.value)

    async def _write_status(self, transaction: Transaction, target: TransactionStatus) -> Optional[Transaction]:
        return await self.repo.update_status(
            transaction.id,
            expected_status=transaction.status,
            expected_version=transaction.version,
            new_status=target,
            updated_at=utcnow(),
        )

    async def _reserve_for(self, accepted: Transaction) -> None:
        """Lock the transaction's products; on failure put the transaction back to PENDING."""
        offered = accepted.offered_product_id if accepted.kind == ProductKind.TRADE else None
        try:
            await self.reservations.reserve_pair(accepted.product_id, offered)
        except Exception as exc:
            reverted = await self.repo.update_status(
                accepted.id,
                expected_status=TransactionStatus.ACCEPTED,
                expected_version=accepted.version,
                new_status=TransactionStatus.PENDING,
                updated_at=utcnow(),
            )
            if reverted is None:
                logger.error("Could not roll transaction %s back to PENDING after reservation failure", accepted.id)
            if isinstance(exc, (AlreadyReserved, AlreadySold)):
                raise ReservationConflict(accepted.id, exc.product_id) from exc
            raise
