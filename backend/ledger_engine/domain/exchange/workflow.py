"""Exchange workflow: the public surface that coordinates the engine's services."""
import logging
from typing import Optional

from ledger_engine.domain.catalog.models import Product
from ledger_engine.domain.catalog.repositories import CatalogService
from ledger_engine.domain.common.errors import HandoffStarted, NotAuthorized, NotFoundError, ValidationError
from ledger_engine.domain.delivery.models import DeliveryToken
from ledger_engine.domain.delivery.services import DeliveryTokenService, Redemption
from ledger_engine.domain.service_sharing.models import ServiceRequest
from ledger_engine.domain.service_sharing.services import ServiceSharingService
from ledger_engine.domain.surprise_box.services import SurpriseBoxService
from ledger_engine.domain.transactions.models import Participant, Transaction, TransactionStatus
from ledger_engine.domain.transactions.services import TransactionService

logger = logging.getLogger(__name__)


class ExchangeWorkflow:
    """Entry point used by the API layer.

    Holds no state of its own; each method delegates to the owning service
    and adds the cross-service rules (token preconditions, token revocation on
    cancel, optional token issuing on accept).
    """

    def __init__(
        self,
        transactions: TransactionService,
        tokens: DeliveryTokenService,
        service_sharing: ServiceSharingService,
        surprise_box: SurpriseBoxService,
        catalog: CatalogService,
        issue_tokens_on_accept: bool = False,
    ):
        self.transactions = transactions
        self.tokens = tokens
        self.service_sharing = service_sharing
        self.surprise_box = surprise_box
        self.catalog = catalog
        self.issue_tokens_on_accept = issue_tokens_on_accept

    async def create_purchase_request(self, product_id: str, buyer: Participant) -> Transaction:
        return await self.transactions.create_request(product_id, buyer)

    async def create_trade_offer(
        self,
        product_id: str,
        offered_product_id: str,
        message: Optional[str],
        buyer: Participant,
    ) -> Transaction:
        return await self.transactions.create_trade_offer(product_id, offered_product_id, message, buyer)

    async def respond_to_offer(
        self, transaction_id: str, accept: bool, actor_id: Optional[str] = None
    ) -> Transaction:
        """Accept or reject; with issue_tokens_on_accept, a fresh accept also issues delivery codes."""
        before = await self.transactions.get_transaction(transaction_id)
        result = await self.transactions.respond_to_offer(transaction_id, accept, actor_id=actor_id)
        if (
            self.issue_tokens_on_accept
            and before.status == TransactionStatus.PENDING
            and result.status == TransactionStatus.ACCEPTED
        ):
            await self._issue_tokens(result)
        return result

    async def cancel_transaction(self, transaction_id: str, actor_id: str) -> Transaction:
        """Cancel and revoke any delivery codes still outstanding for the transaction.

        Refused once any of its codes has been redeemed.
        """
        for token in await self.tokens.list_for_transaction(transaction_id):
            if token.is_used:
                raise HandoffStarted(transaction_id, token.product_id)
        cancelled = await self.transactions.cancel(transaction_id, actor_id)
        await self.tokens.revoke_for_transaction(cancelled.id)
        return cancelled

    async def generate_delivery_token(
        self,
        product_id: str,
        seller_id: str,
        buyer_id: str,
        transaction_id: Optional[str] = None,
    ) -> DeliveryToken:
        """Issue a delivery code for a product that is reserved for a handoff.

        The product must be reserved by an ACCEPTED transaction that has
        seller_id handing it to buyer_id. Without transaction_id, that
        transaction is looked up from the product and the token is bound to it.
        """
        product = await self._get_product(product_id)
        if seller_id == buyer_id:
            raise ValidationError("Seller and buyer must be different users")
        if product.owner_id != seller_id:
            raise NotAuthorized("Only the current owner can hand this product over")
        if product.is_sold:
            raise ValidationError("This product has already been handed over")
        if not product.is_reserved:
            raise ValidationError("The product must be reserved by an accepted offer before a delivery code is issued")

        if transaction_id is None:
            transaction = await self.transactions.find_accepted_for_product(product_id)
            if transaction is None:
                raise ValidationError("No accepted offer holds this product")
        else:
            transaction = await self.transactions.get_transaction(transaction_id)
            if transaction.status != TransactionStatus.ACCEPTED:
                raise ValidationError(f"Transaction {transaction_id} is {transaction.status.value}, not ACCEPTED")
        if (product_id, seller_id, buyer_id) not in self._handoffs(transaction):
            raise ValidationError("The delivery code does not match the accepted offer for this product")

        return await self.tokens.create(product_id, product.title, seller_id, buyer_id, transaction.id)

    async def validate_delivery_token(self, raw_code: str) -> DeliveryToken:
        return await self.tokens.validate(raw_code)

    async def redeem_delivery_token(self, raw_code: str, actor_id: Optional[str] = None) -> Redemption:
        """Check a scanned code, then consume it."""
        token = await self.tokens.validate(raw_code)
        if actor_id is not None and actor_id not in (token.buyer_id, token.seller_id):
            raise NotAuthorized("Only the parties of this handoff can confirm it")
        return await self.tokens.redeem(token.id, actor_id=actor_id)

    async def complete_service_request(self, request_id: str, actor_id: str) -> ServiceRequest:
        return await self.service_sharing.complete_request(request_id, actor_id)

    async def redeem_surprise_box(self, user_id: str) -> Product:
        return await self.surprise_box.redeem(user_id)

    async def _get_product(self, product_id: str) -> Product:
        product = await self.catalog.get_product(product_id)
        if product is None:
            raise NotFoundError("Product", product_id)
        return product

    @staticmethod
    def _handoffs(transaction: Transaction) -> list[tuple[str, str, str]]:
        """(product, from, to) for every product that changes hands."""
        handoffs = [(transaction.product_id, transaction.seller_id, transaction.buyer_id)]
        if transaction.offered_product_id and transaction.offered_product_id in transaction.product_ids:
            handoffs.append((transaction.offered_product_id, transaction.buyer_id, transaction.seller_id))
        return handoffs

    async def _issue_tokens(self, transaction: Transaction) -> None:
        existing = await self.tokens.list_for_transaction(transaction.id)
        if existing:
            return
        titles = {transaction.product_id: transaction.product_title}
        if transaction.offered_product_id:
            titles[transaction.offered_product_id] = transaction.offered_product_title
        for product_id, from_id, to_id in self._handoffs(transaction):
            await self.tokens.create(product_id, titles.get(product_id), from_id, to_id, transaction.id)
        logger.info("Issued delivery codes for accepted transaction %s", transaction.id)
