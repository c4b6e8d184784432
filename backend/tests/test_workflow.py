"""End-to-end exchange scenarios through the workflow facade."""
from datetime import timedelta

import pytest

from ledger_engine.domain.catalog.models import ProductKind
from ledger_engine.domain.common.errors import HandoffStarted, NotAuthorized, NotFoundError, ValidationError
from ledger_engine.domain.delivery.models import DeliveryStatus
from ledger_engine.domain.notifications.models import NotificationKind
from ledger_engine.domain.transactions.models import TransactionStatus

from conftest import Harness


class TestSaleScenario:
    async def test_request_accept_deliver(self, harness, users, clock):
        seller, buyer = users["seller"], users["buyer"]
        product = await harness.add_product(seller.user_id, title="Calculus textbook")

        transaction = await harness.workflow.create_purchase_request(product.id, buyer)
        assert transaction.status == TransactionStatus.PENDING

        accepted = await harness.workflow.respond_to_offer(transaction.id, True, actor_id=seller.user_id)
        assert accepted.status == TransactionStatus.ACCEPTED
        assert (await harness.catalog.get_product(product.id)).is_reserved

        token = await harness.workflow.generate_delivery_token(
            product.id, seller.user_id, buyer.user_id, transaction.id
        )
        assert token.expires_at == clock() + timedelta(hours=24)

        clock.advance(hours=2)
        redemption = await harness.workflow.redeem_delivery_token(token.code, actor_id=buyer.user_id)

        assert redemption.status == TransactionStatus.COMPLETED
        done = await harness.workflow.transactions.get_transaction(transaction.id)
        assert done.status == TransactionStatus.COMPLETED
        sold = await harness.catalog.get_product(product.id)
        assert sold.is_sold and not sold.is_reserved
        seller_kinds = [n.kind for n in await harness.inbox.list_by_user(seller.user_id)]
        assert NotificationKind.NEW_OFFER in seller_kinds
        assert NotificationKind.DELIVERY_COMPLETED in seller_kinds


class TestTradeScenario:
    async def test_trade_completes_after_both_handoffs(self, harness, users):
        seller, buyer = users["seller"], users["buyer"]
        lamp = await harness.add_product(seller.user_id, kind=ProductKind.TRADE, title="Desk lamp")
        phones = await harness.add_product(buyer.user_id, title="Headphones")
        transaction = await harness.workflow.create_trade_offer(lamp.id, phones.id, "swap?", buyer)
        await harness.workflow.respond_to_offer(transaction.id, True, actor_id=seller.user_id)

        lamp_token = await harness.workflow.generate_delivery_token(
            lamp.id, seller.user_id, buyer.user_id, transaction.id
        )
        phones_token = await harness.workflow.generate_delivery_token(
            phones.id, buyer.user_id, seller.user_id, transaction.id
        )

        first = await harness.workflow.redeem_delivery_token(lamp_token.code, actor_id=buyer.user_id)
        assert first.status == TransactionStatus.ACCEPTED

        second = await harness.workflow.redeem_delivery_token(phones_token.code, actor_id=seller.user_id)
        assert second.status == TransactionStatus.COMPLETED
        assert (await harness.catalog.get_product(lamp.id)).is_sold
        assert (await harness.catalog.get_product(phones.id)).is_sold

    async def test_half_delivered_trade_cannot_be_cancelled(self, harness, users):
        seller, buyer = users["seller"], users["buyer"]
        lamp = await harness.add_product(seller.user_id, kind=ProductKind.TRADE, title="Desk lamp")
        phones = await harness.add_product(buyer.user_id, title="Headphones")
        transaction = await harness.workflow.create_trade_offer(lamp.id, phones.id, None, buyer)
        await harness.workflow.respond_to_offer(transaction.id, True)
        lamp_token = await harness.workflow.generate_delivery_token(lamp.id, seller.user_id, buyer.user_id)
        phones_token = await harness.workflow.generate_delivery_token(phones.id, buyer.user_id, seller.user_id)
        await harness.workflow.redeem_delivery_token(lamp_token.code, actor_id=buyer.user_id)

        with pytest.raises(HandoffStarted):
            await harness.workflow.cancel_transaction(transaction.id, buyer.user_id)

        assert (await harness.transactions.get_transaction(transaction.id)).status == TransactionStatus.ACCEPTED
        assert (await harness.tokens.get_token(phones_token.id)).status == DeliveryStatus.PENDING
        finished = await harness.workflow.redeem_delivery_token(phones_token.code, actor_id=seller.user_id)
        assert finished.status == TransactionStatus.COMPLETED

    async def test_handoff_direction_is_checked(self, harness, users):
        seller, buyer = users["seller"], users["buyer"]
        lamp = await harness.add_product(seller.user_id, kind=ProductKind.TRADE)
        phones = await harness.add_product(buyer.user_id)
        transaction = await harness.workflow.create_trade_offer(lamp.id, phones.id, None, buyer)
        await harness.workflow.respond_to_offer(transaction.id, True)

        # Headphones travel buyer -> seller, not the other way round
        with pytest.raises(NotAuthorized):
            await harness.workflow.generate_delivery_token(phones.id, seller.user_id, buyer.user_id, transaction.id)


class TestGenerateTokenPreconditions:
    async def test_unknown_product(self, harness, users):
        with pytest.raises(NotFoundError):
            await harness.workflow.generate_delivery_token("missing", users["seller"].user_id, users["buyer"].user_id)

    async def test_product_must_be_reserved(self, harness, users):
        product = await harness.add_product(users["seller"].user_id)
        with pytest.raises(ValidationError):
            await harness.workflow.generate_delivery_token(
                product.id, users["seller"].user_id, users["buyer"].user_id
            )

    async def test_only_owner_issues(self, harness, users):
        product = await harness.add_product(users["seller"].user_id)
        await harness.reservations.reserve(product.id)
        with pytest.raises(NotAuthorized):
            await harness.workflow.generate_delivery_token(product.id, users["other"].user_id, users["buyer"].user_id)

    async def test_seller_and_buyer_differ(self, harness, users):
        product = await harness.add_product(users["seller"].user_id)
        await harness.reservations.reserve(product.id)
        with pytest.raises(ValidationError):
            await harness.workflow.generate_delivery_token(
                product.id, users["seller"].user_id, users["seller"].user_id
            )

    async def test_transaction_must_be_accepted(self, harness, users):
        product = await harness.add_product(users["seller"].user_id)
        pending = await harness.workflow.create_purchase_request(product.id, users["buyer"])
        await harness.reservations.reserve(product.id)

        with pytest.raises(ValidationError):
            await harness.workflow.generate_delivery_token(
                product.id, users["seller"].user_id, users["buyer"].user_id, pending.id
            )

    async def test_buyer_must_match_transaction(self, harness, users):
        product = await harness.add_product(users["seller"].user_id)
        transaction = await harness.workflow.create_purchase_request(product.id, users["buyer"])
        await harness.workflow.respond_to_offer(transaction.id, True)

        with pytest.raises(ValidationError):
            await harness.workflow.generate_delivery_token(
                product.id, users["seller"].user_id, users["other"].user_id, transaction.id
            )

    async def test_code_without_transaction_binds_to_accepted_offer(self, harness, users):
        seller, buyer = users["seller"], users["buyer"]
        product = await harness.add_product(seller.user_id)
        transaction = await harness.workflow.create_purchase_request(product.id, buyer)
        await harness.workflow.respond_to_offer(transaction.id, True)

        token = await harness.workflow.generate_delivery_token(product.id, seller.user_id, buyer.user_id)
        assert token.transaction_id == transaction.id

        redemption = await harness.workflow.redeem_delivery_token(token.code)

        assert redemption.transaction.id == transaction.id
        assert redemption.status == TransactionStatus.COMPLETED
        stored = await harness.transactions.get_transaction(transaction.id)
        assert stored.status == TransactionStatus.COMPLETED
        assert (await harness.catalog.get_product(product.id)).is_sold

    async def test_code_without_transaction_must_match_the_accepted_buyer(self, harness, users):
        product = await harness.add_product(users["seller"].user_id)
        transaction = await harness.workflow.create_purchase_request(product.id, users["buyer"])
        await harness.workflow.respond_to_offer(transaction.id, True)

        with pytest.raises(ValidationError):
            await harness.workflow.generate_delivery_token(
                product.id, users["seller"].user_id, users["other"].user_id
            )
        assert await harness.tokens.list_for_transaction(transaction.id) == []

    async def test_reservation_without_accepted_offer_is_refused(self, harness, users):
        product = await harness.add_product(users["seller"].user_id)
        await harness.reservations.reserve(product.id)

        with pytest.raises(ValidationError):
            await harness.workflow.generate_delivery_token(
                product.id, users["seller"].user_id, users["buyer"].user_id
            )


class TestUnboundTokenRedemption:
    async def test_settles_the_transaction_holding_the_product(self, harness, users):
        seller, buyer = users["seller"], users["buyer"]
        product = await harness.add_product(seller.user_id, title="Desk lamp")
        transaction = await harness.workflow.create_purchase_request(product.id, buyer)
        await harness.workflow.respond_to_offer(transaction.id, True)
        token = await harness.tokens.create(product.id, product.title, seller.user_id, buyer.user_id)

        redemption = await harness.workflow.redeem_delivery_token(token.code)

        assert redemption.token.transaction_id is None
        assert redemption.transaction.id == transaction.id
        stored = await harness.transactions.get_transaction(transaction.id)
        assert stored.status == TransactionStatus.COMPLETED

    async def test_scan_without_actor_notifies_the_giver(self, harness, users):
        seller, buyer = users["seller"], users["buyer"]
        product = await harness.add_product(seller.user_id)
        transaction = await harness.workflow.create_purchase_request(product.id, buyer)
        await harness.workflow.respond_to_offer(transaction.id, True)
        token = await harness.tokens.create(product.id, product.title, seller.user_id, buyer.user_id)

        await harness.workflow.redeem_delivery_token(token.code)

        seller_done = await harness.inbox.list_by_user(seller.user_id, kind=NotificationKind.DELIVERY_COMPLETED)
        buyer_done = await harness.inbox.list_by_user(buyer.user_id, kind=NotificationKind.DELIVERY_COMPLETED)
        assert len(seller_done) == 1
        assert buyer_done == []

    async def test_no_holding_transaction_reports_no_status(self, harness, users):
        product = await harness.add_product(users["seller"].user_id)
        await harness.reservations.reserve(product.id)
        token = await harness.tokens.create(product.id, None, users["seller"].user_id, users["buyer"].user_id)

        redemption = await harness.workflow.redeem_delivery_token(token.code)

        assert redemption.transaction is None
        assert redemption.status is None
        assert (await harness.catalog.get_product(product.id)).is_sold


class TestInboxFailure:
    async def test_failed_inbox_write_does_not_break_the_exchange(self, harness, users, monkeypatch):
        seller, buyer = users["seller"], users["buyer"]
        product = await harness.add_product(seller.user_id)
        write_inbox = harness.notifier.repo.create

        async def without_recipient(user_id, *args, **kwargs):
            return await write_inbox(None, *args, **kwargs)

        monkeypatch.setattr(harness.notifier.repo, "create", without_recipient)
        transaction = await harness.workflow.create_purchase_request(product.id, buyer)
        monkeypatch.undo()

        accepted = await harness.workflow.respond_to_offer(transaction.id, True, actor_id=seller.user_id)

        assert accepted.status == TransactionStatus.ACCEPTED
        assert await harness.inbox.list_by_user(seller.user_id) == []
        [notice] = await harness.inbox.list_by_user(buyer.user_id)
        assert notice.kind == NotificationKind.OFFER_ACCEPTED


class TestIssueTokensOnAccept:
    @pytest.fixture
    def auto_harness(self, db_session, clock):
        return Harness(db_session, clock, issue_tokens_on_accept=True)

    async def test_accept_issues_one_token_per_handoff(self, auto_harness, users):
        seller, buyer = users["seller"], users["buyer"]
        lamp = await auto_harness.add_product(seller.user_id, kind=ProductKind.TRADE)
        phones = await auto_harness.add_product(buyer.user_id)
        transaction = await auto_harness.workflow.create_trade_offer(lamp.id, phones.id, None, buyer)

        await auto_harness.workflow.respond_to_offer(transaction.id, True, actor_id=seller.user_id)
        await auto_harness.workflow.respond_to_offer(transaction.id, True, actor_id=seller.user_id)

        tokens = await auto_harness.tokens.list_for_transaction(transaction.id)
        assert sorted((t.product_id, t.seller_id) for t in tokens) == sorted(
            [(lamp.id, seller.user_id), (phones.id, buyer.user_id)]
        )
        assert all(t.status == DeliveryStatus.PENDING for t in tokens)

    async def test_reject_issues_nothing(self, auto_harness, users):
        product = await auto_harness.add_product(users["seller"].user_id)
        transaction = await auto_harness.workflow.create_purchase_request(product.id, users["buyer"])

        await auto_harness.workflow.respond_to_offer(transaction.id, False)

        assert await auto_harness.tokens.list_for_transaction(transaction.id) == []
