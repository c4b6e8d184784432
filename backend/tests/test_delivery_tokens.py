"""Tests for issuing, validating and redeeming delivery tokens."""
from datetime import timedelta

import pytest

from ledger_engine.domain.common.errors import (
    AlreadyUsed,
    Expired,
    InvalidFormat,
    NotAuthorized,
    NotFoundError,
    TokenRevoked,
)
from ledger_engine.domain.delivery.codec import decode_token, encode_token
from ledger_engine.domain.delivery.models import DeliveryStatus
from ledger_engine.domain.notifications.models import NotificationKind
from ledger_engine.domain.transactions.models import TransactionStatus


async def accepted_sale(harness, users):
    product = await harness.add_product(users["seller"].user_id)
    transaction = await harness.transactions.create_request(product.id, users["buyer"])
    await harness.transactions.respond_to_offer(transaction.id, True)
    return product, transaction


async def issue(harness, users, product, transaction):
    return await harness.workflow.generate_delivery_token(
        product.id, users["seller"].user_id, users["buyer"].user_id, transaction.id
    )


class TestIssue:
    async def test_token_is_pending_and_valid_for_a_day(self, harness, users, clock):
        product, transaction = await accepted_sale(harness, users)

        token = await issue(harness, users, product, transaction)

        assert token.status == DeliveryStatus.PENDING
        assert not token.is_used
        assert token.created_at == clock()
        assert token.expires_at == clock() + timedelta(hours=24)
        decoded = decode_token(token.code)
        assert decoded.token_id == token.id
        assert decoded.product_id == product.id
        assert decoded.created_at == token.created_at

    async def test_tokens_listed_per_transaction(self, harness, users, clock):
        product, transaction = await accepted_sale(harness, users)
        first = await issue(harness, users, product, transaction)
        clock.advance(minutes=5)
        second = await issue(harness, users, product, transaction)

        listed = await harness.tokens.list_for_transaction(transaction.id)

        assert [t.id for t in listed] == [first.id, second.id]


class TestValidate:
    async def test_valid_code_returns_token_without_changes(self, harness, users):
        product, transaction = await accepted_sale(harness, users)
        token = await issue(harness, users, product, transaction)

        validated = await harness.tokens.validate(token.code)

        assert validated.id == token.id
        stored = await harness.tokens.get_token(token.id)
        assert not stored.is_used
        assert stored.status == DeliveryStatus.PENDING

    async def test_garbage_is_invalid_format(self, harness, users):
        with pytest.raises(InvalidFormat):
            await harness.tokens.validate("not a delivery code")

    async def test_unknown_token_id(self, harness, users, clock):
        product, _ = await accepted_sale(harness, users)
        with pytest.raises(NotFoundError):
            await harness.tokens.validate(encode_token("no-such-token", product.id, clock()))

    async def test_code_for_another_product_is_not_found(self, harness, users, clock):
        product, transaction = await accepted_sale(harness, users)
        token = await issue(harness, users, product, transaction)
        with pytest.raises(NotFoundError):
            await harness.tokens.validate(encode_token(token.id, "other-product", clock()))

    async def test_valid_until_the_last_instant(self, harness, users, clock):
        product, transaction = await accepted_sale(harness, users)
        token = await issue(harness, users, product, transaction)

        clock.advance(hours=24)
        assert (await harness.tokens.validate(token.code)).id == token.id

        clock.advance(seconds=1)
        with pytest.raises(Expired):
            await harness.tokens.validate(token.code)


class TestRedeem:
    async def test_redeem_completes_transaction_and_sells_product(self, harness, users):
        product, transaction = await accepted_sale(harness, users)
        token = await issue(harness, users, product, transaction)

        redemption = await harness.workflow.redeem_delivery_token(token.code, actor_id=users["buyer"].user_id)

        assert redemption.status == TransactionStatus.COMPLETED
        assert redemption.token.is_used
        assert redemption.token.status == DeliveryStatus.COMPLETED
        assert redemption.token.used_at is not None
        sold = await harness.catalog.get_product(product.id)
        assert sold.is_sold and not sold.is_reserved

    async def test_second_redeem_is_already_used_and_changes_nothing(self, harness, users):
        product, transaction = await accepted_sale(harness, users)
        token = await issue(harness, users, product, transaction)
        first = await harness.workflow.redeem_delivery_token(token.code)

        with pytest.raises(AlreadyUsed):
            await harness.workflow.redeem_delivery_token(token.code)
        with pytest.raises(AlreadyUsed):
            await harness.tokens.redeem(token.id)

        stored = await harness.tokens.get_token(token.id)
        assert stored.used_at == first.token.used_at
        current = await harness.transactions.get_transaction(transaction.id)
        assert current.status == TransactionStatus.COMPLETED
        assert current.version == first.transaction.version

    async def test_expired_token_cannot_be_redeemed(self, harness, users, clock):
        product, transaction = await accepted_sale(harness, users)
        token = await issue(harness, users, product, transaction)
        clock.advance(hours=25)

        with pytest.raises(Expired):
            await harness.workflow.redeem_delivery_token(token.code)
        with pytest.raises(Expired):
            await harness.tokens.redeem(token.id)

        stored = await harness.tokens.get_token(token.id)
        assert not stored.is_used
        assert stored.status == DeliveryStatus.PENDING
        assert (await harness.transactions.get_transaction(transaction.id)).status == TransactionStatus.ACCEPTED
        assert not (await harness.catalog.get_product(product.id)).is_sold

    async def test_outsider_cannot_redeem(self, harness, users):
        product, transaction = await accepted_sale(harness, users)
        token = await issue(harness, users, product, transaction)
        with pytest.raises(NotAuthorized):
            await harness.workflow.redeem_delivery_token(token.code, actor_id=users["other"].user_id)

    async def test_seller_redeeming_notifies_buyer(self, harness, users):
        product, transaction = await accepted_sale(harness, users)
        token = await issue(harness, users, product, transaction)

        await harness.workflow.redeem_delivery_token(token.code, actor_id=users["seller"].user_id)

        buyer_inbox = await harness.inbox.list_by_user(
            users["buyer"].user_id, kind=NotificationKind.DELIVERY_COMPLETED
        )
        assert len(buyer_inbox) == 1
        assert await harness.inbox.list_by_user(
            users["seller"].user_id, kind=NotificationKind.DELIVERY_COMPLETED
        ) == []
        assert buyer_inbox[0].action_ref == f"transactions/{transaction.id}"


class TestRevoke:
    async def test_cancel_revokes_outstanding_tokens(self, harness, users):
        product, transaction = await accepted_sale(harness, users)
        token = await issue(harness, users, product, transaction)

        await harness.workflow.cancel_transaction(transaction.id, users["buyer"].user_id)

        stored = await harness.tokens.get_token(token.id)
        assert stored.status == DeliveryStatus.CANCELLED
        assert stored.is_revoked
        with pytest.raises(TokenRevoked):
            await harness.workflow.redeem_delivery_token(token.code)
        assert not (await harness.catalog.get_product(product.id)).is_sold

    async def test_used_tokens_survive_revocation(self, harness, users):
        product, transaction = await accepted_sale(harness, users)
        token = await issue(harness, users, product, transaction)
        await harness.tokens.redeem(token.id)

        assert await harness.tokens.revoke_for_transaction(transaction.id) == 0
        assert (await harness.tokens.get_token(token.id)).status == DeliveryStatus.COMPLETED
