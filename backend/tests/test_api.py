"""HTTP API tests: routing, caller identity and error mapping."""
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ledger_engine.domain.catalog.models import ProductKind

from conftest import Harness


@pytest.fixture
async def api(db_engine, clock):
    """HTTP client with get_db pointed at the test database, plus a harness for seeding."""
    from ledger_engine.main import app
    from ledger_engine.api.deps import get_db

    session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with session_factory() as seed_session:
        harness = Harness(seed_session, clock)
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            yield {"client": client, "harness": harness}
    app.dependency_overrides.pop(get_db, None)


def as_user(participant) -> dict:
    return {"X-User-Id": participant.user_id, "X-User-Name": participant.display_name}


async def seed_users(harness):
    return (
        await harness.add_user("Ayse", points=0, credits=10),
        await harness.add_user("Mehmet", points=120, credits=10),
    )


class TestHealth:
    async def test_health(self, api):
        r = await api["client"].get("/health")
        assert r.status_code == 200
        assert r.json()["status"] == "ok"


class TestIdentity:
    async def test_missing_user_header_is_401(self, api):
        r = await api["client"].get("/v1/offers/incoming")
        assert r.status_code == 401


class TestOffersApi:
    async def test_request_accept_and_deliver(self, api):
        client, harness = api["client"], api["harness"]
        seller, buyer = await seed_users(harness)
        product = await harness.add_product(seller.user_id)

        r = await client.post("/v1/offers/requests", json={"product_id": product.id}, headers=as_user(buyer))
        assert r.status_code == 201
        offer = r.json()
        assert offer["status"] == "PENDING"
        assert offer["buyer_name"] == "Mehmet"

        r = await client.get("/v1/offers/incoming", headers=as_user(seller))
        assert [t["id"] for t in r.json()] == [offer["id"]]

        r = await client.post(f"/v1/offers/{offer['id']}/respond", json={"accept": True}, headers=as_user(seller))
        assert r.status_code == 200
        assert r.json()["status"] == "ACCEPTED"

        r = await client.post(
            "/v1/delivery/tokens",
            json={"product_id": product.id, "buyer_id": buyer.user_id, "transaction_id": offer["id"]},
            headers=as_user(seller),
        )
        assert r.status_code == 201
        token = r.json()
        assert token["code"].startswith("KAMPAY|")
        assert token["is_expired"] is False

        r = await client.post("/v1/delivery/validate", json={"code": token["code"]}, headers=as_user(buyer))
        assert r.status_code == 200

        r = await client.post("/v1/delivery/redeem", json={"code": token["code"]}, headers=as_user(buyer))
        assert r.status_code == 200
        assert r.json()["transaction_status"] == "COMPLETED"

        r = await client.post("/v1/delivery/redeem", json={"code": token["code"]}, headers=as_user(buyer))
        assert r.status_code == 409
        assert r.json()["error_code"] == "already_used"

        r = await client.get(f"/v1/delivery/transactions/{offer['id']}/tokens", headers=as_user(seller))
        assert [t["is_used"] for t in r.json()] == [True]

    async def test_self_request_is_422(self, api):
        client, harness = api["client"], api["harness"]
        seller, _ = await seed_users(harness)
        product = await harness.add_product(seller.user_id)

        r = await client.post("/v1/offers/requests", json={"product_id": product.id}, headers=as_user(seller))

        assert r.status_code == 422
        assert r.json()["error_code"] == "self_transaction_not_allowed"

    async def test_buyer_cannot_accept_own_offer(self, api):
        client, harness = api["client"], api["harness"]
        seller, buyer = await seed_users(harness)
        product = await harness.add_product(seller.user_id)
        r = await client.post("/v1/offers/requests", json={"product_id": product.id}, headers=as_user(buyer))

        r = await client.post(f"/v1/offers/{r.json()['id']}/respond", json={"accept": True}, headers=as_user(buyer))

        assert r.status_code == 403
        assert r.json()["error_code"] == "not_authorized"

    async def test_unknown_transaction_is_404(self, api):
        client, harness = api["client"], api["harness"]
        seller, _ = await seed_users(harness)
        r = await client.get("/v1/offers/does-not-exist", headers=as_user(seller))
        assert r.status_code == 404
        assert r.json()["error_code"] == "not_found"

    async def test_second_accept_for_same_product_is_409(self, api):
        client, harness = api["client"], api["harness"]
        seller, buyer = await seed_users(harness)
        other = await harness.add_user("Zeynep")
        product = await harness.add_product(seller.user_id)
        first = (await client.post("/v1/offers/requests", json={"product_id": product.id}, headers=as_user(buyer))).json()
        second = (await client.post("/v1/offers/requests", json={"product_id": product.id}, headers=as_user(other))).json()
        await client.post(f"/v1/offers/{first['id']}/respond", json={"accept": True}, headers=as_user(seller))

        r = await client.post(f"/v1/offers/{second['id']}/respond", json={"accept": True}, headers=as_user(seller))

        assert r.status_code == 409
        assert r.json()["error_code"] == "reservation_conflict"


class TestDeliveryApi:
    async def test_garbage_code_is_invalid_format(self, api):
        client, harness = api["client"], api["harness"]
        _, buyer = await seed_users(harness)
        r = await client.post("/v1/delivery/validate", json={"code": "hello"}, headers=as_user(buyer))
        assert r.status_code == 422
        assert r.json()["error_code"] == "invalid_format"

    async def test_missing_body_field_is_request_validation_error(self, api):
        client, harness = api["client"], api["harness"]
        _, buyer = await seed_users(harness)
        r = await client.post("/v1/delivery/redeem", json={}, headers=as_user(buyer))
        assert r.status_code == 422
        assert r.json()["error_code"] == "request_validation_error"


class TestServiceSharingApi:
    async def test_offer_request_complete(self, api):
        client, harness = api["client"], api["harness"]
        provider, requester = await seed_users(harness)

        r = await client.post(
            "/v1/services",
            json={"category": "EDUCATION", "title": "Physics tutoring", "time_credits": 2},
            headers=as_user(provider),
        )
        assert r.status_code == 201
        service_id = r.json()["id"]

        r = await client.post(f"/v1/services/{service_id}/requests", json={}, headers=as_user(requester))
        assert r.status_code == 201
        request_id = r.json()["id"]

        r = await client.post(f"/v1/services/requests/{request_id}/complete", headers=as_user(requester))
        assert r.status_code == 409
        assert r.json()["error_code"] == "not_accepted_yet"

        r = await client.post(
            f"/v1/services/requests/{request_id}/respond", json={"accept": True}, headers=as_user(provider)
        )
        assert r.json()["status"] == "ACCEPTED"

        r = await client.post(f"/v1/services/requests/{request_id}/complete", headers=as_user(requester))
        assert r.status_code == 200
        assert r.json()["status"] == "COMPLETED"

        r = await client.get("/v1/rewards/balance", headers=as_user(provider))
        assert r.json()["credits"] == 12

    async def test_zero_credit_offer_is_rejected(self, api):
        client, harness = api["client"], api["harness"]
        provider, _ = await seed_users(harness)
        r = await client.post(
            "/v1/services",
            json={"category": "OTHER", "title": "Free stuff", "time_credits": 0},
            headers=as_user(provider),
        )
        assert r.status_code == 422


class TestRewardsApi:
    async def test_surprise_box_and_history(self, api):
        client, harness = api["client"], api["harness"]
        donor, winner = await seed_users(harness)
        coat = await harness.add_product(donor.user_id, kind=ProductKind.DONATION, title="Winter coat")

        r = await client.get("/v1/rewards/surprise-box/items", headers=as_user(winner))
        assert [p["id"] for p in r.json()] == [coat.id]

        r = await client.post("/v1/rewards/surprise-box/redeem", headers=as_user(winner))
        assert r.status_code == 200
        assert r.json()["owner_id"] == winner.user_id

        r = await client.get("/v1/rewards/history", headers=as_user(winner))
        assert [e["amount"] for e in r.json()] == [-50]

        r = await client.post("/v1/rewards/surprise-box/redeem", headers=as_user(donor))
        assert r.status_code == 422
        assert r.json()["error_code"] == "insufficient_points"


class TestNotificationsApi:
    async def test_inbox_and_mark_read(self, api):
        client, harness = api["client"], api["harness"]
        seller, buyer = await seed_users(harness)
        product = await harness.add_product(seller.user_id)
        await client.post("/v1/offers/requests", json={"product_id": product.id}, headers=as_user(buyer))

        r = await client.get("/v1/notifications/unread-count", headers=as_user(seller))
        assert r.json()["unread"] == 1

        r = await client.get("/v1/notifications", headers=as_user(seller))
        [notice] = r.json()
        assert notice["kind"] == "NEW_OFFER"

        r = await client.post(f"/v1/notifications/{notice['id']}/read", headers=as_user(seller))
        assert r.status_code == 204
        r = await client.get("/v1/notifications/unread-count", headers=as_user(seller))
        assert r.json()["unread"] == 0

        r = await client.post(f"/v1/notifications/{notice['id']}/read", headers=as_user(buyer))
        assert r.status_code == 404

        r = await client.post(f"/v1/notifications/{notice['id']}/read", headers=as_user(seller))
        assert r.status_code == 204

    async def test_unread_filter_and_read_all(self, api):
        client, harness = api["client"], api["harness"]
        seller, buyer = await seed_users(harness)
        for title in ("Lamp", "Desk"):
            product = await harness.add_product(seller.user_id, title=title)
            await client.post("/v1/offers/requests", json={"product_id": product.id}, headers=as_user(buyer))

        r = await client.get("/v1/notifications", params={"unread_only": True}, headers=as_user(seller))
        assert len(r.json()) == 2

        r = await client.post("/v1/notifications/read-all", headers=as_user(seller))
        assert r.json() == {"marked": 2}
        r = await client.get("/v1/notifications", params={"unread_only": True}, headers=as_user(seller))
        assert r.json() == []

        r = await client.get("/v1/notifications", params={"limit": 0}, headers=as_user(seller))
        assert r.status_code == 422
