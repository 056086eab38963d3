"""Admin dashboard and billing routes."""

import uuid
from decimal import Decimal

from postflow.models.backoffice import Website, Workflow
from postflow.models.billing import Payment, Subscription


class TestAdminLogin:
    async def test_success(self, client):
        resp = await client.post("/admin/login", json={"email": "ADMIN@example.com", "password": "admin-password"})

        assert resp.status_code == 200
        body = resp.json()
        assert body["admin"] == {"email": "admin@example.com"}
        assert body["token"]

    async def test_wrong_password(self, client):
        resp = await client.post("/admin/login", json={"email": "admin@example.com", "password": "guess"})

        assert resp.status_code == 401

    async def test_user_token_is_not_admin(self, client, owner):
        headers, _ = owner

        resp = await client.get("/admin/metrics", headers=headers)

        assert resp.status_code == 403
        assert resp.json() == {"detail": "Admin access required"}

    async def test_admin_token_is_not_a_user(self, client, admin_headers):
        resp = await client.get("/users/me", headers=admin_headers)

        assert resp.status_code == 401


class TestAdminDashboard:
    async def test_metrics(self, client, owner, admin_headers, db_session):
        _, user = owner
        db_session.add(Payment(user_id=uuid.UUID(user["id"]), amount=Decimal("19.99"), status="completed", transaction_id="t1"))
        db_session.add(Payment(user_id=uuid.UUID(user["id"]), amount=Decimal("5.00"), status="completed", transaction_id="t2"))
        db_session.add(Payment(user_id=uuid.UUID(user["id"]), amount=Decimal("100.00"), status="pending", transaction_id="t3"))
        await db_session.commit()

        resp = await client.get("/admin/metrics", headers=admin_headers)

        assert resp.status_code == 200
        body = resp.json()
        assert body["totalUsers"] == 1
        assert body["totalLogins"] == 1
        assert abs(body["totalPayments"] - 24.99) < 0.001

    async def test_listings(self, client, owner, admin_headers, db_session):
        _, user = owner
        db_session.add(Workflow(name="Weekly digest", description="Sends the digest"))
        db_session.add(Website(user_id=uuid.UUID(user["id"]), domain="blog.example.com"))
        await db_session.commit()

        users = (await client.get("/admin/users", headers=admin_headers)).json()
        workflows = (await client.get("/admin/workflows", headers=admin_headers)).json()
        websites = (await client.get("/admin/websites", headers=admin_headers)).json()

        assert users["total"] == 1
        assert users["users"][0]["email"] == "owner@example.com"
        assert "hashed_password" not in users["users"][0]
        assert workflows["total"] == 1
        assert workflows["workflows"][0]["name"] == "Weekly digest"
        assert websites["websites"][0]["domain"] == "blog.example.com"
        assert websites["websites"][0]["type"] == "WordPress"


class TestBilling:
    async def test_first_method_becomes_default(self, client, owner):
        headers, _ = owner

        resp = await client.post(
            "/billing/payment-methods", json={"type": "card", "last4": "4242424242424242", "expiry": "12/30"}, headers=headers
        )

        assert resp.status_code == 201
        body = resp.json()
        assert body["is_default"] is True
        assert body["last4"] == "4242"

    async def test_new_default_replaces_old(self, client, owner):
        headers, _ = owner
        first = (await client.post("/billing/payment-methods", json={"type": "card", "last4": "1111"}, headers=headers)).json()
        second = (
            await client.post("/billing/payment-methods", json={"type": "upi", "upi_id": "me@bank"}, headers=headers)
        ).json()
        third = (
            await client.post(
                "/billing/payment-methods",
                json={"type": "paypal", "email": "Me@Example.com", "is_default": True},
                headers=headers,
            )
        ).json()

        assert second["is_default"] is False
        methods = (await client.get("/billing/payment-methods", headers=headers)).json()
        assert [m["id"] for m in methods] == [third["id"], second["id"], first["id"]]
        assert [m["is_default"] for m in methods] == [True, False, False]
        assert methods[0]["email"] == "me@example.com"

    async def test_methods_are_per_user(self, client, owner, register):
        headers, _ = owner
        other_headers, _ = await register(email="other@example.com")
        await client.post("/billing/payment-methods", json={"type": "card", "last4": "1111"}, headers=headers)

        resp = await client.get("/billing/payment-methods", headers=other_headers)

        assert resp.json() == []

    async def test_subscriptions_and_history(self, client, owner, db_session):
        headers, user = owner
        db_session.add(Subscription(user_id=uuid.UUID(user["id"]), name="Pro", price="$19/mo"))
        db_session.add(Payment(user_id=uuid.UUID(user["id"]), amount=Decimal("19.00"), status="completed", transaction_id="tx-1"))
        await db_session.commit()

        subs = (await client.get("/billing/subscriptions", headers=headers)).json()
        history = (await client.get("/billing/payment-history", headers=headers)).json()

        assert [s["name"] for s in subs] == ["Pro"]
        assert subs[0]["status"] == "active"
        assert [p["transaction_id"] for p in history] == ["tx-1"]
        assert Decimal(str(history[0]["amount"])) == Decimal("19.00")

    async def test_requires_login(self, client):
        assert (await client.get("/billing/subscriptions")).status_code == 401
