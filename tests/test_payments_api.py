"""HTTP contract for /payments."""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import SQLAlchemyError

from pos import crud, lookups
from pos.config import Settings
from pos.main import create_app
from tests.factories import make_discount, make_promo


async def pay(client, order_id, amount, **extra):
    body = {"order_id": order_id, "amount": amount, "payment_mode": "cash"}
    body.update(extra)
    return await client.post("/payments", json=body)


class TestCheckoutPreview:
    async def test_bill_breakdown(self, client, world):
        resp = await client.post(f"/payments/checkout/{world.order}")
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "success"
        summary = body["data"]
        assert summary["order_id"] == world.order
        assert summary["subtotal"] == 100.0
        assert summary["tax_amount"] == 8.0
        assert summary["service_charge_base"] == 108.0
        assert summary["service_charge"] == 10.8
        assert summary["charged_amount"] == 118.8
        assert summary["promo_id_applied"] is None
        assert len(summary["calculation_steps"]) == 10

    async def test_repeatable_without_writes(self, client, world):
        first = await client.post(f"/payments/checkout/{world.order}", json={})
        second = await client.post(f"/payments/checkout/{world.order}", json={})
        assert first.json() == second.json()
        history = await client.get(f"/payments/order/{world.order}")
        assert history.json()["data"] == {"order_id": world.order, "total_paid": 0.0, "payments": []}

    async def test_with_discount_and_promo(self, client, database, world):
        discount_id = await make_discount(database, world.acme, "10")
        promo_id = await make_promo(database, world.acme, discount_type="fixed_amount", amount="5")
        resp = await client.post(
            f"/payments/checkout/{world.order}",
            json={"discount_id": discount_id, "promo_id": promo_id},
        )
        summary = resp.json()["data"]
        assert summary["discount_amount"] == 10.0
        assert summary["promo_amount"] == 5.0
        assert summary["adjusted_amount"] == 85.0
        assert summary["charged_amount"] == 100.98
        assert summary["promo_info"]["id"] == promo_id
        assert summary["discount_info"]["id"] == discount_id

    async def test_unknown_discount(self, client, world):
        resp = await client.post(f"/payments/checkout/{world.order}", json={"discount_id": 999})
        assert resp.status_code == 404
        assert resp.json() == {"status": "error", "message": "Discount not found"}

    async def test_order_without_active_items(self, client, world):
        resp = await client.post(f"/payments/checkout/{world.voided_order}")
        assert resp.status_code == 400
        assert resp.json()["status"] == "error"


class TestPay:
    async def test_full_payment_closes_order(self, client, world):
        resp = await pay(client, world.order, 118.80, transaction_id="tx-9")
        assert resp.status_code == 201
        body = resp.json()
        assert body["status"] == "success"
        assert body["message"] == "Payment processed successfully. Order closed."
        data = body["data"]
        assert data["payment"]["amount"] == 118.8
        assert data["payment"]["transaction_id"] == "tx-9"
        assert data["order"]["order_status"] == "closed"
        assert data["order"]["is_open"] is False
        assert data["order"]["charged_amount"] == 118.8
        summary = data["payment_summary"]
        assert summary["charged_amount"] == 118.8
        assert summary["total_paid_so_far"] == 118.8
        assert summary["remaining_balance"] == 0.0
        assert summary["payment_status"] == "closed"
        assert summary["is_fully_paid"] is True

    async def test_one_cent_over_is_accepted(self, client, world):
        resp = await pay(client, world.order, 118.81)
        assert resp.status_code == 201
        assert resp.json()["data"]["order"]["order_status"] == "closed"

    async def test_ten_cents_short_is_rejected(self, client, world):
        resp = await pay(client, world.order, 118.70)
        assert resp.status_code == 400
        body = resp.json()
        assert body["status"] == "error"
        assert body["expected_amount"] == 118.8
        assert body["received_amount"] == 118.7
        assert body["calculation_breakdown"]["charged_amount"] == 118.8
        assert "mismatch" in body["message"]

        history = await client.get(f"/payments/order/{world.order}")
        assert history.json()["data"]["payments"] == []
        preview = await client.post(f"/payments/checkout/{world.order}")
        assert preview.status_code == 200

    async def test_payment_history(self, client, world):
        await pay(client, world.order, 118.80, payment_mode="card")
        resp = await client.get(f"/payments/order/{world.order}")
        data = resp.json()["data"]
        assert data["total_paid"] == 118.8
        assert [p["payment_mode"] for p in data["payments"]] == ["card"]

    @pytest.mark.parametrize(
        "body, message",
        [
            ({"amount": 0, "payment_mode": "cash"}, "Payment amount is invalid"),
            ({"payment_mode": "cash"}, "Payment amount is invalid"),
            ({"amount": 118.8}, "Payment mode is required"),
            ({"amount": 118.8, "payment_mode": ""}, "Payment mode is required"),
        ],
    )
    async def test_validation_errors(self, client, world, body, message):
        body["order_id"] = world.order
        resp = await client.post("/payments", json=body)
        assert resp.status_code == 400
        assert resp.json() == {"status": "error", "message": message}

    @pytest.mark.parametrize("amount", ["1e400", 10**400])
    async def test_amount_beyond_money_column(self, client, world, amount):
        resp = await pay(client, world.order, amount)
        assert resp.status_code == 400
        assert resp.json() == {"status": "error", "message": "Payment amount is invalid"}

    async def test_malformed_body(self, client, world):
        resp = await client.post("/payments", json={"order_id": "not-a-number", "amount": 1})
        assert resp.status_code == 400
        assert resp.json()["status"] == "error"
        assert resp.json()["message"].startswith("order_id")

    async def test_unknown_order(self, client, world):
        resp = await pay(client, 99999, 10)
        assert resp.status_code == 404
        assert resp.json() == {"status": "error", "message": "Order not found"}

    async def test_other_tenants_order(self, client, world):
        resp = await pay(client, world.other_order, 8.32)
        assert resp.status_code == 403
        assert resp.json()["status"] == "error"


class TestTenantHeader:
    async def test_missing_header(self, client, world):
        resp = await client.post(
            f"/payments/checkout/{world.order}", headers={"X-Tenant-Id": ""}
        )
        assert resp.status_code == 400

    async def test_unknown_tenant(self, client, world):
        resp = await client.post(
            f"/payments/checkout/{world.order}", headers={"X-Tenant-Id": "nobody"}
        )
        assert resp.status_code == 404
        assert resp.json()["message"] == "Tenant not found"

    async def test_other_tenant_pays_own_order(self, client, world):
        resp = await client.post(
            "/payments",
            json={"order_id": world.other_order, "amount": 8.32, "payment_mode": "cash"},
            headers={"X-Tenant-Id": "other"},
        )
        # 7.00 with default 8% tax and 10% service charge
        assert resp.status_code == 201
        assert resp.json()["data"]["payment_summary"]["charged_amount"] == 8.32


class TestServerErrors:
    async def test_database_failure_hides_detail(self, client, world, monkeypatch):
        async def broken_insert(*args, **kwargs):
            raise SQLAlchemyError("connection reset")

        monkeypatch.setattr(crud, "insert_payment", broken_insert)
        resp = await pay(client, world.order, 118.80)
        assert resp.status_code == 500
        assert resp.json() == {"status": "error", "message": "Failed to process request"}

    async def test_unexpected_error_hides_detail(self, database, settings, world, monkeypatch):
        async def broken_rates(*args, **kwargs):
            raise RuntimeError("rates table exploded")

        monkeypatch.setattr(lookups, "resolve_rates", broken_rates)
        app = create_app(settings=settings, database=database)
        async with AsyncClient(
            transport=ASGITransport(app=app, raise_app_exceptions=False),
            base_url="http://test",
            headers={"X-Tenant-Id": "acme"},
        ) as client:
            resp = await client.post(f"/payments/checkout/{world.order}")
        assert resp.status_code == 500
        assert resp.json() == {"status": "error", "message": "Something went wrong!"}

    @pytest.mark.parametrize("settings", [Settings(app_env="development")])
    async def test_development_mode_shows_detail(self, client, world, monkeypatch, settings):
        async def broken_insert(*args, **kwargs):
            raise SQLAlchemyError("connection reset")

        monkeypatch.setattr(crud, "insert_payment", broken_insert)
        resp = await pay(client, world.order, 118.80)
        assert resp.status_code == 500
        assert "connection reset" in resp.json()["error"]
