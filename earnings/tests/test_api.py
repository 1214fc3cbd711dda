"""
HTTP tests for the earnings API, run against a fresh service per test.
"""

import pytest
from decimal import Decimal
from fastapi.testclient import TestClient

from earnings.api import app, get_service
from earnings.config import Settings
from earnings.service import EarningsService


CREATOR_ID = "creator-001"
BANK_DETAILS = {
    "bank_name": "FNB",
    "account_number": "62000000000",
    "account_type": "cheque",
    "branch_code": "250655",
    "account_holder_name": "Thandi Creator",
}


@pytest.fixture
def service():
    service = EarningsService(settings=Settings(minimum_payout=Decimal("500.00")))
    app.dependency_overrides[get_service] = lambda: service
    yield service
    app.dependency_overrides.clear()


@pytest.fixture
def client(service):
    return TestClient(app)


def post_commission(client, event_id="order-1", amount="48000.00", **extra):
    return client.post("/commissions", json={
        "event_id": event_id, "creator_id": CREATOR_ID, "qualifying_amount": amount, **extra,
    })


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestCommissionEndpoints:
    """Tests for posting commissions over HTTP."""

    def test_post_commission(self, client):
        response = post_commission(client, amount="1000.00", bonus_rate_percent="2.5")

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "POSTED"
        assert body["base_component"] == "12.50"
        assert body["bonus_component"] == "25.00"
        assert body["total_credit"] == "37.50"
        assert body["balances_after"]["available_balance"] == "37.50"

    def test_replay_is_ok_not_created(self, client):
        post_commission(client)
        response = post_commission(client)

        assert response.status_code == 200
        assert response.json()["status"] == "ALREADY_POSTED"

    def test_bonus_rate_out_of_bounds(self, client):
        response = post_commission(client, bonus_rate_percent="7")

        assert response.status_code == 422
        assert response.json()["code"] == "INVALID_BONUS_RATE"

    def test_event_id_for_another_creator_is_conflict(self, client):
        post_commission(client)

        response = client.post("/commissions", json={
            "event_id": "order-1", "creator_id": "creator-002", "qualifying_amount": "48000.00",
        })

        assert response.status_code == 409
        assert response.json()["code"] == "EVENT_CREATOR_MISMATCH"
        assert "balances_after" not in response.json()

    def test_summary_and_ledger(self, client):
        post_commission(client, amount="1000.00")

        summary = client.get(f"/creators/{CREATOR_ID}/summary").json()
        assert summary["available_balance"] == "12.50"
        assert summary["lifetime_earned"] == "12.50"
        assert summary["tier"] == "Bronze"
        assert summary["progression_tier"] == "seed"

        ledger = client.get(f"/creators/{CREATOR_ID}/ledger").json()
        assert ledger["total_count"] == 1
        assert ledger["entries"][0]["entry_type"] == "CREDIT"

    def test_reset_monthly_sales(self, client):
        post_commission(client)

        assert client.post("/admin/reset-monthly-sales").json() == {"reset": 1}
        assert client.get(f"/creators/{CREATOR_ID}/summary").json()["month_sales"] == 0


class TestPayoutEndpoints:
    """Tests for the payout workflow over HTTP."""

    def test_full_payout_flow(self, client):
        post_commission(client)

        created = client.post(f"/creators/{CREATOR_ID}/payouts", json={
            "requested_amount": "500.00", "destination": BANK_DETAILS,
        })
        assert created.status_code == 201
        request_id = created.json()["request_id"]
        assert created.json()["state"] == "PENDING"

        assert [r["request_id"] for r in client.get("/payouts/open").json()] == [request_id]

        approved = client.post(f"/payouts/{request_id}/decision", json={
            "operator_id": "ops", "decision": "APPROVE",
        })
        assert approved.json()["state"] == "APPROVED"

        completed = client.post(f"/payouts/{request_id}/decision", json={
            "operator_id": "ops", "decision": "COMPLETE", "reason_or_reference": "TXN1",
        })
        assert completed.status_code == 200
        assert completed.json()["settlement_reference"] == "TXN1"

        summary = client.get(f"/creators/{CREATOR_ID}/summary").json()
        assert summary["available_balance"] == "100.00"
        assert summary["pending_balance"] == "0.00"
        assert summary["lifetime_withdrawn"] == "500.00"

        assert client.get(f"/payouts/{request_id}").json()["state"] == "COMPLETED"
        assert len(client.get(f"/creators/{CREATOR_ID}/payouts").json()) == 1
        assert client.get("/payouts/open").json() == []

    def test_insufficient_balance_is_conflict(self, client):
        post_commission(client, amount="1000.00")

        response = client.post(f"/creators/{CREATOR_ID}/payouts", json={
            "requested_amount": "500.00", "destination": BANK_DETAILS,
        })
        assert response.status_code == 409
        assert response.json()["code"] == "INSUFFICIENT_AVAILABLE_BALANCE"

    def test_below_minimum_is_validation_error(self, client):
        post_commission(client)

        response = client.post(f"/creators/{CREATOR_ID}/payouts", json={
            "requested_amount": "100.00", "destination": BANK_DETAILS,
        })
        assert response.status_code == 422
        assert response.json()["code"] == "BELOW_MINIMUM_PAYOUT"

    def test_missing_reason_is_validation_error(self, client):
        post_commission(client)
        request_id = client.post(f"/creators/{CREATOR_ID}/payouts", json={
            "requested_amount": "500.00", "destination": BANK_DETAILS,
        }).json()["request_id"]

        response = client.post(f"/payouts/{request_id}/decision", json={
            "operator_id": "ops", "decision": "REJECT",
        })
        assert response.status_code == 422
        assert response.json()["code"] == "MISSING_REASON"

    def test_unknown_request_is_not_found(self, client):
        response = client.get("/payouts/00000000-0000-0000-0000-000000000000")

        assert response.status_code == 404
        assert response.json()["code"] == "REQUEST_NOT_FOUND"

    def test_storage_outage_is_retryable(self, client, service):
        service.storage.take_offline()

        response = client.get(f"/creators/{CREATOR_ID}/summary")

        assert response.status_code == 503
        assert response.headers["Retry-After"] == "1"
        assert response.json()["retryable"] is True
