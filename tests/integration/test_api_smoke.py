"""Smoke tests for the HTTP API.

Quick validation tests to ensure the endpoints are wired together.
"""

import pytest
from fastapi.testclient import TestClient

from provider_subscriptions.main import create_app

PROVIDER = {"X-Actor-Id": "acc-221-77-000", "X-Actor-Role": "provider"}
ADMIN = {"X-Actor-Id": "admin-1", "X-Actor-Role": "admin"}


@pytest.fixture
def client():
    """Create test client."""
    app = create_app()
    return TestClient(app)


@pytest.fixture(autouse=True)
def reset_state(client):
    """Clear all stores and the clock offset before and after each test."""
    client.post("/control/reset")
    yield
    client.post("/control/reset")


@pytest.fixture
def provider_id(client):
    """Register, submit and verify the test provider."""
    response = client.post("/providers", json={"business_name": "Plomberie Ndiaye"}, headers=PROVIDER)
    assert response.status_code == 201
    provider_id = response.json()["provider"]["provider_id"]

    assert client.post("/providers/me/verification", headers=PROVIDER).status_code == 200
    response = client.post(
        f"/admin/providers/{provider_id}/validate-identity",
        json={"decision": "APPROVE"},
        headers=ADMIN,
    )
    assert response.status_code == 200
    return provider_id


def test_health(client):
    """Test health endpoints."""
    assert client.get("/").json()["service"] == "provider-subscriptions"
    data = client.get("/health").json()
    assert data["status"] == "healthy"
    assert data["scheduler"] == "stopped"


def test_list_plans_without_auth(client):
    response = client.get("/subscriptions/plans")

    assert response.status_code == 200
    data = response.json()
    assert data["currency"] == "XOF"
    assert [p["plan_id"] for p in data["plans"]] == ["monthly-standard", "annual-standard"]


def test_full_flow(client, provider_id):
    """Test request -> declare -> approve -> visible -> expire through the API."""
    response = client.post("/subscriptions", json={"kind": "MONTHLY"}, headers=PROVIDER)
    assert response.status_code == 201
    subscription = response.json()
    assert subscription["status"] == "PENDING"
    assert subscription["price"] == 5000

    response = client.post(
        "/payments",
        json={
            "subscription_id": subscription["subscription_id"],
            "method": "INSTANT_TRANSFER",
            "amount": 5000,
        },
        headers=PROVIDER,
    )
    assert response.status_code == 201
    payment = response.json()
    assert payment["external_reference"].startswith("TRF_")

    pending = client.get("/admin/payments/pending", headers=ADMIN).json()
    assert pending["count"] == 1

    response = client.post(
        f"/admin/payments/{payment['payment_id']}/validate",
        json={"decision": "APPROVE", "reason": "confirmed via transfer log"},
        headers=ADMIN,
    )
    assert response.status_code == 200
    assert response.json()["status"] == "VALID"

    visibility = client.get(f"/providers/{provider_id}/visibility").json()
    assert visibility["visible"] is True
    assert visibility["blocking_reasons"] == []

    current = client.get("/subscriptions/me", headers=PROVIDER).json()
    assert current["subscription"]["status"] == "ACTIVE"
    assert [p["payment_id"] for p in current["payments"]] == [payment["payment_id"]]

    audit = client.get("/admin/audit", params={"target_id": payment["payment_id"]}, headers=ADMIN).json()
    assert [e["action"] for e in audit["entries"]] == ["payment_approved"]
    assert audit["entries"][0]["details"]["reason"] == "confirmed via transfer log"

    response = client.post("/control/time/advance", json={"days": 32})
    assert response.status_code == 200
    assert response.json()["expirations_processed"] == 1

    visibility = client.get(f"/providers/{provider_id}/visibility").json()
    assert visibility["visible"] is False
    assert visibility["blocking_reasons"] == ["no_active_subscription"]


def test_duplicate_subscription_conflict(client, provider_id):
    assert client.post("/subscriptions", json={"kind": "MONTHLY"}, headers=PROVIDER).status_code == 201

    response = client.post("/subscriptions", json={"kind": "MONTHLY"}, headers=PROVIDER)

    assert response.status_code == 409
    detail = response.json()["detail"]
    assert detail["error"] == "duplicate_subscription"
    assert detail["message"] == (
        "You already have a pending or active monthly subscription for the current period"
    )


def test_second_payment_cannot_be_approved(client, provider_id):
    """Test a subscription already paid through one method rejects a second approval."""
    subscription = client.post("/subscriptions", json={"kind": "MONTHLY"}, headers=PROVIDER).json()
    payments = [
        client.post(
            "/payments",
            json={"subscription_id": subscription["subscription_id"], **body},
            headers=PROVIDER,
        ).json()
        for body in (
            {"method": "INSTANT_TRANSFER", "amount": 5000},
            {"method": "CASH", "amount": 5000, "proof_reference": "receipt-42"},
        )
    ]

    first = client.post(
        f"/admin/payments/{payments[0]['payment_id']}/validate", json={"decision": "APPROVE"}, headers=ADMIN
    )
    second = client.post(
        f"/admin/payments/{payments[1]['payment_id']}/validate", json={"decision": "APPROVE"}, headers=ADMIN
    )

    assert first.status_code == 200
    assert second.status_code == 409
    assert second.json()["detail"]["error"] == "invalid_transition"
    audit = client.get("/admin/audit", headers=ADMIN).json()
    assert [e["action"] for e in audit["entries"]].count("payment_approved") == 1


def test_unknown_kind_rejected(client, provider_id):
    response = client.post("/subscriptions", json={"kind": "WEEKLY"}, headers=PROVIDER)
    assert response.status_code == 422


def test_cash_without_proof(client, provider_id):
    subscription = client.post("/subscriptions", json={"kind": "ANNUAL"}, headers=PROVIDER).json()

    response = client.post(
        "/payments",
        json={"subscription_id": subscription["subscription_id"], "method": "CASH", "amount": 50000},
        headers=PROVIDER,
    )

    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "invalid_request"


def test_direct_activation(client, provider_id):
    subscription = client.post("/subscriptions", json={"kind": "MONTHLY"}, headers=PROVIDER).json()

    response = client.post(
        f"/admin/subscriptions/{subscription['subscription_id']}/activate",
        json={"reason": "partner programme"},
        headers=ADMIN,
    )

    assert response.status_code == 200
    assert response.json()["status"] == "ACTIVE"
    audit = client.get("/admin/audit", headers=ADMIN).json()
    assert audit["entries"][0]["action"] == "subscription_activated"


def test_missing_actor_headers(client):
    response = client.post("/subscriptions", json={"kind": "MONTHLY"})
    assert response.status_code == 401
    assert response.json()["detail"]["error"] == "unauthenticated"


def test_provider_cannot_use_admin_endpoints(client):
    response = client.get("/admin/payments/pending", headers=PROVIDER)
    assert response.status_code == 403


def test_unregistered_account(client):
    response = client.get("/providers/me", headers=PROVIDER)
    assert response.status_code == 404
    assert response.json()["detail"]["error"] == "provider_not_found"


def test_profile_update_cannot_touch_visibility(client, provider_id):
    response = client.patch("/providers/me", json={"subscription_active": True}, headers=PROVIDER)
    assert response.status_code == 422

    response = client.patch("/providers/me", json={"description": "Dakar and Thies"}, headers=PROVIDER)
    assert response.status_code == 200
    assert response.json()["provider"]["description"] == "Dakar and Thies"
    assert response.json()["provider"]["subscription_active"] is False


def test_availability_toggle(client, provider_id):
    response = client.put("/providers/me/availability", json={"available": True}, headers=PROVIDER)
    assert response.status_code == 200
    assert response.json()["blocking_reasons"] == ["no_active_subscription"]


def test_stats_and_status(client, provider_id):
    client.post("/subscriptions", json={"kind": "MONTHLY"}, headers=PROVIDER)

    stats = client.get("/admin/stats", headers=ADMIN).json()
    assert stats["total_providers"] == 1
    assert stats["pending_subscriptions"] == 1
    assert stats["visible_providers"] == 0

    status = client.get("/control/status").json()
    assert status["statistics"]["subscriptions_pending"] == 1
    assert status["statistics"]["verified"] == 1


def test_manual_sweep(client):
    response = client.post("/admin/sweep", headers=ADMIN)
    assert response.status_code == 200
    assert response.json()["expired_count"] == 0
    assert response.json()["skipped"] is False


def test_set_time_backwards_rejected(client):
    response = client.post("/control/time/set", json={"time": "2000-01-01T00:00:00Z"})
    assert response.status_code == 400
