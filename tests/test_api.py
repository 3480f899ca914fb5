"""
HTTP-level tests: routing, status codes and error bodies.
"""

import asyncio
import hashlib
import hmac
import json
import time
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from stroomwijzer.main import create_app
from stroomwijzer.models import SubscriptionTier
from stroomwijzer.payments import StripeCheckoutClient

from conftest import PNG_BYTES, StubOracle

SIGNUP = {
    "email": "jan@example.nl",
    "zipcode": "1234 ab",
    "house_number": "12",
    "household": {
        "household_size": "1",
        "dwelling_type": "apartment",
        "works_from_home": False,
        "has_heat_pump": False,
        "has_district_heating": False,
        "has_solar_panels": False,
    },
    "contract": {
        "provider_name": "Essent",
        "contract_type": "fixed",
        "monthly_cost_eur": 80,
    },
}


@pytest.fixture
def checkout_client():
    client = MagicMock(spec=StripeCheckoutClient)
    client.create_checkout_session.return_value = "https://checkout.stripe.com/c/pay/cs_test_1"
    return client


@pytest.fixture
def client(config, oracle, repository, checkout_client):
    app = create_app(config, oracle=oracle, repository=repository, checkout_client=checkout_client)
    return TestClient(app)


def signup(client, user_id="user-1"):
    return client.post(f"/api/profiles/{user_id}", json=SIGNUP)


def webhook_headers(payload: bytes, secret: str = "whsec_test") -> dict:
    timestamp = int(time.time())
    signature = hmac.new(secret.encode(), f"{timestamp}.".encode() + payload, hashlib.sha256).hexdigest()
    return {"Stripe-Signature": f"t={timestamp},v1={signature}", "Content-Type": "application/json"}


# ============================================================================
# System information
# ============================================================================


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "service": "stroomwijzer-api"}


def test_api_info(client):
    response = client.get("/api/")
    assert response.status_code == 200
    assert "price_check" in response.json()["endpoints"]


# ============================================================================
# Profiles
# ============================================================================


def test_signup_returns_estimated_profile(client):
    response = signup(client)

    assert response.status_code == 201
    body = response.json()
    assert body["is_verified"] is False
    assert body["usage_source"]["kind"] == "estimated"
    assert body["usage_source"]["estimate"]["kwh_per_month"] == 200
    assert body["profile"]["zipcode"] == "1234AB"


def test_signup_twice_conflicts(client):
    signup(client)

    response = signup(client)

    assert response.status_code == 409
    assert response.json()["detail"]["error"] == "ProfileStateError"


def test_signup_with_invalid_zipcode(client):
    response = client.post("/api/profiles/user-1", json={**SIGNUP, "zipcode": "12345"})
    assert response.status_code == 422


def test_signup_estimation_failure_is_retriable(client, oracle, repository):
    oracle.fail_operations.add("estimate_usage")

    response = signup(client)

    assert response.status_code == 503
    assert response.json()["detail"]["retriable"] is True
    assert repository.count() == 0


def test_get_unknown_profile(client):
    response = client.get("/api/profiles/nobody")
    assert response.status_code == 404
    assert response.json()["detail"]["error"] == "ProfileNotFound"


def test_get_profile_waits_for_fresh_profile(client, repository):
    signup(client)
    repository.hidden_reads["user-1"] = 2

    response = client.get("/api/profiles/user-1", params={"wait": True})

    assert response.status_code == 200


# ============================================================================
# Bill verification
# ============================================================================


def test_bill_upload_requires_premium(client, oracle):
    signup(client)

    response = client.post("/api/profiles/user-1/bill", files={"file": ("bill.png", PNG_BYTES, "image/png")})

    assert response.status_code == 402
    assert "extract_bill" not in oracle.operations()


def test_bill_upload_and_confirmation(client, repository):
    signup(client)
    payload = json.dumps({
        "type": "checkout.session.completed",
        "data": {"object": {"metadata": {"user_id": "user-1"}}},
    }).encode()
    assert client.post("/api/payments/webhook", content=payload, headers=webhook_headers(payload)).status_code == 200

    upload = client.post("/api/profiles/user-1/bill", files={"file": ("bill.png", PNG_BYTES, "image/png")})

    assert upload.status_code == 200
    suggestion = upload.json()["suggested_confirmation"]
    assert suggestion["extraction_id"] == upload.json()["extraction_id"]
    assert suggestion["kwh_per_month"] == 250
    assert suggestion["provider_name"] == "Essent"
    assert repository.profiles["user-1"].is_verified is False

    confirmed = client.post("/api/profiles/user-1/verification", json=suggestion)

    assert confirmed.status_code == 200
    assert confirmed.json()["usage_source"]["kind"] == "verified"
    assert repository.profiles["user-1"].is_verified

    again = client.post("/api/profiles/user-1/verification", json=suggestion)
    assert again.status_code == 409


@pytest.fixture
def profile_premium(client, repository):
    signup(client)
    repository.update_fields("user-1", {"subscription_tier": SubscriptionTier.PREMIUM})


def test_unreadable_bill_is_rejected(client, profile_premium):
    response = client.post("/api/profiles/user-1/bill", files={"file": ("bill.txt", b"hello", "text/plain")})
    assert response.status_code == 503
    assert response.json()["detail"]["error"] == "ExtractionFailed"


def test_confirmation_on_free_tier_is_rejected(client, repository):
    signup(client)

    response = client.post("/api/profiles/user-1/verification",
                           json={"extraction_id": "made-up", "kwh_per_month": 1, "rate_per_kwh": 5.0})

    assert response.status_code == 402
    assert not repository.profiles["user-1"].is_verified


def test_confirmation_without_extraction_is_rejected(client, repository, profile_premium):
    response = client.post("/api/profiles/user-1/verification",
                           json={"extraction_id": "made-up", "kwh_per_month": 1, "rate_per_kwh": 5.0})

    assert response.status_code == 409
    assert response.json()["detail"]["error"] == "ProfileStateError"
    assert not repository.profiles["user-1"].is_verified


# ============================================================================
# Price check
# ============================================================================


def test_price_check_run_and_latest(client):
    signup(client)

    assert client.get("/api/profiles/user-1/price-check").json()["result"] is None

    response = client.post("/api/profiles/user-1/price-check")

    assert response.status_code == 200
    body = response.json()
    assert body["market_source"] == "fallback"
    assert body["usage_source"] == "estimated"
    assert body["recommendation"] in ("SWITCH", "STAY")

    latest = client.get("/api/profiles/user-1/price-check").json()
    assert latest["result"]["checked_at"] == body["checked_at"]
    assert latest["is_stale"] is False


def test_price_check_unknown_profile(client):
    assert client.post("/api/profiles/nobody/price-check").status_code == 404



# ============================================================================
# Timeouts
# ============================================================================


class SlowOracle(StubOracle):
    """Never answers the operations listed in ``slow_operations``."""

    def __init__(self, *slow_operations):
        super().__init__()
        self.slow_operations = set(slow_operations)

    async def infer(self, request):
        if request.operation in self.slow_operations:
            await asyncio.sleep(3600)
        return await super().infer(request)


def test_signup_timeout_stores_nothing(config, repository, checkout_client):
    config.oracle.request_timeout_seconds = 0.2
    app = create_app(config, oracle=SlowOracle("estimate_usage"), repository=repository,
                     checkout_client=checkout_client)

    response = TestClient(app).post("/api/profiles/user-1", json=SIGNUP)

    assert response.status_code == 503
    assert response.json()["detail"]["error"] == "EstimationFailed"
    assert repository.count() == 0


def test_price_check_timeout_stores_nothing(config, repository, checkout_client):
    config.oracle.request_timeout_seconds = 0.2
    app = create_app(config, oracle=SlowOracle("compare_market"), repository=repository,
                     checkout_client=checkout_client)
    client = TestClient(app)
    signup(client)

    response = client.post("/api/profiles/user-1/price-check")

    assert response.status_code == 503
    assert response.json()["detail"]["error"] == "MarketDataUnavailable"
    assert repository.profiles["user-1"].latest_price_check is None


# ============================================================================
# Payments
# ============================================================================


def test_checkout_returns_url(client, checkout_client):
    signup(client)

    response = client.post("/api/payments/checkout", json={"user_id": "user-1"},
                           headers={"Origin": "https://stroomwijzer.nl"})

    assert response.status_code == 200
    assert response.json()["url"].startswith("https://checkout.stripe.com/")
    checkout_client.create_checkout_session.assert_called_once_with(
        "user-1", "jan@example.nl", "https://stroomwijzer.nl")


def test_webhook_with_bad_signature(client, repository):
    signup(client)
    payload = json.dumps({
        "type": "checkout.session.completed",
        "data": {"object": {"metadata": {"user_id": "user-1"}}},
    }).encode()

    response = client.post("/api/payments/webhook", content=payload,
                           headers={"Stripe-Signature": "t=1,v1=deadbeef"})

    assert response.status_code == 400
    assert not repository.profiles["user-1"].is_premium
