"""
Tests for profile state transitions and the price check flow.
"""

import asyncio

import pytest

from stroomwijzer.exceptions import (
    EstimationFailed,
    MarketDataUnavailable,
    PremiumRequired,
    ProfileNotFound,
    ProfileStateError
)
from stroomwijzer.models import BillConfirmation, BillExtraction, ContractType, Recommendation, SubscriptionTier
from stroomwijzer.services import MarketComparisonService, MarketDataService, PriceCheckService

from conftest import StubOracle, make_registration


class GatedOracle(StubOracle):
    """Holds every market comparison until ``release`` is set."""

    def __init__(self):
        super().__init__()
        self.comparing = asyncio.Event()
        self.release = asyncio.Event()

    async def infer(self, request):
        if request.operation == "compare_market":
            self.comparing.set()
            await self.release.wait()
        return await super().infer(request)


# ============================================================================
# Signup
# ============================================================================


async def test_register_stores_estimated_profile(profile_service, repository):
    profile = await profile_service.register("user-1", make_registration())

    assert profile.zipcode == "1234AB"
    assert profile.estimate.kwh_per_month == 200
    assert profile.is_verified is False
    assert profile.subscription_tier == SubscriptionTier.FREE
    assert repository.profiles["user-1"] == profile


async def test_failed_estimate_stores_nothing(profile_service, repository, oracle):
    oracle.fail_operations.add("estimate_usage")

    with pytest.raises(EstimationFailed):
        await profile_service.register("user-1", make_registration())

    assert repository.count() == 0


async def test_second_signup_is_rejected(profile_service, oracle):
    await profile_service.register("user-1", make_registration())

    with pytest.raises(ProfileStateError):
        await profile_service.register("user-1", make_registration(monthly_cost_eur=120))

    assert oracle.operations() == ["estimate_usage"]


async def test_empty_user_id_is_rejected(profile_service):
    with pytest.raises(ValueError):
        await profile_service.get_profile("  ")


# ============================================================================
# Reads
# ============================================================================


async def test_get_profile_does_not_retry(profile_service, repository):
    with pytest.raises(ProfileNotFound):
        await profile_service.get_profile("user-1")
    assert repository.reads == 1


async def test_wait_for_profile_retries_until_visible(profile_service, repository):
    await profile_service.register("user-1", make_registration())
    repository.reads = 0
    repository.hidden_reads["user-1"] = 3

    profile = await profile_service.wait_for_profile("user-1")

    assert profile.user_id == "user-1"
    assert repository.reads == 4


async def test_wait_for_profile_gives_up(profile_service, repository):
    with pytest.raises(ProfileNotFound):
        await profile_service.wait_for_profile("user-1")
    assert repository.reads == 5


# ============================================================================
# Verification and premium
# ============================================================================


async def extract_bill(profile_service, user_id: str = "user-1", **figures) -> str:
    """Upgrade the profile and leave a pending extraction; returns its id."""
    await profile_service.activate_premium(user_id)
    values = {"monthly_kwh": 250, "per_kwh_rate": 0.40, "provider_name": "Essent"}
    values.update(figures)
    pending = await profile_service.record_extraction(user_id, BillExtraction(**values))
    return pending.extraction_id


async def test_confirm_verification_makes_verified_figures_authoritative(profile_service, repository):
    await profile_service.register("user-1", make_registration())
    extraction_id = await extract_bill(profile_service)
    confirmation = BillConfirmation(extraction_id=extraction_id, kwh_per_month=260, rate_per_kwh=0.38,
                                    provider_name="Eneco", contract_type=ContractType.FLEXIBLE)

    profile = await profile_service.confirm_verification("user-1", confirmation)

    stored = repository.profiles["user-1"]
    assert profile.is_verified
    assert stored.verified_usage.kwh_per_month == 260
    assert stored.verified_usage.provider_name == "Eneco"
    assert stored.verified_usage.verified_at is not None
    assert stored.pending_extraction is None
    assert stored.estimate.kwh_per_month == 200
    assert stored.authoritative_usage().kind == "verified"
    assert stored.effective_contract_type() == ContractType.FLEXIBLE


async def test_confirmation_keeps_extracted_figures_left_empty(profile_service, repository):
    await profile_service.register("user-1", make_registration())
    extraction_id = await extract_bill(profile_service, warnings=["Rekening is onscherp."])

    await profile_service.confirm_verification("user-1", BillConfirmation(extraction_id=extraction_id))

    verified = repository.profiles["user-1"].verified_usage
    assert verified.kwh_per_month == 250
    assert verified.rate_per_kwh == 0.40
    assert verified.provider_name == "Essent"
    assert verified.warnings == ["Rekening is onscherp."]


async def test_confirm_without_extraction_is_rejected(profile_service, repository):
    await profile_service.register("user-1", make_registration())
    await profile_service.activate_premium("user-1")

    with pytest.raises(ProfileStateError):
        await profile_service.confirm_verification(
            "user-1", BillConfirmation(extraction_id="made-up", kwh_per_month=1, rate_per_kwh=5.0))

    assert not repository.profiles["user-1"].is_verified


async def test_confirm_on_free_tier_is_rejected(profile_service, repository):
    await profile_service.register("user-1", make_registration())

    with pytest.raises(PremiumRequired):
        await profile_service.confirm_verification(
            "user-1", BillConfirmation(extraction_id="made-up", kwh_per_month=1, rate_per_kwh=5.0))

    assert not repository.profiles["user-1"].is_verified


async def test_confirm_other_extraction_is_rejected(profile_service, repository):
    await profile_service.register("user-1", make_registration())
    first = await extract_bill(profile_service)
    await extract_bill(profile_service)

    with pytest.raises(ProfileStateError):
        await profile_service.confirm_verification("user-1", BillConfirmation(extraction_id=first))

    assert not repository.profiles["user-1"].is_verified


async def test_extraction_is_confirmed_once(profile_service):
    await profile_service.register("user-1", make_registration())
    extraction_id = await extract_bill(profile_service)
    await profile_service.confirm_verification("user-1", BillConfirmation(extraction_id=extraction_id))

    with pytest.raises(ProfileStateError):
        await profile_service.confirm_verification("user-1", BillConfirmation(extraction_id=extraction_id))


async def test_missing_figures_must_be_filled_in(profile_service, repository):
    await profile_service.register("user-1", make_registration())
    extraction_id = await extract_bill(profile_service, per_kwh_rate=None)

    with pytest.raises(ValueError):
        await profile_service.confirm_verification("user-1", BillConfirmation(extraction_id=extraction_id))

    await profile_service.confirm_verification(
        "user-1", BillConfirmation(extraction_id=extraction_id, rate_per_kwh=0.41))
    assert repository.profiles["user-1"].verified_usage.rate_per_kwh == 0.41


async def test_reverification_replaces_figures_and_stays_verified(profile_service, repository):
    await profile_service.register("user-1", make_registration())
    first = await extract_bill(profile_service)
    await profile_service.confirm_verification(
        "user-1", BillConfirmation(extraction_id=first, kwh_per_month=260, rate_per_kwh=0.38))

    second = await extract_bill(profile_service)
    await profile_service.confirm_verification(
        "user-1", BillConfirmation(extraction_id=second, kwh_per_month=240, rate_per_kwh=0.36))

    stored = repository.profiles["user-1"]
    assert stored.is_verified
    assert stored.verified_usage.kwh_per_month == 240


async def test_unknown_bill_contract_type_keeps_reported_type(profile_service, repository):
    await profile_service.register("user-1", make_registration(contract_type=ContractType.FIXED))
    extraction_id = await extract_bill(profile_service)

    await profile_service.confirm_verification("user-1", BillConfirmation(extraction_id=extraction_id))

    assert repository.profiles["user-1"].effective_contract_type() == ContractType.FIXED


async def test_activate_premium_is_idempotent(profile_service, repository):
    await profile_service.register("user-1", make_registration())

    await profile_service.activate_premium("user-1")
    profile = await profile_service.activate_premium("user-1")

    assert profile.is_premium
    assert repository.profiles["user-1"].is_premium


async def test_require_premium(profile_service):
    await profile_service.register("user-1", make_registration())

    with pytest.raises(PremiumRequired):
        await profile_service.require_premium("user-1")

    await profile_service.activate_premium("user-1")
    assert (await profile_service.require_premium("user-1")).is_premium


# ============================================================================
# Price check flow
# ============================================================================


async def test_price_check_is_stored_and_overwritten(price_check_service, profile_service, repository, oracle):
    await profile_service.register("user-1", make_registration(monthly_cost_eur=90))

    first = await price_check_service.run("user-1")
    assert repository.profiles["user-1"].latest_price_check == first
    assert first.usage_source == "estimated"

    extraction_id = await extract_bill(profile_service)
    await profile_service.confirm_verification(
        "user-1", BillConfirmation(extraction_id=extraction_id, kwh_per_month=300, rate_per_kwh=0.45))
    second = await price_check_service.run("user-1")

    assert second.usage_source == "verified"
    assert repository.profiles["user-1"].latest_price_check == second
    assert second.recommendation == Recommendation.SWITCH


async def test_verification_during_price_check_keeps_estimated_label(profile_service, repository):
    await profile_service.register("user-1", make_registration())
    extraction_id = await extract_bill(profile_service)
    gated = GatedOracle()
    service = PriceCheckService(profile_service, MarketComparisonService(
        gated, MarketDataService(gated, [{"provider_name": "Tibber", "rate_per_kwh": 0.26,
                                          "contract_type": "variable"}])))

    check = asyncio.ensure_future(service.run("user-1"))
    await gated.comparing.wait()
    await profile_service.confirm_verification(
        "user-1", BillConfirmation(extraction_id=extraction_id, kwh_per_month=310, rate_per_kwh=0.45))
    gated.release.set()
    result = await check

    stored = repository.profiles["user-1"]
    assert stored.is_verified
    assert stored.latest_price_check == result
    assert stored.latest_price_check.usage_source == "estimated"
    assert stored.latest_price_check.user_kwh_per_month == stored.estimate.kwh_per_month


async def test_failed_price_check_keeps_previous_result(profile_service, repository, oracle):
    await profile_service.register("user-1", make_registration())
    working = PriceCheckService(profile_service, MarketComparisonService(
        oracle, MarketDataService(oracle, [{"provider_name": "Tibber", "rate_per_kwh": 0.26,
                                            "contract_type": "variable"}])))
    previous = await working.run("user-1")

    broken = PriceCheckService(profile_service, MarketComparisonService(oracle, MarketDataService(oracle, [])))
    with pytest.raises(MarketDataUnavailable):
        await broken.run("user-1")

    assert repository.profiles["user-1"].latest_price_check == previous


async def test_latest_reports_age(price_check_service, profile_service):
    await profile_service.register("user-1", make_registration())

    empty = await price_check_service.latest("user-1")
    assert empty.result is None

    await price_check_service.run("user-1")
    status = await price_check_service.latest("user-1")

    assert status.result is not None
    assert 0 <= status.age_hours < 1
    assert status.is_stale is False
