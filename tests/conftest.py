"""
Shared fixtures: a deterministic oracle and an in-memory profile store.

The stub oracle follows the same rules a well-behaved model would: the
estimate is the midpoint of the reference range it is given, confidence
drops with every stacked factor, and comparisons return a configurable
provider list.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

import pytest
import pytz

from stroomwijzer.config import ApplicationConfig, PaymentConfig, ProfileStoreConfig
from stroomwijzer.exceptions import OracleUnavailable, ProfileNotFound, ProfileStateError
from stroomwijzer.models import (
    ContractSnapshot,
    ContractType,
    DwellingType,
    HouseholdProfile,
    HouseholdSize,
    Profile,
    ProfileRegistration,
    SubscriptionTier,
    UsageEstimate,
    VerifiedUsage
)
from stroomwijzer.oracle import Oracle, OracleRequest
from stroomwijzer.repositories import BaseProfileRepository
from stroomwijzer.services import (
    BillExtractionService,
    EstimationService,
    MarketComparisonService,
    MarketDataService,
    PriceCheckService,
    ProfileService
)

AMSTERDAM = pytz.timezone("Europe/Amsterdam")

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


# ============================================================================
# Test doubles
# ============================================================================


class StubOracle(Oracle):
    """Deterministic oracle; every call is recorded in ``requests``."""

    def __init__(self):
        self.requests: List[OracleRequest] = []
        self.search_queries: List[str] = []
        self.fail_operations = set()
        self.search_fails = True
        self.search_text = "Actuele tarieven: Vattenfall €0,30/kWh vast, welkomstbonus €75."
        self.answers: Dict[str, Dict[str, Any]] = {}
        self.estimate_rate_override: Optional[float] = None
        self.comparison_providers: List[Dict[str, Any]] = [
            {"name": "Vattenfall", "per_kwh_rate": 0.30, "contract_type": "vast", "welkomsbonus": 75},
            {"name": "Eneco", "per_kwh_rate": 0.33, "contract_type": "vast", "welkomsbonus": None},
        ]
        self.comparison_recommendation: Optional[str] = None
        self.bill_answer: Dict[str, Any] = {
            "annual_kwh": 3000,
            "monthly_kwh": 250,
            "annual_cost_eur": 1200,
            "monthly_cost_eur": 100,
            "per_kwh_rate": 0.40,
            "contract_type": "vast",
            "provider_name": "essent",
            "extraction_confidence": "hoog",
            "warnings": [],
        }

    async def infer(self, request: OracleRequest) -> Dict[str, Any]:
        self.requests.append(request)
        if request.operation in self.fail_operations:
            raise OracleUnavailable(f"{request.operation} unavailable")
        if request.operation in self.answers:
            return self.answers[request.operation]

        if request.operation == "estimate_usage":
            return self._estimate(request.fields)
        if request.operation == "extract_bill":
            return dict(self.bill_answer)
        if request.operation == "compare_market":
            return self._compare(request.fields)
        raise AssertionError(f"unexpected operation {request.operation}")

    async def grounded_search(self, query: str) -> str:
        self.search_queries.append(query)
        if self.search_fails:
            raise OracleUnavailable("search unavailable")
        return self.search_text

    def _estimate(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        kwh = max(1, round((fields["reference_kwh_low"] + fields["reference_kwh_high"]) / 2))
        stacked = fields["stacked_factors"]
        confidence = "high" if stacked == 0 else "medium" if stacked == 1 else "low"
        rate = self.estimate_rate_override
        if rate is None:
            rate = round(fields["monthly_cost_eur"] / kwh, 4)
        return {
            "estimated_kwh_per_month": kwh,
            "estimated_per_kwh_rate": rate,
            "confidence_level": confidence,
            "assumptions": ["Referentiebereik gebruikt"],
            "reasoning": "Schatting op basis van het referentiebereik.",
        }

    def _compare(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        recommendation = self.comparison_recommendation
        if recommendation is None and self.comparison_providers:
            cheapest = min(provider["per_kwh_rate"] for provider in self.comparison_providers)
            savings = (fields["user_rate"] - cheapest) * fields["user_kwh"]
            recommendation = "SWITCH" if savings > 10 else "STAY"
        return {
            "top2_providers": self.comparison_providers,
            "monthly_savings": 0,
            "recommendation": recommendation or "STAY",
            "reasoning": "Vergelijking op basis van de marktdata.",
        }

    def operations(self) -> List[str]:
        return [request.operation for request in self.requests]


class InMemoryProfileRepository(BaseProfileRepository):
    """
    Dict-backed profile store.

    ``hidden_reads`` makes a stored profile invisible for the given number
    of reads, like a store that has not caught up with a fresh write yet.
    """

    def __init__(self):
        self.profiles: Dict[str, Profile] = {}
        self.hidden_reads: Dict[str, int] = {}
        self.reads = 0

    def find_by_id(self, user_id: str) -> Optional[Profile]:
        self.reads += 1
        if self.hidden_reads.get(user_id, 0) > 0:
            self.hidden_reads[user_id] -= 1
            return None
        return self.profiles.get(user_id)

    def insert(self, profile: Profile) -> None:
        if profile.user_id in self.profiles:
            raise ProfileStateError(f"Profile {profile.user_id} already exists", profile.user_id)
        self.profiles[profile.user_id] = profile

    def update_fields(self, user_id: str, fields: Dict[str, Any]) -> None:
        if user_id not in self.profiles:
            raise ProfileNotFound(f"Profile {user_id} not found", user_id)
        if "verified_usage" in fields and fields["verified_usage"] is None:
            raise ProfileStateError("Verified usage cannot be removed from a profile")
        update = dict(fields)
        update.setdefault("updated_at", datetime.now(AMSTERDAM))
        self.profiles[user_id] = self.profiles[user_id].model_copy(update=update)

    def count(self) -> int:
        return len(self.profiles)


# ============================================================================
# Builders
# ============================================================================


def make_household(**overrides) -> HouseholdProfile:
    values = {
        "household_size": HouseholdSize.ONE,
        "dwelling_type": DwellingType.APARTMENT,
    }
    values.update(overrides)
    return HouseholdProfile(**values)


def make_registration(monthly_cost_eur: float = 80.0, contract_type: ContractType = ContractType.FIXED,
                      **household_overrides) -> ProfileRegistration:
    return ProfileRegistration(
        email="jan@example.nl",
        zipcode="1234 ab",
        house_number="12",
        household=make_household(**household_overrides),
        contract=ContractSnapshot(
            provider_name="Essent",
            contract_type=contract_type,
            monthly_cost_eur=monthly_cost_eur,
        ),
    )


def make_profile(user_id: str = "user-1", rate_per_kwh: float = 0.45, kwh_per_month: int = 300,
                 contract_type: ContractType = ContractType.FIXED,
                 verified: Optional[VerifiedUsage] = None,
                 tier: SubscriptionTier = SubscriptionTier.FREE) -> Profile:
    now = datetime.now(AMSTERDAM)
    return Profile(
        user_id=user_id,
        email="jan@example.nl",
        zipcode="1234AB",
        house_number="12",
        household=make_household(),
        contract=ContractSnapshot(
            provider_name="Essent",
            contract_type=contract_type,
            monthly_cost_eur=round(rate_per_kwh * kwh_per_month, 2),
        ),
        estimate=UsageEstimate(
            kwh_per_month=kwh_per_month,
            rate_per_kwh=rate_per_kwh,
            confidence="medium",
        ),
        verified_usage=verified,
        subscription_tier=tier,
        created_at=now,
        updated_at=now,
    )


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def oracle():
    return StubOracle()


@pytest.fixture
def repository():
    return InMemoryProfileRepository()


@pytest.fixture
def config():
    """Application settings isolated from the developer's environment."""
    config = ApplicationConfig()
    config.oracle.api_key = None
    config.profile_store = ProfileStoreConfig(max_read_attempts=5, backoff_seconds=0)
    config.payment = PaymentConfig(
        secret_key="sk_test_123",
        price_id="price_123",
        webhook_secret="whsec_test",
    )
    config.oracle.request_timeout_seconds = 5
    return config


@pytest.fixture
def estimation_service(oracle):
    return EstimationService(oracle)


@pytest.fixture
def bill_extraction_service(oracle):
    return BillExtractionService(oracle, max_upload_bytes=1024)


@pytest.fixture
def market_data_service(oracle, config):
    return MarketDataService(oracle, config.market.fallback_offers)


@pytest.fixture
def comparison_service(oracle, market_data_service, config):
    return MarketComparisonService(oracle, market_data_service, config.comparator)


@pytest.fixture
def profile_service(repository, estimation_service, config):
    return ProfileService(repository, estimation_service, config.profile_store)


@pytest.fixture
def price_check_service(profile_service, comparison_service):
    return PriceCheckService(profile_service, comparison_service)
