"""
Domain models for market offers and price check results.
"""

from datetime import datetime
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator


class OfferContractType(str, Enum):
    FIXED = "fixed"
    VARIABLE = "variable"

    @classmethod
    def normalize(cls, value: Optional[str]) -> "OfferContractType":
        """Variable/flexible/dynamic offers (English or Dutch) are variable; the rest fixed."""
        key = (value or "").strip().lower()
        if key in ("variable", "variabel", "flexible", "flexibel", "dynamic", "dynamisch"):
            return cls.VARIABLE
        return cls.FIXED


class Recommendation(str, Enum):
    SWITCH = "SWITCH"
    STAY = "STAY"


class MarketOffer(BaseModel):
    """A single provider offer from the market snapshot."""
    provider_name: str = Field(min_length=1)
    rate_per_kwh: float = Field(gt=0)
    contract_type: OfferContractType = OfferContractType.FIXED
    welcome_bonus_eur: Optional[float] = Field(default=None, ge=0)

    @field_validator("contract_type", mode="before")
    @classmethod
    def normalize_contract_type(cls, value):
        if isinstance(value, OfferContractType):
            return value
        return OfferContractType.normalize(value)


class RankedOffer(MarketOffer):
    """Offer with its effective monthly cost for one specific user."""
    effective_monthly_cost_eur: float


class MarketSnapshot(BaseModel):
    """
    Market data for one comparison run.

    ``source`` tells whether the live grounded lookup succeeded or the
    reference table was used. Only the fallback carries structured offers;
    live context is unstructured text that the reasoning oracle re-parses.
    """
    source: Literal["live", "fallback"]
    context: str
    offers: Optional[List[MarketOffer]] = None
    fetched_at: datetime


class PriceCheckResult(BaseModel):
    """Outcome of one market comparison, stored as advisory state on the profile."""
    checked_at: datetime
    usage_source: Literal["estimated", "verified"]
    user_rate_per_kwh: float
    user_kwh_per_month: float
    user_contract_type: str
    current_monthly_cost_eur: float
    switching_cost_applied: bool
    market_source: Literal["live", "fallback"]
    top2: List[RankedOffer] = []
    # None means no offers were available at all
    cheapest_overall: Optional[RankedOffer] = None
    recommendation: Recommendation
    monthly_savings_eur: Optional[float] = None
    oracle_recommendation: Optional[str] = None
    reasoning: str = ""

    @property
    def has_offers(self) -> bool:
        return self.cheapest_overall is not None

    def age_hours(self, now: datetime) -> float:
        """Hours elapsed since the check; ``now`` must be timezone-aware."""
        return (now - self.checked_at).total_seconds() / 3600

    def is_stale(self, now: datetime, max_age_hours: float = 24.0) -> bool:
        return self.age_hours(now) > max_age_hours
