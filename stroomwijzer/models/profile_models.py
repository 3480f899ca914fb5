"""
Domain models for household profiles and their usage figures.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .market_models import PriceCheckResult


ZIPCODE_PATTERN = r"^\d{4}[A-Z]{2}$"


class HouseholdSize(str, Enum):
    ONE = "1"
    TWO = "2"
    THREE_TO_FOUR = "3-4"
    FIVE_PLUS = "5+"


class DwellingType(str, Enum):
    APARTMENT = "apartment"
    TOWNHOUSE = "townhouse"
    SINGLE_FAMILY = "single_family"
    OTHER = "other"


class ContractType(str, Enum):
    FIXED = "fixed"
    FLEXIBLE = "flexible"
    DYNAMIC = "dynamic"
    UNKNOWN = "unknown"

    @classmethod
    def normalize(cls, value: Optional[str]) -> "ContractType":
        """Map free text (English or Dutch) to a contract type."""
        key = (value or "").strip().lower()
        if key in ("fixed", "vast"):
            return cls.FIXED
        if key in ("flexible", "variable", "variabel", "flexibel"):
            return cls.FLEXIBLE
        if key in ("dynamic", "dynamisch"):
            return cls.DYNAMIC
        return cls.UNKNOWN


class ConfidenceLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class SubscriptionTier(str, Enum):
    FREE = "free"
    PREMIUM = "premium"


class HouseholdProfile(BaseModel):
    """Self-reported household attributes."""
    model_config = ConfigDict(frozen=True)

    household_size: HouseholdSize
    dwelling_type: DwellingType
    works_from_home: bool = False
    has_heat_pump: bool = False
    has_district_heating: bool = False
    has_solar_panels: bool = False


class ContractSnapshot(BaseModel):
    """Current contract as reported by the user."""
    model_config = ConfigDict(frozen=True)

    provider_name: str
    contract_type: ContractType = ContractType.UNKNOWN
    monthly_cost_eur: float = Field(gt=0)


class UsageEstimate(BaseModel):
    """Unverified estimate produced by the baseline estimator."""
    kwh_per_month: int = Field(gt=0)
    rate_per_kwh: float = Field(gt=0)
    confidence: ConfidenceLevel
    assumptions: List[str] = []
    reasoning: str = ""


class VerifiedUsage(BaseModel):
    """Figures confirmed by the user from an actual bill."""
    kwh_per_month: float = Field(gt=0)
    rate_per_kwh: float = Field(gt=0)
    provider_name: Optional[str] = None
    contract_type: ContractType = ContractType.UNKNOWN
    confidence: ConfidenceLevel = ConfidenceLevel.LOW
    warnings: List[str] = []
    verified_at: Optional[datetime] = None


class EstimatedSource(BaseModel):
    kind: Literal["estimated"] = "estimated"
    estimate: UsageEstimate

    @property
    def kwh_per_month(self) -> float:
        return float(self.estimate.kwh_per_month)

    @property
    def rate_per_kwh(self) -> float:
        return self.estimate.rate_per_kwh


class VerifiedSource(BaseModel):
    kind: Literal["verified"] = "verified"
    verified: VerifiedUsage

    @property
    def kwh_per_month(self) -> float:
        return self.verified.kwh_per_month

    @property
    def rate_per_kwh(self) -> float:
        return self.verified.rate_per_kwh


UsageSource = Annotated[Union[EstimatedSource, VerifiedSource], Field(discriminator="kind")]


class ProfileRegistration(BaseModel):
    """Signup payload: everything the estimator needs plus contact details."""
    email: str
    zipcode: str = Field(pattern=ZIPCODE_PATTERN)
    house_number: str
    household: HouseholdProfile
    contract: ContractSnapshot
    motivation: Optional[str] = None

    @field_validator("zipcode", mode="before")
    @classmethod
    def normalize_zipcode(cls, value):
        # "1234 ab" -> "1234AB"
        if isinstance(value, str):
            return value.replace(" ", "").upper()
        return value


class PendingExtraction(BaseModel):
    """Bill figures extracted for a profile, waiting for the user's confirmation."""
    extraction_id: str
    extracted_at: datetime
    kwh_per_month: Optional[float] = None
    rate_per_kwh: Optional[float] = None
    provider_name: Optional[str] = None
    contract_type: ContractType = ContractType.UNKNOWN
    confidence: ConfidenceLevel = ConfidenceLevel.LOW
    warnings: List[str] = []


class BillConfirmation(BaseModel):
    """
    The user's answer to one pending extraction.

    Empty fields keep the extracted value, filled fields are the user's
    corrections. Figures the bill did not state must be filled in.
    """
    extraction_id: str = Field(min_length=1)
    kwh_per_month: Optional[float] = Field(default=None, gt=0)
    rate_per_kwh: Optional[float] = Field(default=None, gt=0)
    provider_name: Optional[str] = None
    contract_type: Optional[ContractType] = None


class Profile(BaseModel):
    """
    Authoritative per-user record.

    The estimate and the verified figures are both kept for display, but
    every computation goes through ``authoritative_usage()``, which prefers
    the verified figures as soon as they exist.
    """
    user_id: str
    email: str
    zipcode: str
    house_number: str
    motivation: Optional[str] = None
    household: HouseholdProfile
    contract: ContractSnapshot
    estimate: Optional[UsageEstimate] = None
    verified_usage: Optional[VerifiedUsage] = None
    pending_extraction: Optional[PendingExtraction] = None
    latest_price_check: Optional[PriceCheckResult] = None
    subscription_tier: SubscriptionTier = SubscriptionTier.FREE
    created_at: datetime
    updated_at: datetime

    @property
    def is_verified(self) -> bool:
        return self.verified_usage is not None

    @property
    def is_premium(self) -> bool:
        return self.subscription_tier == SubscriptionTier.PREMIUM

    def authoritative_usage(self) -> Optional[Union[EstimatedSource, VerifiedSource]]:
        """Resolve the usage figures every downstream computation must use."""
        if self.verified_usage is not None:
            return VerifiedSource(verified=self.verified_usage)
        if self.estimate is not None:
            return EstimatedSource(estimate=self.estimate)
        return None

    def effective_contract_type(self) -> ContractType:
        """Contract type from the bill when it states one, else the reported one."""
        if self.verified_usage is not None and self.verified_usage.contract_type != ContractType.UNKNOWN:
            return self.verified_usage.contract_type
        return self.contract.contract_type

    def current_provider(self) -> str:
        if self.verified_usage is not None and self.verified_usage.provider_name:
            return self.verified_usage.provider_name
        return self.contract.provider_name


class ProfileView(BaseModel):
    """Profile as returned by the API, with the resolved usage source."""
    profile: Profile
    is_verified: bool
    usage_source: Optional[UsageSource] = None

    @classmethod
    def from_profile(cls, profile: Profile) -> "ProfileView":
        return cls(
            profile=profile,
            is_verified=profile.is_verified,
            usage_source=profile.authoritative_usage()
        )
