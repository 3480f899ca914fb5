"""
Models package for API data structures.
Imports all models for easy access.
"""

# Market models
from .market_models import (
    OfferContractType,
    Recommendation,
    MarketOffer,
    RankedOffer,
    MarketSnapshot,
    PriceCheckResult
)

# Profile models
from .profile_models import (
    HouseholdSize,
    DwellingType,
    ContractType,
    ConfidenceLevel,
    SubscriptionTier,
    HouseholdProfile,
    ContractSnapshot,
    UsageEstimate,
    VerifiedUsage,
    EstimatedSource,
    VerifiedSource,
    UsageSource,
    ProfileRegistration,
    BillConfirmation,
    PendingExtraction,
    Profile,
    ProfileView
)

# Bill models
from .bill_models import BillExtraction

# Response models
from .response_models import (
    APIInfo,
    HealthResponse,
    BillUploadResponse,
    PriceCheckStatus,
    CheckoutRequest,
    CheckoutResponse,
    WebhookAck
)

__all__ = [
    # Market models
    "OfferContractType",
    "Recommendation",
    "MarketOffer",
    "RankedOffer",
    "MarketSnapshot",
    "PriceCheckResult",

    # Profile models
    "HouseholdSize",
    "DwellingType",
    "ContractType",
    "ConfidenceLevel",
    "SubscriptionTier",
    "HouseholdProfile",
    "ContractSnapshot",
    "UsageEstimate",
    "VerifiedUsage",
    "EstimatedSource",
    "VerifiedSource",
    "UsageSource",
    "ProfileRegistration",
    "PendingExtraction",
    "BillConfirmation",
    "Profile",
    "ProfileView",

    # Bill models
    "BillExtraction",

    # Response models
    "APIInfo",
    "HealthResponse",
    "BillUploadResponse",
    "PriceCheckStatus",
    "CheckoutRequest",
    "CheckoutResponse",
    "WebhookAck"
]
