"""
Services package for business logic.
"""

from .base_service import BaseService
from .estimation_service import EstimationService
from .bill_extraction_service import (
    BillExtractionService,
    consistency_warnings,
    pending_extraction,
    suggested_confirmation
)
from .market_data_service import MarketDataService
from .market_comparison_service import MarketComparisonService
from .profile_service import ProfileService
from .price_check_service import PriceCheckService
from .subscription_service import SubscriptionService

__all__ = [
    "BaseService",
    "EstimationService",
    "BillExtractionService",
    "consistency_warnings",
    "pending_extraction",
    "suggested_confirmation",
    "MarketDataService",
    "MarketComparisonService",
    "ProfileService",
    "PriceCheckService",
    "SubscriptionService"
]
