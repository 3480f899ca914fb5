"""
Dependency injection for controllers.

Services are built once in ``create_app`` and kept on ``app.state``; these
functions hand them to route handlers through ``Depends``.
"""

from fastapi import Request

from ..services import (
    BillExtractionService,
    PriceCheckService,
    ProfileService,
    SubscriptionService
)


def get_profile_service(request: Request) -> ProfileService:
    """Dependency injection for ProfileService."""
    return request.app.state.profile_service


def get_bill_extraction_service(request: Request) -> BillExtractionService:
    """Dependency injection for BillExtractionService."""
    return request.app.state.bill_extraction_service


def get_price_check_service(request: Request) -> PriceCheckService:
    """Dependency injection for PriceCheckService."""
    return request.app.state.price_check_service


def get_subscription_service(request: Request) -> SubscriptionService:
    """Dependency injection for SubscriptionService."""
    return request.app.state.subscription_service
