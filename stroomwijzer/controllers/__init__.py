"""
Controllers package for API endpoint handlers.
Imports all controllers for easy access.
"""

from fastapi import APIRouter

# Base controller
from .base_controller import BaseController

# Individual controllers
from .info_controller import InfoController
from .profile_controller import ProfileController
from .bill_controller import BillController
from .price_check_controller import PriceCheckController
from .payment_controller import PaymentController


class StroomwijzerController:
    """
    Aggregate controller that combines all endpoint controllers
    into one router.
    """

    def __init__(self, request_timeout_seconds: float = 90.0):
        """Initialize aggregate controller with all sub-controllers."""
        self.router = APIRouter()

        # Initialize individual controllers
        self.info_controller = InfoController(request_timeout_seconds)
        self.profile_controller = ProfileController(request_timeout_seconds)
        self.bill_controller = BillController(request_timeout_seconds)
        self.price_check_controller = PriceCheckController(request_timeout_seconds)
        self.payment_controller = PaymentController(request_timeout_seconds)

        self._setup_aggregate_routes()

    def _setup_aggregate_routes(self):
        """Setup aggregate routes by including all controller routers."""
        self.router.include_router(self.info_controller.router)
        self.router.include_router(self.profile_controller.router)
        self.router.include_router(self.bill_controller.router)
        self.router.include_router(self.price_check_controller.router)
        self.router.include_router(self.payment_controller.router)


__all__ = [
    # Base controller
    "BaseController",

    # Individual controllers
    "InfoController",
    "ProfileController",
    "BillController",
    "PriceCheckController",
    "PaymentController",

    # Aggregate controller
    "StroomwijzerController"
]
