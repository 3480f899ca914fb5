"""
Controller for API information and health endpoints.
"""

from .base_controller import BaseController
from ..models import APIInfo, HealthResponse


class InfoController(BaseController):
    """Controller for API information and health endpoints."""

    def _setup_routes(self):
        """Setup routes for API info and health."""

        @self.router.get("/", response_model=APIInfo, tags=["System Information"])
        async def get_api_info():
            """API root endpoint with basic information."""
            return APIInfo(
                message="Stroomwijzer API",
                version="1.0.0",
                endpoints={
                    "profiles": "/profiles/{user_id} - Sign up or get a profile",
                    "bill": "/profiles/{user_id}/bill - Extract figures from a bill (premium)",
                    "verification": "/profiles/{user_id}/verification - Confirm bill figures",
                    "price_check": "/profiles/{user_id}/price-check - Run or get the latest price check",
                    "checkout": "/payments/checkout - Start the premium upgrade",
                    "health": "/health - Health check"
                }
            )

        @self.router.get("/health", response_model=HealthResponse, tags=["System Information"])
        async def health_check():
            """Health check endpoint."""
            return HealthResponse(
                status="healthy",
                service="stroomwijzer-api"
            )
