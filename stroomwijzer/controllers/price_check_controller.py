"""
Controller for price check endpoints.

Endpoints:
    - POST /profiles/{user_id}/price-check: Compare against the market and store the result
    - GET /profiles/{user_id}/price-check: Latest stored result with its age
"""

from fastapi import Depends, HTTPException, Path

from .base_controller import BaseController
from .dependencies import get_price_check_service
from ..exceptions import MarketDataUnavailable
from ..models import PriceCheckResult, PriceCheckStatus
from ..services import PriceCheckService


class PriceCheckController(BaseController):
    """Controller for market price checks."""

    def _setup_routes(self):
        """Setup routes for price checks."""

        @self.router.post(
            "/profiles/{user_id}/price-check",
            response_model=PriceCheckResult,
            tags=["Price Check"],
            summary="Run a price check",
            description="""
            Compare the profile's effective rate against current Dutch market
            offers and store the result.

            **Decision rule:**
            - Effective cost per offer: rate x kWh - welcome bonus / 12, plus
              EUR 75 / 12 switching cost when the current contract is fixed
            - SWITCH only when the monthly saving is strictly above EUR 10

            The result states whether verified or estimated usage was used and
            whether the market data was live or the reference table.
            """
        )
        async def run_price_check(
            user_id: str = Path(..., min_length=1),
            service: PriceCheckService = Depends(get_price_check_service)
        ):
            try:
                result = await self.run_with_timeout(
                    service.compute(user_id), MarketDataUnavailable, user_id)
                await service.store(user_id, result)
                return result
            except HTTPException:
                raise
            except Exception as e:
                self.handle_exception(e, "Error running price check")

        @self.router.get(
            "/profiles/{user_id}/price-check",
            response_model=PriceCheckStatus,
            tags=["Price Check"],
            summary="Get the latest price check"
        )
        async def get_latest_price_check(
            user_id: str = Path(..., min_length=1),
            service: PriceCheckService = Depends(get_price_check_service)
        ):
            try:
                return await service.latest(user_id)
            except HTTPException:
                raise
            except Exception as e:
                self.handle_exception(e, "Error retrieving price check")
