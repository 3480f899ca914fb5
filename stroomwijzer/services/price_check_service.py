"""
Service running a price check for a stored profile and keeping the result.
"""

from .base_service import BaseService
from .market_comparison_service import MarketComparisonService
from .profile_service import ProfileService
from ..models import PriceCheckResult, PriceCheckStatus


class PriceCheckService(BaseService):
    """Load profile -> compare -> store result."""

    def __init__(self, profile_service: ProfileService, comparison_service: MarketComparisonService,
                 stale_after_hours: float = 24.0):
        super().__init__()
        self.profile_service = profile_service
        self.comparison_service = comparison_service
        self.stale_after_hours = stale_after_hours

    def validate_input(self, **kwargs) -> bool:
        return self.profile_service.validate_input(**kwargs)

    async def run(self, user_id: str) -> PriceCheckResult:
        """
        Compare the profile against the market and store the result.

        Nothing is stored when any step fails; the previous result stays.
        """
        result = await self.compute(user_id)
        await self.store(user_id, result)
        return result

    async def compute(self, user_id: str) -> PriceCheckResult:
        """Compare against the profile as it was read; nothing is stored."""
        profile = await self.profile_service.get_profile(user_id)
        return await self.comparison_service.compare(profile)

    async def store(self, user_id: str, result: PriceCheckResult) -> None:
        await self.profile_service.record_price_check(user_id, result)

    async def latest(self, user_id: str) -> PriceCheckStatus:
        """Latest stored result with its age."""
        profile = await self.profile_service.get_profile(user_id)
        result = profile.latest_price_check
        if result is None:
            return PriceCheckStatus()

        now = self.profile_service.now()
        return PriceCheckStatus(
            result=result,
            age_hours=round(result.age_hours(now), 2),
            is_stale=result.is_stale(now, self.stale_after_hours),
        )
