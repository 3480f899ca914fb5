"""
Service owning profile state transitions.

    Unregistered -> Estimated -> (optionally) Verified
    NoPriceCheck -> PriceChecked (repeatable, each overwrites the last)
    Free -> Premium

The three axes are independent. Estimated is entered once, at signup, and
only after a successful estimate. Verified is entered only through explicit
user confirmation of a successful bill extraction and is never reverted.
Premium is entered only through a completed payment.
"""

import asyncio
import uuid
from datetime import datetime
from typing import Optional

import pytz

from .base_service import BaseService
from .bill_extraction_service import pending_extraction
from .estimation_service import EstimationService
from ..config import ProfileStoreConfig
from ..exceptions import PremiumRequired, ProfileNotFound, ProfileStateError
from ..models import (
    BillConfirmation,
    BillExtraction,
    PendingExtraction,
    PriceCheckResult,
    Profile,
    ProfileRegistration,
    SubscriptionTier,
    UsageEstimate,
    VerifiedUsage
)
from ..repositories import BaseProfileRepository


class ProfileService(BaseService):
    """Service for profile lifecycle within the engine."""

    def __init__(self, repository: BaseProfileRepository, estimation_service: EstimationService,
                 store_config: Optional[ProfileStoreConfig] = None,
                 timezone: str = "Europe/Amsterdam"):
        super().__init__(repository)
        self.estimation_service = estimation_service
        self.store_config = store_config or ProfileStoreConfig()
        self.timezone = pytz.timezone(timezone)

    def validate_input(self, **kwargs) -> bool:
        """User ids must be non-empty."""
        user_id = kwargs.get('user_id')
        if not user_id or not str(user_id).strip():
            raise ValueError("User id must not be empty")
        return True

    def now(self) -> datetime:
        return datetime.now(self.timezone)

    async def register(self, user_id: str, registration: ProfileRegistration) -> Profile:
        """
        Create a profile with its first usage estimate.

        The estimate is computed before anything is stored: when it fails,
        no profile is created.

        Raises:
            ProfileStateError: a profile already exists for this user.
            EstimationFailed: the estimator failed.
            PersistenceFailed: the store rejected the write.
        """
        estimate = await self.estimate_registration(user_id, registration)
        return await self.create_profile(user_id, registration, estimate)

    async def estimate_registration(self, user_id: str, registration: ProfileRegistration) -> UsageEstimate:
        """First half of ``register``: refuse existing profiles, then estimate."""
        self.validate_input(user_id=user_id)

        existing = await self.run_blocking(self.repository.find_by_id, user_id)
        if existing is not None:
            raise ProfileStateError(f"Profile {user_id} already exists", user_id)

        return await self.estimation_service.estimate(registration.household, registration.contract)

    async def create_profile(self, user_id: str, registration: ProfileRegistration,
                             estimate: UsageEstimate) -> Profile:
        """Second half of ``register``: store the profile with its estimate."""
        now = self.now()
        profile = Profile(
            user_id=user_id,
            email=registration.email,
            zipcode=registration.zipcode,
            house_number=registration.house_number,
            motivation=registration.motivation,
            household=registration.household,
            contract=registration.contract,
            estimate=estimate,
            subscription_tier=SubscriptionTier.FREE,
            created_at=now,
            updated_at=now,
        )
        await self.run_blocking(self.repository.insert, profile)
        self.logger.info(f"Registered profile {user_id} with {estimate.kwh_per_month} kWh/month estimate")
        return profile

    async def get_profile(self, user_id: str) -> Profile:
        """Get a profile; raises ProfileNotFound when absent."""
        self.validate_input(user_id=user_id)
        profile = await self.run_blocking(self.repository.find_by_id, user_id)
        if profile is None:
            raise ProfileNotFound(f"Profile {user_id} not found", user_id)
        return profile

    async def require_premium(self, user_id: str) -> Profile:
        """Get a profile that must be on the premium tier."""
        profile = await self.get_profile(user_id)
        if not profile.is_premium:
            raise PremiumRequired(f"Profile {user_id} needs a premium subscription", user_id)
        return profile

    async def wait_for_profile(self, user_id: str) -> Profile:
        """
        Get a profile that may have just been created.

        Retries only the "not found yet" case, a fixed number of times with
        linearly increasing backoff, then gives up with ProfileNotFound.
        """
        self.validate_input(user_id=user_id)
        attempts = self.store_config.max_read_attempts

        for attempt in range(attempts):
            if attempt > 0:
                await asyncio.sleep(self.store_config.backoff_seconds * attempt)
            profile = await self.run_blocking(self.repository.find_by_id, user_id)
            if profile is not None:
                return profile
            self.logger.info(f"Profile {user_id} not visible yet (attempt {attempt + 1}/{attempts})")

        raise ProfileNotFound(f"Profile {user_id} not found after {attempts} attempts", user_id)

    async def record_extraction(self, user_id: str, extraction: BillExtraction) -> PendingExtraction:
        """
        Keep a successful extraction on the profile until the user confirms it.

        A newer upload replaces any extraction still waiting for confirmation.
        """
        pending = pending_extraction(extraction, uuid.uuid4().hex, self.now())
        await self.run_blocking(
            self.repository.update_fields, user_id, {"pending_extraction": pending})
        self.logger.info(f"Bill extraction {pending.extraction_id} awaiting confirmation for {user_id}")
        return pending

    async def confirm_verification(self, user_id: str, confirmation: BillConfirmation) -> Profile:
        """
        Store user-confirmed bill figures; the profile is verified from now on.

        Only the profile's pending extraction can be confirmed, once. The
        user's corrections are applied on top of the extracted figures. A
        verified profile may confirm a newer bill, which replaces the figures
        but never returns the profile to the estimated state.

        Raises:
            PremiumRequired: the profile is on the free tier.
            ProfileStateError: no pending extraction, or a different one.
            ValueError: kWh or rate is neither on the bill nor filled in.
        """
        profile = await self.require_premium(user_id)

        pending = profile.pending_extraction
        if pending is None:
            raise ProfileStateError(f"Profile {user_id} has no bill extraction awaiting confirmation", user_id)
        if confirmation.extraction_id != pending.extraction_id:
            raise ProfileStateError(
                f"Extraction {confirmation.extraction_id} is not the latest bill extraction", user_id)

        kwh = confirmation.kwh_per_month or pending.kwh_per_month
        rate = confirmation.rate_per_kwh or pending.rate_per_kwh
        if kwh is None or rate is None:
            raise ValueError("Monthly kWh and rate per kWh must be filled in; the bill does not state them")

        contract_type = confirmation.contract_type
        if contract_type is None:
            contract_type = pending.contract_type

        verified = VerifiedUsage(
            kwh_per_month=kwh,
            rate_per_kwh=rate,
            provider_name=confirmation.provider_name or pending.provider_name,
            contract_type=contract_type,
            confidence=pending.confidence,
            warnings=pending.warnings,
            verified_at=self.now(),
        )
        await self.run_blocking(
            self.repository.update_fields, user_id, {"verified_usage": verified, "pending_extraction": None})

        if profile.is_verified:
            self.logger.info(f"Profile {user_id} re-verified with a newer bill")
        else:
            self.logger.info(f"Profile {user_id} verified")
        return profile.model_copy(
            update={"verified_usage": verified, "pending_extraction": None, "updated_at": self.now()})

    async def record_price_check(self, user_id: str, result: PriceCheckResult) -> None:
        """Store the latest price check exactly as computed."""
        await self.run_blocking(
            self.repository.update_fields, user_id, {"latest_price_check": result})

    async def activate_premium(self, user_id: str) -> Profile:
        """Flip the subscription tier to premium (idempotent)."""
        profile = await self.get_profile(user_id)
        if profile.is_premium:
            self.logger.info(f"Profile {user_id} is already premium")
            return profile

        await self.run_blocking(
            self.repository.update_fields, user_id, {"subscription_tier": SubscriptionTier.PREMIUM})
        self.logger.info(f"Premium activated for user: {user_id}")
        return profile.model_copy(update={"subscription_tier": SubscriptionTier.PREMIUM})
