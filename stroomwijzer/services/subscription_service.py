"""
Service for the Free -> Premium upgrade.
"""

from typing import Optional

from .base_service import BaseService
from .profile_service import ProfileService
from ..config import PaymentConfig
from ..exceptions import PaymentError, ProfileStateError
from ..payments import StripeCheckoutClient, verify_webhook_signature

COMPLETED_EVENT = "checkout.session.completed"


class SubscriptionService(BaseService):
    """Starts checkouts and applies completed payments."""

    def __init__(self, profile_service: ProfileService, checkout_client: StripeCheckoutClient,
                 config: PaymentConfig):
        super().__init__()
        self.profile_service = profile_service
        self.checkout_client = checkout_client
        self.config = config

    def validate_input(self, **kwargs) -> bool:
        return self.profile_service.validate_input(**kwargs)

    async def start_checkout(self, user_id: str, email: Optional[str], origin: str) -> str:
        """Checkout URL for a free profile."""
        profile = await self.profile_service.get_profile(user_id)
        if profile.is_premium:
            raise ProfileStateError(f"Profile {user_id} is already premium", user_id)

        return await self.run_blocking(
            self.checkout_client.create_checkout_session,
            user_id, email or profile.email, origin)

    async def handle_webhook(self, payload: bytes, signature_header: Optional[str]) -> bool:
        """
        Apply a verified webhook event.

        Returns True when a profile was upgraded; other event types are
        acknowledged and ignored.
        """
        event = verify_webhook_signature(
            payload, signature_header, self.config.webhook_secret,
            self.config.webhook_tolerance_seconds)

        event_type = event.get("type")
        if event_type != COMPLETED_EVENT:
            self.logger.info(f"Ignoring webhook event {event_type}")
            return False

        session = (event.get("data") or {}).get("object") or {}
        user_id = (session.get("metadata") or {}).get("user_id") or session.get("client_reference_id")
        if not user_id:
            raise PaymentError("Completed checkout carries no user id")

        await self.profile_service.activate_premium(user_id)
        return True
