"""
Controller for the premium upgrade.

Endpoints:
    - POST /payments/checkout: Hosted checkout URL for a free profile
    - POST /payments/webhook: Payment provider callback
"""

from typing import Optional

from fastapi import Depends, Header, HTTPException, Request

from .base_controller import BaseController
from .dependencies import get_subscription_service
from ..models import CheckoutRequest, CheckoutResponse, WebhookAck
from ..services import SubscriptionService


class PaymentController(BaseController):
    """Controller for checkout and payment webhooks."""

    def _setup_routes(self):
        """Setup routes for payments."""

        @self.router.post(
            "/payments/checkout",
            response_model=CheckoutResponse,
            tags=["Payments"],
            summary="Start the premium checkout"
        )
        async def create_checkout(
            body: CheckoutRequest,
            request: Request,
            origin: Optional[str] = Header(None),
            service: SubscriptionService = Depends(get_subscription_service)
        ):
            try:
                url = await service.start_checkout(
                    body.user_id, body.email, origin or str(request.base_url))
                return CheckoutResponse(url=url)
            except HTTPException:
                raise
            except Exception as e:
                self.handle_exception(e, "Error creating checkout session")

        @self.router.post(
            "/payments/webhook",
            response_model=WebhookAck,
            tags=["Payments"],
            summary="Payment provider webhook",
            description="""
            Verifies the **Stripe-Signature** header and upgrades the profile
            named in a completed checkout session to premium. Other event types
            are acknowledged and ignored.
            """
        )
        async def payment_webhook(
            request: Request,
            stripe_signature: Optional[str] = Header(None, alias="Stripe-Signature"),
            service: SubscriptionService = Depends(get_subscription_service)
        ):
            try:
                payload = await request.body()
                await service.handle_webhook(payload, stripe_signature)
                return WebhookAck()
            except HTTPException:
                raise
            except Exception as e:
                self.handle_exception(e, "Error handling payment webhook")
