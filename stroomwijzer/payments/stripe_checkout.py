"""
Stripe client for the premium upgrade.

Creates hosted checkout sessions and verifies webhook events with the
Stripe SDK.
"""

import json
import logging
from typing import Any, Dict, Optional

import stripe

from ..config import PaymentConfig
from ..exceptions import PaymentError

logger = logging.getLogger(__name__)


class StripeCheckoutClient:
    """Creates subscription checkout sessions for one configured price."""

    def __init__(self, config: PaymentConfig):
        self.config = config

    def create_checkout_session(self, user_id: str, email: Optional[str], origin: str) -> str:
        """
        Create a hosted checkout session and return its URL.

        The user id travels both as ``client_reference_id`` and as session
        metadata so the webhook can find the profile again.
        """
        if not self.config.secret_key or not self.config.price_id:
            raise PaymentError("Payments are not configured", user_id)

        origin = origin.rstrip('/')
        params: Dict[str, Any] = {
            'mode': 'subscription',
            'line_items': [{'price': self.config.price_id, 'quantity': 1}],
            'success_url': f"{origin}/?payment=success",
            'cancel_url': f"{origin}/?payment=cancelled",
            'client_reference_id': user_id,
            'metadata': {'user_id': user_id},
        }
        if email:
            params['customer_email'] = email

        try:
            session = stripe.checkout.Session.create(api_key=self.config.secret_key, **params)
        except stripe.StripeError as e:
            logger.error(f"Checkout session creation failed for {user_id}: {e}")
            raise PaymentError(f"Checkout session creation failed: {e}", user_id) from e

        url = getattr(session, 'url', None)
        if not url:
            raise PaymentError("Checkout response has no URL", user_id)

        logger.info(f"Checkout session {getattr(session, 'id', None)} created for {user_id}")
        return url


def verify_webhook_signature(payload: bytes, signature_header: Optional[str], secret: Optional[str],
                             tolerance_seconds: int = 300) -> Dict[str, Any]:
    """
    Verify a webhook payload and return the decoded event.

    Raises:
        PaymentError: missing secret or header, bad signature, stale timestamp
            or a body that is not a JSON object.
    """
    if not secret:
        raise PaymentError("Webhook secret is not configured")
    if not signature_header:
        raise PaymentError("Missing Stripe-Signature header")

    try:
        stripe.Webhook.construct_event(payload, signature_header, secret, tolerance=tolerance_seconds)
    except stripe.SignatureVerificationError as e:
        logger.warning(f"Webhook signature rejected: {e}")
        raise PaymentError(f"Webhook signature rejected: {e}") from e
    except ValueError as e:
        raise PaymentError("Webhook body is not JSON") from e

    # Plain dict for the service layer
    event = json.loads(payload)
    if not isinstance(event, dict):
        raise PaymentError("Webhook body is not a JSON object")
    return event
