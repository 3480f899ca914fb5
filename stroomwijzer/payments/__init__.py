"""
Payments package for the premium subscription.
"""

from .stripe_checkout import StripeCheckoutClient, verify_webhook_signature

__all__ = [
    "StripeCheckoutClient",
    "verify_webhook_signature"
]
