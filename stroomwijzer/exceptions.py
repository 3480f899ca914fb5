"""
Typed failures raised by the estimation and comparison engine.

Services raise these; only the controllers translate them into HTTP
responses. None of them carries fabricated fallback numbers: a failure is
always distinguishable from a legitimate zero or "no data" result.
"""

from typing import Optional


class StroomwijzerError(Exception):
    """Base class for all engine failures."""

    retriable = False

    def __init__(self, message: str, user_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.user_id = user_id


class OracleError(StroomwijzerError):
    """Any failure talking to an external oracle."""

    retriable = True


class OracleUnavailable(OracleError):
    """Transport error, timeout or non-success HTTP status from an oracle."""


class OraclePayloadInvalid(OracleError):
    """Oracle answered, but not with JSON matching the expected schema."""


class EstimationFailed(StroomwijzerError):
    """The baseline estimate could not be produced."""

    retriable = True


class ExtractionFailed(StroomwijzerError):
    """The bill document could not be read or extracted."""

    retriable = True


class NoUsageData(StroomwijzerError):
    """Profile has neither verified nor estimated usage figures."""


class MarketDataUnavailable(StroomwijzerError):
    """Neither the live lookup nor the reference table produced a snapshot."""

    retriable = True


class PersistenceFailed(StroomwijzerError):
    """The profile store rejected a read or write."""

    retriable = True


class ProfileNotFound(StroomwijzerError):
    """No profile exists for the requested user id."""


class ProfileStateError(StroomwijzerError):
    """Requested transition is not valid for the profile's current state."""


class PremiumRequired(StroomwijzerError):
    """Operation is reserved for premium subscribers."""


class PaymentError(StroomwijzerError):
    """Checkout creation or webhook verification failed."""
