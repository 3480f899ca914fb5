"""
Request and response models for API endpoints.
"""

from typing import Optional

from pydantic import BaseModel

from .bill_models import BillExtraction
from .market_models import PriceCheckResult
from .profile_models import BillConfirmation


class APIInfo(BaseModel):
    """Model for API information."""
    message: str
    version: str
    endpoints: dict


class HealthResponse(BaseModel):
    """Model for health check response."""
    status: str
    service: str


class BillUploadResponse(BaseModel):
    """Extraction result plus the confirmation the user is asked to approve."""
    extraction: BillExtraction
    extraction_id: str
    # None when the bill lacks usage or rate; the user must fill them in
    suggested_confirmation: Optional[BillConfirmation] = None


class PriceCheckStatus(BaseModel):
    """Latest stored price check with its age, so staleness is visible."""
    result: Optional[PriceCheckResult] = None
    age_hours: Optional[float] = None
    is_stale: bool = False


class CheckoutRequest(BaseModel):
    user_id: str
    email: Optional[str] = None


class CheckoutResponse(BaseModel):
    url: str


class WebhookAck(BaseModel):
    received: bool = True
