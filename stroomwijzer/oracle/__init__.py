"""
Oracle package: interface, payload contracts and the Gemini implementation.
"""

from .base_oracle import Oracle, OracleRequest
from .gemini_oracle import GeminiOracle
from .payloads import (
    ESTIMATE_SCHEMA,
    BILL_SCHEMA,
    COMPARISON_SCHEMA,
    EstimatePayload,
    BillPayload,
    ProviderPayload,
    ComparisonPayload,
    decode_json_object,
    validate_payload
)

__all__ = [
    "Oracle",
    "OracleRequest",
    "GeminiOracle",
    "ESTIMATE_SCHEMA",
    "BILL_SCHEMA",
    "COMPARISON_SCHEMA",
    "EstimatePayload",
    "BillPayload",
    "ProviderPayload",
    "ComparisonPayload",
    "decode_json_object",
    "validate_payload"
]
