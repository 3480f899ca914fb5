"""
Response schemas per oracle operation and strict payload decoding.

Oracle answers are never parsed leniently: anything that is not a JSON
object matching the operation's schema raises OraclePayloadInvalid.
"""

import json
from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, Field, ValidationError, field_validator

from ..exceptions import OraclePayloadInvalid
from ..models import ConfidenceLevel

T = TypeVar("T", bound=BaseModel)

CONFIDENCE_ALIASES = {
    "high": ConfidenceLevel.HIGH,
    "hoog": ConfidenceLevel.HIGH,
    "medium": ConfidenceLevel.MEDIUM,
    "gemiddeld": ConfidenceLevel.MEDIUM,
    "middel": ConfidenceLevel.MEDIUM,
    "low": ConfidenceLevel.LOW,
    "laag": ConfidenceLevel.LOW,
}


def parse_confidence(value: Any) -> ConfidenceLevel:
    if isinstance(value, ConfidenceLevel):
        return value
    key = str(value).strip().lower()
    if key not in CONFIDENCE_ALIASES:
        raise ValueError(f"unknown confidence level: {value!r}")
    return CONFIDENCE_ALIASES[key]


# Schemas in the Generative Language API format (OpenAPI subset)
ESTIMATE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "estimated_kwh_per_month": {"type": "INTEGER"},
        "estimated_per_kwh_rate": {"type": "NUMBER"},
        "confidence_level": {"type": "STRING", "enum": ["high", "medium", "low"]},
        "assumptions": {"type": "ARRAY", "items": {"type": "STRING"}},
        "reasoning": {"type": "STRING"},
    },
    "required": ["estimated_kwh_per_month", "estimated_per_kwh_rate", "confidence_level"],
}

BILL_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "annual_kwh": {"type": "NUMBER", "nullable": True},
        "monthly_kwh": {"type": "NUMBER", "nullable": True},
        "annual_cost_eur": {"type": "NUMBER", "nullable": True},
        "monthly_cost_eur": {"type": "NUMBER", "nullable": True},
        "per_kwh_rate": {"type": "NUMBER", "nullable": True},
        "contract_type": {"type": "STRING", "nullable": True},
        "provider_name": {"type": "STRING", "nullable": True},
        "extraction_confidence": {"type": "STRING"},
        "warnings": {"type": "ARRAY", "items": {"type": "STRING"}},
    },
}

COMPARISON_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "top2_providers": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "name": {"type": "STRING"},
                    "per_kwh_rate": {"type": "NUMBER"},
                    "contract_type": {"type": "STRING"},
                    "welkomsbonus": {"type": "NUMBER", "nullable": True},
                },
                "required": ["name", "per_kwh_rate"],
            },
        },
        "monthly_savings": {"type": "NUMBER"},
        "recommendation": {"type": "STRING"},
        "reasoning": {"type": "STRING"},
    },
    "required": ["top2_providers", "reasoning"],
}


class EstimatePayload(BaseModel):
    estimated_kwh_per_month: int = Field(gt=0)
    estimated_per_kwh_rate: float
    confidence_level: ConfidenceLevel
    assumptions: List[str] = []
    reasoning: str = ""

    @field_validator("confidence_level", mode="before")
    @classmethod
    def _confidence(cls, value):
        return parse_confidence(value)


class BillPayload(BaseModel):
    annual_kwh: Optional[float] = Field(default=None, ge=0)
    monthly_kwh: Optional[float] = Field(default=None, ge=0)
    annual_cost_eur: Optional[float] = Field(default=None, ge=0)
    monthly_cost_eur: Optional[float] = Field(default=None, ge=0)
    per_kwh_rate: Optional[float] = Field(default=None, ge=0)
    contract_type: Optional[str] = None
    provider_name: Optional[str] = None
    extraction_confidence: ConfidenceLevel = ConfidenceLevel.LOW
    warnings: List[str] = []

    @field_validator("extraction_confidence", mode="before")
    @classmethod
    def _confidence(cls, value):
        if value is None:
            return ConfidenceLevel.LOW
        return parse_confidence(value)

    @field_validator("warnings", mode="before")
    @classmethod
    def _warnings(cls, value):
        return [] if value is None else value


class ProviderPayload(BaseModel):
    name: str = Field(min_length=1)
    per_kwh_rate: float = Field(gt=0)
    contract_type: Optional[str] = None
    welkomsbonus: Optional[float] = Field(default=None, ge=0)


class ComparisonPayload(BaseModel):
    top2_providers: List[ProviderPayload]
    monthly_savings: Optional[float] = None
    recommendation: Optional[str] = None
    reasoning: str = ""


def decode_json_object(text: Optional[str]) -> Dict[str, Any]:
    """
    Decode an oracle answer into a JSON object.

    Markdown code fences around the JSON are stripped; anything else that is
    not a single JSON object is rejected.
    """
    if text is None or not text.strip():
        raise OraclePayloadInvalid("Oracle returned an empty answer")

    content = text.strip()
    if content.startswith("```"):
        lines = content.splitlines()
        end = len(lines)
        for i in range(len(lines) - 1, 0, -1):
            if lines[i].strip() == "```":
                end = i
                break
        content = "\n".join(lines[1:end])

    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise OraclePayloadInvalid(f"Oracle answer is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise OraclePayloadInvalid(
            f"Oracle answer must be a JSON object, got {type(data).__name__}")
    return data


def validate_payload(model: Type[T], data: Dict[str, Any]) -> T:
    """Validate decoded JSON against a payload model."""
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise OraclePayloadInvalid(
            f"Oracle answer does not match {model.__name__}: {e.error_count()} error(s)") from e
