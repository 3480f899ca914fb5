"""
Oracle interface used by the estimation, extraction and comparison services.

An oracle is an external, non-deterministic reasoning service with a JSON
contract per operation. Services only depend on this interface, so tests can
plug in a deterministic stub instead of a live model.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from pydantic import BaseModel


class OracleRequest(BaseModel):
    """
    One oracle call.

    Attributes:
        operation: Name of the engine operation (for logging and stubs).
        prompt: Natural-language instruction embedding the numeric fields.
        response_schema: JSON schema the answer must follow.
        fields: The structured inputs the prompt was rendered from.
        media: Raw document bytes for multimodal calls.
        mime_type: MIME type of ``media``.
    """
    operation: str
    prompt: str
    response_schema: Dict[str, Any]
    fields: Dict[str, Any] = {}
    media: Optional[bytes] = None
    mime_type: Optional[str] = None


class Oracle(ABC):
    """Abstract reasoning / multimodal / grounded search oracle."""

    @abstractmethod
    async def infer(self, request: OracleRequest) -> Dict[str, Any]:
        """
        Run a structured request and return the decoded JSON object.

        Raises:
            OracleUnavailable: transport failure or non-success status.
            OraclePayloadInvalid: the answer is not a JSON object.
        """
        pass

    @abstractmethod
    async def grounded_search(self, query: str) -> str:
        """
        Run a web-grounded lookup and return its unstructured text.

        Raises:
            OracleUnavailable: lookup failed or returned nothing.
        """
        pass
