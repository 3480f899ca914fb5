"""
Oracle backed by the Google Generative Language REST API.

Structured calls request ``application/json`` output constrained by the
operation's response schema; bill documents travel as ``inline_data``;
market lookups use the ``google_search`` grounding tool.
"""

import asyncio
import base64
import logging
from typing import Any, Dict, Optional

import requests

from .base_oracle import Oracle, OracleRequest
from .payloads import decode_json_object
from ..config import OracleConfig
from ..exceptions import OraclePayloadInvalid, OracleUnavailable


class GeminiOracle(Oracle):
    """
    Gemini implementation of the Oracle interface.

    Blocking HTTP calls run in the event loop's default executor so the
    services stay non-blocking.
    """

    def __init__(self, config: OracleConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.logger = logging.getLogger(__name__)
        self.session = session or requests.Session()
        self.session.headers.update({'Content-Type': 'application/json'})
        if config.api_key:
            self.session.headers['x-goog-api-key'] = config.api_key
        else:
            self.logger.error("GEMINI_API_KEY not set. Add GEMINI_API_KEY=your_api_key to your .env file")

    async def infer(self, request: OracleRequest) -> Dict[str, Any]:
        parts = [{"text": request.prompt}]
        if request.media is not None:
            parts.append({
                "inline_data": {
                    "mime_type": request.mime_type or "image/png",
                    "data": base64.b64encode(request.media).decode("ascii"),
                }
            })

        body = {
            "contents": [{"role": "user", "parts": parts}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": request.response_schema,
            },
        }

        self.logger.debug(f"Oracle call '{request.operation}' to {self.config.reasoning_model}")
        text = await self._generate(self.config.reasoning_model, body)
        return decode_json_object(text)

    async def grounded_search(self, query: str) -> str:
        body = {
            "contents": [{"role": "user", "parts": [{"text": query}]}],
            "tools": [{"google_search": {}}],
        }
        text = await self._generate(self.config.search_model, body)
        if not text or not text.strip():
            raise OracleUnavailable("Grounded search returned no text")
        return text

    async def _generate(self, model: str, body: Dict[str, Any]) -> str:
        def sync_post():
            return self._post(model, body)

        return await asyncio.get_event_loop().run_in_executor(None, sync_post)

    def _post(self, model: str, body: Dict[str, Any]) -> str:
        if not self.config.api_key:
            raise OracleUnavailable("Oracle API key is not configured")
        url = f"{self.config.base_url}/models/{model}:generateContent"
        try:
            response = self.session.post(
                url, json=body, timeout=self.config.http_timeout_seconds)
            response.raise_for_status()
        except requests.Timeout as e:
            self.logger.error(f"Oracle request to {model} timed out")
            raise OracleUnavailable(f"Oracle request to {model} timed out") from e
        except requests.RequestException as e:
            self.logger.error(f"Oracle request to {model} failed: {e}")
            raise OracleUnavailable(f"Oracle request to {model} failed: {e}") from e

        try:
            data = response.json()
        except ValueError as e:
            raise OraclePayloadInvalid("Oracle response envelope is not JSON") from e

        return self._extract_text(data)

    @staticmethod
    def _extract_text(data: Dict[str, Any]) -> str:
        candidates = data.get("candidates") or []
        if not candidates:
            feedback = data.get("promptFeedback", {})
            raise OraclePayloadInvalid(
                f"Oracle returned no candidates (feedback: {feedback})")

        parts = (candidates[0].get("content") or {}).get("parts") or []
        return "".join(part.get("text", "") for part in parts)
