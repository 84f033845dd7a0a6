"""Google Gemini ``generateContent`` adapter.

The model is part of the endpoint path.  The reply is the concatenation
of the text parts of the first candidate.
"""

from __future__ import annotations

from typing import Any

from lms_assistant.providers.base import Provider, ProviderRequest
from lms_assistant.types import ProviderId

GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta/models"


class GeminiProvider(Provider):
    """Adapter for the Gemini API.

    Authenticates with the ``x-goog-api-key`` header, keeping the key out
    of the request URL.
    """

    provider_id = ProviderId.GEMINI

    def build_request(self, message: str) -> ProviderRequest:
        payload: dict[str, Any] = {
            "contents": [{"role": "user", "parts": [{"text": message}]}],
            "generationConfig": {
                "temperature": self._settings.temperature,
                "topK": 1,
                "topP": 1,
                "maxOutputTokens": self._settings.max_tokens,
            },
        }
        if self._settings.system_prompt:
            payload["systemInstruction"] = {"parts": [{"text": self._settings.system_prompt}]}

        return ProviderRequest(
            url=f"{GEMINI_API_BASE}/{self._settings.model}:generateContent",
            headers={"x-goog-api-key": self._api_key},
            payload=payload,
        )

    def parse_response(self, data: Any) -> str:
        parts = data["candidates"][0]["content"]["parts"]
        texts = [part["text"] for part in parts if isinstance(part, dict) and "text" in part]
        if not texts:
            raise KeyError("text")
        return "".join(texts)
