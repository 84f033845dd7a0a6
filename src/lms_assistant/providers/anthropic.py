"""Anthropic Messages API adapter.

The system prompt travels in the top-level ``system`` field rather than
as a message.  The reply is the concatenation of all ``text`` content
blocks.
"""

from __future__ import annotations

from typing import Any

from lms_assistant.providers.base import Provider, ProviderRequest
from lms_assistant.types import ProviderId

ANTHROPIC_API_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"


class AnthropicProvider(Provider):
    """Adapter for the Anthropic Messages API (Claude).

    Authenticates with ``x-api-key`` and pins ``anthropic-version``.
    """

    provider_id = ProviderId.CLAUDE

    def build_request(self, message: str) -> ProviderRequest:
        payload: dict[str, Any] = {
            "model": self._settings.model,
            "max_tokens": self._settings.max_tokens,
            "temperature": self._settings.temperature,
            "messages": [{"role": "user", "content": message}],
        }
        if self._settings.system_prompt:
            payload["system"] = self._settings.system_prompt

        return ProviderRequest(
            url=ANTHROPIC_API_URL,
            headers={
                "x-api-key": self._api_key,
                "anthropic-version": ANTHROPIC_VERSION,
            },
            payload=payload,
        )

    def parse_response(self, data: Any) -> str:
        texts = [
            block["text"]
            for block in data["content"]
            if isinstance(block, dict) and block.get("type") == "text"
        ]
        if not texts:
            raise KeyError("text")
        return "".join(texts)
