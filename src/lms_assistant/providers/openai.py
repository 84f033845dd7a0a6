"""OpenAI chat completions adapter.

Sends the system prompt and the user's message to the chat completions
endpoint and reads the reply from ``choices[0].message.content``.
"""

from __future__ import annotations

from typing import Any

from lms_assistant.providers.base import Provider, ProviderRequest
from lms_assistant.types import ProviderId

OPENAI_API_URL = "https://api.openai.com/v1/chat/completions"


class OpenAIProvider(Provider):
    """Adapter for the OpenAI chat completions API (ChatGPT).

    Authenticates with an ``Authorization: Bearer`` header.
    """

    provider_id = ProviderId.OPENAI

    def build_request(self, message: str) -> ProviderRequest:
        messages: list[dict[str, str]] = []
        if self._settings.system_prompt:
            messages.append({"role": "system", "content": self._settings.system_prompt})
        messages.append({"role": "user", "content": message})

        return ProviderRequest(
            url=OPENAI_API_URL,
            headers={"Authorization": f"Bearer {self._api_key}"},
            payload={
                "model": self._settings.model,
                "messages": messages,
                "max_tokens": self._settings.max_tokens,
                "temperature": self._settings.temperature,
            },
        )

    def parse_response(self, data: Any) -> str:
        content = data["choices"][0]["message"]["content"]
        if not isinstance(content, str):
            raise TypeError(f"Unexpected content type: {type(content).__name__}")
        return content
