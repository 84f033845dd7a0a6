"""Provider registry — maps provider identities to adapter classes.

Adding a provider means writing a ``Provider`` subclass and listing it
here; nothing else dispatches on the identity.
"""

from __future__ import annotations

import httpx

from lms_assistant.config import Config
from lms_assistant.providers.anthropic import AnthropicProvider
from lms_assistant.providers.base import GenerationSettings, Provider
from lms_assistant.providers.gemini import GeminiProvider
from lms_assistant.providers.openai import OpenAIProvider
from lms_assistant.types import ProviderId

PROVIDER_CLASSES: dict[ProviderId, type[Provider]] = {
    ProviderId.OPENAI: OpenAIProvider,
    ProviderId.CLAUDE: AnthropicProvider,
    ProviderId.GEMINI: GeminiProvider,
}


def create_provider(
    provider_id: ProviderId,
    api_key: str,
    config: Config,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Provider:
    """Instantiate the adapter for a provider.

    Args:
        provider_id: Which provider to build.
        api_key: API key for that provider.
        config: Source of model, generation, and timeout settings.
        transport: Optional httpx transport, used to stub the network.

    Returns:
        An unopened Provider; use it as an async context manager.

    Raises:
        ValueError: If ``api_key`` is empty.
    """
    cls = PROVIDER_CLASSES[provider_id]
    return cls(
        api_key,
        GenerationSettings.from_config(config, provider_id),
        timeout=config.request_timeout,
        transport=transport,
    )
