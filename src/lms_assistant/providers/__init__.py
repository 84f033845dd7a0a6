"""Provider adapters for the supported AI vendors.

Re-exports the public interface so callers can write::

    from lms_assistant.providers import Provider, create_provider
"""

from lms_assistant.providers.anthropic import AnthropicProvider
from lms_assistant.providers.base import GenerationSettings, Provider, ProviderRequest
from lms_assistant.providers.gemini import GeminiProvider
from lms_assistant.providers.openai import OpenAIProvider
from lms_assistant.providers.registry import PROVIDER_CLASSES, create_provider

__all__ = [
    "AnthropicProvider",
    "GeminiProvider",
    "GenerationSettings",
    "OpenAIProvider",
    "PROVIDER_CLASSES",
    "Provider",
    "ProviderRequest",
    "create_provider",
]
