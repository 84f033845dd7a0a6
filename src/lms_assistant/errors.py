"""Exception taxonomy for the assistant.

Only ``StorageUnavailable`` and ``ProviderUnavailable`` ever reach callers
of ``ChatSession``.  ``CredentialReadTimeout`` is swallowed during
initialization and ``ProviderError`` is rendered into the transcript.
"""

from __future__ import annotations

from lms_assistant.types import ProviderId


class AssistantError(Exception):
    """Base class for all assistant errors."""


class CredentialReadTimeout(AssistantError):
    """Raised when a secret-store read does not finish in time.

    Attributes:
        key: Secret-store key that was being read.
        timeout: Seconds waited before giving up.
    """

    def __init__(self, key: str, timeout: float) -> None:
        self.key = key
        self.timeout = timeout
        super().__init__(f"Reading '{key}' timed out after {timeout}s")


class StorageUnavailable(AssistantError):
    """Raised when the secret store cannot be reached."""


class ProviderUnavailable(AssistantError):
    """Raised when selecting a provider that has no stored credential.

    Attributes:
        provider: The provider that was requested.
    """

    def __init__(self, provider: ProviderId) -> None:
        self.provider = provider
        super().__init__(f"API key for {provider.display_name} is not configured.")


class ProviderError(AssistantError):
    """Raised when a provider call fails.

    Covers non-200 responses, transport failures, and response bodies
    that lack the expected text.

    Attributes:
        provider: Provider that failed.
        message: Upstream error message, or a description of the failure.
        status_code: HTTP status code, if a response was received.
    """

    def __init__(
        self,
        provider: ProviderId,
        message: str,
        *,
        status_code: int | None = None,
    ) -> None:
        self.provider = provider
        self.message = message
        self.status_code = status_code
        super().__init__(f"{provider.display_name} Error: {message}")
