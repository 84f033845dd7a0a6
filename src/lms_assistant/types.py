"""Core enumerations shared across the assistant.

Defines provider identities, transcript entry origins, session lifecycle
states, and the events emitted to session listeners.  Kept separate from
``models.py`` so provider adapters and the keystore can import identities
without pulling in transcript types.
"""

from __future__ import annotations

from enum import StrEnum


class ProviderId(StrEnum):
    """Supported AI providers, in enumeration (preference) order.

    Values are the short identifiers used on the command line and in
    ``config.toml``'s ``[models]`` table.
    """

    OPENAI = "openai"
    CLAUDE = "claude"
    GEMINI = "gemini"

    @property
    def display_name(self) -> str:
        """Human-readable provider name (e.g. "ChatGPT")."""
        return PROVIDER_NAMES[self]

    @property
    def credential_key(self) -> str:
        """Secret-store key holding this provider's API key."""
        return f"{self.value}_api_key"


PROVIDER_NAMES: dict[ProviderId, str] = {
    ProviderId.OPENAI: "ChatGPT",
    ProviderId.CLAUDE: "Claude",
    ProviderId.GEMINI: "Gemini",
}


class Origin(StrEnum):
    """Who produced a transcript entry."""

    USER = "user"
    ASSISTANT = "assistant"


class SessionState(StrEnum):
    """Lifecycle of a chat session.

    ``uninitialized`` → ``initializing`` → ``needs_setup`` or ``ready``.
    ``needs_setup`` moves to ``ready`` once credentials are stored.
    """

    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    NEEDS_SETUP = "needs_setup"
    READY = "ready"


class SessionEvent(StrEnum):
    """Notifications delivered to session listeners."""

    STATE_CHANGED = "state_changed"
    PROVIDERS_CHANGED = "providers_changed"
    PROVIDER_CHANGED = "provider_changed"
    ENTRY_ADDED = "entry_added"
    ENTRY_REMOVED = "entry_removed"
    TRANSCRIPT_CLEARED = "transcript_cleared"
    SENDING_CHANGED = "sending_changed"
