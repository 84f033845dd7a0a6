"""Data models for chat transcripts.

Defines the transcript entry recorded for every user message and
assistant reply, and a snapshot container used for export.  All models
serialize to JSON-compatible dictionaries.

Typical usage::

    from lms_assistant.models import TranscriptEntry
    from lms_assistant.types import Origin, ProviderId

    entry = TranscriptEntry(
        content="hi there",
        origin=Origin.ASSISTANT,
        provider=ProviderId.OPENAI,
    )
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from lms_assistant.types import Origin, ProviderId


@dataclass(frozen=True)
class TranscriptEntry:
    """One message in a chat transcript.

    Attributes:
        content: Message text.  For failed sends this is the rendered
            error (``"Error: ..."``).
        origin: Whether the user or the assistant produced the entry.
        timestamp: When the entry was appended (UTC).
        provider: Provider that produced an assistant entry.  None for
            user entries.
        is_error: True when the entry reports a failed provider call.
    """

    content: str
    origin: Origin
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    provider: ProviderId | None = None
    is_error: bool = False

    @property
    def is_user(self) -> bool:
        return self.origin is Origin.USER

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dictionary.

        Returns:
            Dictionary with all fields, datetime as ISO string.
        """
        return {
            "content": self.content,
            "origin": self.origin.value,
            "timestamp": self.timestamp.isoformat(),
            "provider": self.provider.value if self.provider else None,
            "is_error": self.is_error,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TranscriptEntry:
        """Deserialize from a dictionary produced by ``to_dict()``.

        Args:
            data: Dictionary with TranscriptEntry fields.

        Returns:
            TranscriptEntry instance.
        """
        provider = data.get("provider")
        return cls(
            content=data["content"],
            origin=Origin(data["origin"]),
            timestamp=datetime.fromisoformat(data["timestamp"]),
            provider=ProviderId(provider) if provider else None,
            is_error=data.get("is_error", False),
        )


@dataclass
class ChatTranscript:
    """Snapshot of a chat session's transcript.

    Attributes:
        session_id: Unique identifier (UUID4) of the session.
        active_provider: Provider selected when the snapshot was taken.
        entries: Transcript entries in insertion order.
        created_at: When the session started (UTC).
    """

    session_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    active_provider: ProviderId | None = None
    entries: list[TranscriptEntry] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dictionary.

        Returns:
            Full transcript as a nested dictionary suitable for JSON output.
        """
        return {
            "session_id": self.session_id,
            "active_provider": self.active_provider.value if self.active_provider else None,
            "created_at": self.created_at.isoformat(),
            "entries": [e.to_dict() for e in self.entries],
        }

    @property
    def short_id(self) -> str:
        """First 8 characters of the session ID for display."""
        return self.session_id[:8]
