"""Chat session — the provider dispatch core.

Owns the stored credentials, derives which providers are usable, routes
each outgoing message to the active provider's adapter, and records the
exchange in an ordered transcript.  Failures never abort the session:
unreadable credentials count as missing, and failed provider calls are
shown as assistant messages.

Typical usage::

    import asyncio
    from lms_assistant.keystore import TomlSecretStore
    from lms_assistant.session import ChatSession

    async def main():
        async with ChatSession(TomlSecretStore(path)) as session:
            if session.state is SessionState.NEEDS_SETUP:
                await session.store_credentials({ProviderId.OPENAI: "sk-..."})
            await session.send_message("What is photosynthesis?")

    asyncio.run(main())
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import Any

import httpx

from lms_assistant.config import Config
from lms_assistant.errors import CredentialReadTimeout, ProviderUnavailable, StorageUnavailable
from lms_assistant.keystore import SecretStore
from lms_assistant.models import ChatTranscript, TranscriptEntry
from lms_assistant.providers.registry import create_provider
from lms_assistant.types import Origin, ProviderId, SessionEvent, SessionState

logger = logging.getLogger(__name__)

Listener = Callable[[SessionEvent, "ChatSession"], Any]

WELCOME_TEMPLATE = "Hello! I'm your AI assistant using {name}. How can I help you today?"
SWITCH_TEMPLATE = "Switched to {name}. How can I assist you?"


class ChatSession:
    """Multi-provider chat session.

    Args:
        store: Secret store holding provider API keys.
        config: Application configuration.  Defaults to ``Config()``.
        transport: Optional httpx transport passed to every provider,
            used to stub the network.
    """

    def __init__(
        self,
        store: SecretStore,
        config: Config | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._store = store
        self._config = config or Config()
        self._transport = transport
        self._credentials: dict[ProviderId, str] = {}
        self._available: tuple[ProviderId, ...] = ()
        self._active: ProviderId | None = None
        self._entries: list[TranscriptEntry] = []
        self._sending = False
        self._state = SessionState.UNINITIALIZED
        self._listeners: list[Listener] = []
        self._snapshot = ChatTranscript()
        # Bumped by close(); a send started under an older generation is stale.
        self._generation = 0

    async def __aenter__(self) -> ChatSession:
        await self.initialize()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def config(self) -> Config:
        return self._config

    @property
    def available_providers(self) -> tuple[ProviderId, ...]:
        """Providers with a stored non-empty credential, in enumeration order."""
        return self._available

    @property
    def active_provider(self) -> ProviderId | None:
        return self._active

    @property
    def active_provider_name(self) -> str:
        return self._active.display_name if self._active else ""

    @property
    def is_sending(self) -> bool:
        return self._sending

    @property
    def transcript(self) -> tuple[TranscriptEntry, ...]:
        """Read-only copy of the transcript."""
        return tuple(self._entries)

    def is_provider_available(self, provider: ProviderId) -> bool:
        return provider in self._available

    def export(self) -> ChatTranscript:
        """Snapshot the transcript for rendering or saving.

        Returns:
            ChatTranscript holding a copy of the current entries.
        """
        return ChatTranscript(
            session_id=self._snapshot.session_id,
            active_provider=self._active,
            entries=list(self._entries),
            created_at=self._snapshot.created_at,
        )

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener for session events.

        Listeners are called as ``listener(event, session)`` after the
        state change has been applied.  Exceptions raised by a listener
        are logged and never reach the session.

        Args:
            listener: Callable receiving the event and this session.

        Returns:
            A callable that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, event: SessionEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, self)
            except Exception:
                logger.exception("Session listener failed for %s", event.value)

    def _set_state(self, state: SessionState) -> None:
        if state is not self._state:
            self._state = state
            self._notify(SessionEvent.STATE_CHANGED)

    def _set_sending(self, sending: bool) -> None:
        self._sending = sending
        self._notify(SessionEvent.SENDING_CHANGED)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> SessionState:
        """Load credentials and prepare the session.

        Reads every provider's key concurrently.  A read that times out,
        fails, or returns nothing counts as "no credential".

        Returns:
            ``SessionState.READY`` if at least one provider is available,
            otherwise ``SessionState.NEEDS_SETUP``.
        """
        if self._entries:
            self._entries.clear()
            self._notify(SessionEvent.TRANSCRIPT_CLEARED)
        self._snapshot = ChatTranscript()
        self._set_state(SessionState.INITIALIZING)

        values = await asyncio.gather(*(self._read_credential(p) for p in ProviderId))
        self._credentials = {p: v for p, v in zip(ProviderId, values, strict=True) if v}
        self._refresh_available()

        if not self._available:
            logger.info("No provider credentials found; setup required")
            self._set_state(SessionState.NEEDS_SETUP)
            return self._state

        self._select(self._available[0])
        self._add_welcome()
        self._set_state(SessionState.READY)
        return self._state

    async def _read_credential(self, provider: ProviderId) -> str | None:
        """Read one credential, treating every failure as absent."""
        key = provider.credential_key
        try:
            value = await self._read_with_timeout(key)
        except CredentialReadTimeout as exc:
            logger.warning("%s", exc)
            return None
        except Exception:
            logger.warning("Failed to read %s from secret store", key, exc_info=True)
            return None
        return value.strip() if value else None

    async def _read_with_timeout(self, key: str) -> str | None:
        timeout = self._config.secret_read_timeout
        try:
            return await asyncio.wait_for(self._store.read(key), timeout=timeout)
        except TimeoutError:
            raise CredentialReadTimeout(key, timeout) from None

    def close(self) -> None:
        """Tear down the session, discarding credentials and transcript.

        A send still in flight is abandoned: its reply is dropped and no
        further events are emitted for it.
        """
        self._generation += 1
        self._credentials.clear()
        self._available = ()
        self._active = None
        self._entries.clear()
        self._sending = False
        self._state = SessionState.UNINITIALIZED
        self._listeners.clear()

    # ------------------------------------------------------------------
    # Credentials and selection
    # ------------------------------------------------------------------

    async def store_credentials(
        self, secrets: Mapping[ProviderId, str | None]
    ) -> tuple[ProviderId, ...]:
        """Persist API keys and recompute provider availability.

        Each non-empty key is written independently; a failed write is
        logged and does not stop the remaining writes.

        Args:
            secrets: Provider → API key.  Empty or missing keys are skipped.

        Returns:
            The available providers after the writes.

        Raises:
            StorageUnavailable: If every attempted write failed because
                the secret store could not be reached.
        """
        attempted = 0
        unreachable = 0
        for provider in ProviderId:
            secret = (secrets.get(provider) or "").strip()
            if not secret:
                continue
            attempted += 1
            try:
                await self._store.write(provider.credential_key, secret)
            except StorageUnavailable:
                unreachable += 1
                logger.warning(
                    "Secret store unavailable writing %s", provider.credential_key, exc_info=True
                )
                continue
            except Exception:
                logger.exception("Failed to store %s", provider.credential_key)
                continue
            self._credentials[provider] = secret

        if attempted and unreachable == attempted:
            raise StorageUnavailable("Secret store is unavailable; no API keys were saved.")

        self._refresh_available()

        if self._available:
            if self._active not in self._available:
                self._select(self._available[0])
            if not self._entries:
                self._add_welcome()
            self._set_state(SessionState.READY)

        return self._available

    def set_active_provider(self, provider: ProviderId) -> None:
        """Switch the active provider.

        Args:
            provider: Provider to activate.

        Raises:
            ProviderUnavailable: If the provider has no stored credential.
        """
        if provider not in self._available:
            raise ProviderUnavailable(provider)
        self._select(provider)
        self._append(
            TranscriptEntry(
                content=SWITCH_TEMPLATE.format(name=provider.display_name),
                origin=Origin.ASSISTANT,
                timestamp=self._next_timestamp(),
                provider=provider,
            )
        )

    def _refresh_available(self) -> None:
        available = tuple(p for p in ProviderId if self._credentials.get(p))
        if available != self._available:
            self._available = available
            self._notify(SessionEvent.PROVIDERS_CHANGED)
        if self._active is not None and self._active not in available:
            self._active = None
            self._notify(SessionEvent.PROVIDER_CHANGED)

    def _select(self, provider: ProviderId) -> None:
        if provider is not self._active:
            self._active = provider
            self._notify(SessionEvent.PROVIDER_CHANGED)

    # ------------------------------------------------------------------
    # Messaging
    # ------------------------------------------------------------------

    async def send_message(self, text: str) -> TranscriptEntry | None:
        """Send a message to the active provider.

        The user entry is appended before the call.  The reply, or the
        rendered error if the call fails, is appended as an assistant
        entry.  Only one send may be in flight; overlapping calls are
        dropped.

        Args:
            text: Message text.

        Returns:
            The appended assistant entry, or None if nothing was sent
            (blank text, session not ready, or a send already in flight)
            or the session was closed before the reply arrived.
        """
        message = text.strip()
        if not message or self._sending:
            return None
        provider = self._active
        if self._state is not SessionState.READY or provider is None:
            logger.warning("Message dropped: no active provider")
            return None

        # Claimed before the first await so an overlapping call sees it.
        self._sending = True
        generation = self._generation
        try:
            self._append(
                TranscriptEntry(
                    content=message, origin=Origin.USER, timestamp=self._next_timestamp()
                )
            )
            self._notify(SessionEvent.SENDING_CHANGED)

            try:
                async with create_provider(
                    provider,
                    self._credentials[provider],
                    self._config,
                    transport=self._transport,
                ) as adapter:
                    reply = await adapter.complete(message)
            except Exception as exc:
                logger.warning("%s request failed: %s", provider.display_name, exc)
                entry = TranscriptEntry(
                    content=f"Error: {exc}",
                    origin=Origin.ASSISTANT,
                    timestamp=self._next_timestamp(),
                    provider=provider,
                    is_error=True,
                )
            else:
                entry = TranscriptEntry(
                    content=reply,
                    origin=Origin.ASSISTANT,
                    timestamp=self._next_timestamp(),
                    provider=provider,
                )
            if generation != self._generation:
                logger.info("Session closed during %s request; reply dropped", provider.value)
                return None
            self._append(entry)
            return entry
        finally:
            if generation == self._generation:
                self._set_sending(False)

    # ------------------------------------------------------------------
    # Transcript
    # ------------------------------------------------------------------

    def clear_transcript(self) -> None:
        """Empty the transcript and greet again with the active provider."""
        self._entries.clear()
        self._notify(SessionEvent.TRANSCRIPT_CLEARED)
        if self._active is not None:
            self._add_welcome()

    def delete_entry(self, index: int) -> bool:
        """Remove one transcript entry.

        Out-of-range indexes are ignored.

        Args:
            index: Zero-based position of the entry.

        Returns:
            True if an entry was removed.
        """
        if not 0 <= index < len(self._entries):
            return False
        del self._entries[index]
        self._notify(SessionEvent.ENTRY_REMOVED)
        return True

    def _add_welcome(self) -> None:
        if self._active is None:
            return
        self._append(
            TranscriptEntry(
                content=WELCOME_TEMPLATE.format(name=self._active.display_name),
                origin=Origin.ASSISTANT,
                timestamp=self._next_timestamp(),
                provider=self._active,
            )
        )

    def _append(self, entry: TranscriptEntry) -> None:
        self._entries.append(entry)
        self._notify(SessionEvent.ENTRY_ADDED)

    def _next_timestamp(self) -> datetime:
        """Current time, never earlier than the last entry's timestamp."""
        now = datetime.now(UTC)
        if self._entries and self._entries[-1].timestamp > now:
            return self._entries[-1].timestamp
        return now
