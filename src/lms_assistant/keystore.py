"""Secret storage for provider API keys.

Defines the ``SecretStore`` protocol consumed by ``ChatSession`` and a
TOML-file implementation.  Keys are stored under a ``[providers]`` table::

    [providers]
    openai_api_key = "sk-..."
    claude_api_key = "sk-ant-..."

File I/O runs in a worker thread so reads and writes never block the
event loop.
"""

from __future__ import annotations

import asyncio
import logging
import tomllib
from pathlib import Path
from typing import Protocol, runtime_checkable

import tomlkit
from tomlkit.exceptions import TOMLKitError

from lms_assistant.errors import StorageUnavailable

logger = logging.getLogger(__name__)

PROVIDERS_TABLE = "providers"
NEW_FILE_MODE = 0o600


@runtime_checkable
class SecretStore(Protocol):
    """Keyed asynchronous secret storage.

    Both operations may raise.  ``read`` returns None when the key has no
    value.
    """

    async def read(self, key: str) -> str | None: ...

    async def write(self, key: str, value: str) -> None: ...


class TomlSecretStore:
    """Secret store backed by a TOML file.

    Args:
        path: File holding the ``[providers]`` table.  Parent directories
            are created on first write.

    Example::

        store = TomlSecretStore(Path("~/.lms-assistant/credentials.toml").expanduser())
        await store.write("openai_api_key", "sk-...")
    """

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    async def read(self, key: str) -> str | None:
        """Read one secret.

        Args:
            key: Secret key (e.g. "openai_api_key").

        Returns:
            The stored value, or None if the file or key is missing.

        Raises:
            StorageUnavailable: If the file cannot be read or parsed.
        """
        return await asyncio.to_thread(self._read_sync, key)

    async def write(self, key: str, value: str) -> None:
        """Store one secret, replacing any previous value.

        An empty value removes the key.

        Args:
            key: Secret key (e.g. "openai_api_key").
            value: Secret to store.

        Raises:
            StorageUnavailable: If the file cannot be read or written.
        """
        await asyncio.to_thread(self._write_sync, key, value)

    def _read_sync(self, key: str) -> str | None:
        if not self._path.exists():
            return None
        try:
            with open(self._path, "rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as exc:
            raise StorageUnavailable(f"Cannot read {self._path}: {exc}") from exc
        value = data.get(PROVIDERS_TABLE, {}).get(key)
        return str(value) if value else None

    def _write_sync(self, key: str, value: str) -> None:
        existing_mode: int | None = None
        try:
            if self._path.exists():
                existing_mode = self._path.stat().st_mode & 0o777
                doc = tomlkit.parse(self._path.read_text(encoding="utf-8"))
            else:
                doc = tomlkit.document()

            if PROVIDERS_TABLE not in doc:
                doc.add(PROVIDERS_TABLE, tomlkit.table())
            providers = doc[PROVIDERS_TABLE]
            if value:
                providers[key] = value  # type: ignore[index]
            elif key in providers:  # type: ignore[operator]
                del providers[key]  # type: ignore[union-attr]

            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(tomlkit.dumps(doc), encoding="utf-8")
            self._path.chmod(existing_mode if existing_mode is not None else NEW_FILE_MODE)
        except (OSError, TOMLKitError) as exc:
            raise StorageUnavailable(f"Cannot write {self._path}: {exc}") from exc

        logger.debug("Stored %s in %s", key, self._path)
