"""Tests for the TOML secret store.

Covers: reads from missing files and keys, write/read, replacement,
removal with empty values, preservation of unrelated content, file
permissions, unreadable and unwritable files, and protocol conformance.
"""

from __future__ import annotations

import sys
import tomllib
from pathlib import Path

import pytest

from lms_assistant.errors import StorageUnavailable
from lms_assistant.keystore import SecretStore, TomlSecretStore


@pytest.fixture()
def store_path(tmp_path: Path) -> Path:
    """Credentials file inside a not-yet-created directory."""
    return tmp_path / ".lms-assistant" / "credentials.toml"


class TestProtocol:
    """TomlSecretStore satisfies the SecretStore protocol."""

    def test_isinstance(self, store_path: Path) -> None:
        assert isinstance(TomlSecretStore(store_path), SecretStore)


class TestRead:
    """TomlSecretStore.read() behavior."""

    @pytest.mark.asyncio
    async def test_missing_file_reads_none(self, store_path: Path) -> None:
        assert await TomlSecretStore(store_path).read("openai_api_key") is None

    @pytest.mark.asyncio
    async def test_missing_key_reads_none(self, store_path: Path) -> None:
        store_path.parent.mkdir(parents=True)
        store_path.write_text('[providers]\nclaude_api_key = "sk-ant"\n', encoding="utf-8")
        assert await TomlSecretStore(store_path).read("openai_api_key") is None

    @pytest.mark.asyncio
    async def test_reads_existing_key(self, store_path: Path) -> None:
        store_path.parent.mkdir(parents=True)
        store_path.write_text('[providers]\nclaude_api_key = "sk-ant"\n', encoding="utf-8")
        assert await TomlSecretStore(store_path).read("claude_api_key") == "sk-ant"

    @pytest.mark.asyncio
    async def test_malformed_file_raises(self, store_path: Path) -> None:
        store_path.parent.mkdir(parents=True)
        store_path.write_text("[providers\nnot toml", encoding="utf-8")
        with pytest.raises(StorageUnavailable, match="Cannot read"):
            await TomlSecretStore(store_path).read("openai_api_key")


class TestWrite:
    """TomlSecretStore.write() behavior."""

    @pytest.mark.asyncio
    async def test_write_then_read(self, store_path: Path) -> None:
        store = TomlSecretStore(store_path)
        await store.write("openai_api_key", "sk-test")
        assert await store.read("openai_api_key") == "sk-test"

    @pytest.mark.asyncio
    async def test_writes_providers_table(self, store_path: Path) -> None:
        await TomlSecretStore(store_path).write("gemini_api_key", "AIza-test")
        with open(store_path, "rb") as f:
            data = tomllib.load(f)
        assert data == {"providers": {"gemini_api_key": "AIza-test"}}

    @pytest.mark.asyncio
    async def test_replaces_value(self, store_path: Path) -> None:
        store = TomlSecretStore(store_path)
        await store.write("openai_api_key", "old")
        await store.write("openai_api_key", "new")
        assert await store.read("openai_api_key") == "new"

    @pytest.mark.asyncio
    async def test_empty_value_removes_key(self, store_path: Path) -> None:
        store = TomlSecretStore(store_path)
        await store.write("openai_api_key", "sk-test")
        await store.write("openai_api_key", "")
        assert await store.read("openai_api_key") is None

    @pytest.mark.asyncio
    async def test_keeps_other_keys_and_comments(self, store_path: Path) -> None:
        store_path.parent.mkdir(parents=True)
        store_path.write_text(
            '# my keys\n[providers]\nclaude_api_key = "sk-ant"\n', encoding="utf-8"
        )
        await TomlSecretStore(store_path).write("openai_api_key", "sk-test")
        text = store_path.read_text(encoding="utf-8")
        assert "# my keys" in text
        assert 'claude_api_key = "sk-ant"' in text
        assert 'openai_api_key = "sk-test"' in text

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions only")
    @pytest.mark.asyncio
    async def test_new_file_is_private(self, store_path: Path) -> None:
        await TomlSecretStore(store_path).write("openai_api_key", "sk-test")
        assert store_path.stat().st_mode & 0o777 == 0o600

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions only")
    @pytest.mark.asyncio
    async def test_existing_permissions_preserved(self, store_path: Path) -> None:
        store_path.parent.mkdir(parents=True)
        store_path.write_text("[providers]\n", encoding="utf-8")
        store_path.chmod(0o640)
        await TomlSecretStore(store_path).write("openai_api_key", "sk-test")
        assert store_path.stat().st_mode & 0o777 == 0o640

    @pytest.mark.asyncio
    async def test_unwritable_location_raises(self, tmp_path: Path) -> None:
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("", encoding="utf-8")
        store = TomlSecretStore(blocker / "credentials.toml")
        with pytest.raises(StorageUnavailable, match="Cannot write"):
            await store.write("openai_api_key", "sk-test")
