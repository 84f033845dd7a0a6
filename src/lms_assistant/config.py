"""Configuration management for the LMS assistant.

Handles model selection per provider, generation parameters, timeouts,
and file locations.  Configuration is loaded from a TOML file
(~/.lms-assistant/config.toml) with environment variable overrides.
API keys are not part of this file; they live in the secret store
(see ``lms_assistant.keystore``).

Typical usage::

    from lms_assistant.config import load_config

    config = load_config()
    model = config.model_for(ProviderId.CLAUDE)
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from lms_assistant.types import ProviderId

APP_DIR = Path.home() / ".lms-assistant"
CONFIG_FILENAME = "config.toml"
CREDENTIALS_FILENAME = "credentials.toml"

HOME_ENV_VAR = "LMS_ASSISTANT_HOME"
LOG_LEVEL_ENV_VAR = "LMS_ASSISTANT_LOG_LEVEL"

DEFAULT_MODELS: dict[ProviderId, str] = {
    ProviderId.OPENAI: "gpt-4.1-mini",
    ProviderId.CLAUDE: "claude-haiku-4-5",
    ProviderId.GEMINI: "gemini-2.5-flash",
}

DEFAULT_MAX_TOKENS = 500
DEFAULT_TEMPERATURE = 0.7
DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful AI assistant for a learning management system. "
    "Help students and teachers with questions about their courses, "
    "lessons, and study topics. Keep answers clear and concise."
)
DEFAULT_SECRET_READ_TIMEOUT = 5.0  # seconds


def app_dir() -> Path:
    """Return the application directory, honoring ``LMS_ASSISTANT_HOME``."""
    override = os.environ.get(HOME_ENV_VAR, "")
    return Path(override).expanduser() if override else APP_DIR


@dataclass
class Config:
    """Application configuration.

    Attributes:
        models: Provider → model identifier sent in each request.
        max_tokens: Upper bound on generated tokens per reply.
        temperature: Sampling temperature for every provider.
        system_prompt: Instructions sent ahead of the user's message.
        secret_read_timeout: Seconds allowed for each secret-store read
            during session initialization.
        request_timeout: Seconds allowed for a provider HTTP call.
            None disables the timeout.
        credentials_path: Location of the TOML credential file.
        log_level: Logging level name for the CLI, or empty for none.
    """

    models: dict[ProviderId, str] = field(default_factory=lambda: dict(DEFAULT_MODELS))
    max_tokens: int = DEFAULT_MAX_TOKENS
    temperature: float = DEFAULT_TEMPERATURE
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    secret_read_timeout: float = DEFAULT_SECRET_READ_TIMEOUT
    request_timeout: float | None = None
    credentials_path: Path = field(default_factory=lambda: app_dir() / CREDENTIALS_FILENAME)
    log_level: str = ""

    def model_for(self, provider: ProviderId) -> str:
        """Get the model identifier configured for a provider.

        Args:
            provider: Provider identity.

        Returns:
            Model identifier string, falling back to the built-in default.
        """
        return self.models.get(provider) or DEFAULT_MODELS[provider]


def config_path() -> Path:
    """Return the path of the configuration file."""
    return app_dir() / CONFIG_FILENAME


def _number(
    section: dict[str, Any],
    key: str,
    kind: type[int] | type[float],
    *,
    positive: bool = False,
) -> Any:
    """Read a numeric value from a TOML table.

    Args:
        section: Parsed TOML table.
        key: Key to read.
        kind: ``int`` or ``float``.
        positive: Also reject zero.

    Returns:
        The converted value.

    Raises:
        ValueError: If the value is not a number, is negative, or is zero
            when ``positive`` is set.
    """
    raw = section[key]
    if isinstance(raw, bool):
        raise ValueError(f"Invalid value for '{key}': {raw!r}")
    try:
        value = kind(raw)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid value for '{key}': {raw!r}") from None
    if value < 0 or (positive and value == 0):
        raise ValueError(f"Invalid value for '{key}': {raw!r}")
    return value


def _table(data: dict[str, Any], name: str) -> dict[str, Any]:
    """Return a top-level TOML table, or an empty dict when absent.

    Raises:
        ValueError: If ``name`` is present but is not a table.
    """
    section = data.get(name, {})
    if not isinstance(section, dict):
        raise ValueError(f"[{name}] must be a table, got {type(section).__name__}")
    return section


def _apply_toml(config: Config, data: dict[str, Any]) -> None:
    """Apply parsed TOML data to a Config instance.

    Args:
        config: Config instance to populate.
        data: Parsed TOML dictionary.

    Raises:
        ValueError: If a numeric setting is invalid or a section is not a
            table.
    """
    # --- Models ---
    for name, model_id in _table(data, "models").items():
        try:
            provider = ProviderId(name)
        except ValueError:
            continue
        if model_id:
            config.models[provider] = str(model_id)

    # --- Generation ---
    generation: dict[str, Any] = _table(data, "generation")
    if "max_tokens" in generation:
        config.max_tokens = _number(generation, "max_tokens", int)
    if "temperature" in generation:
        config.temperature = _number(generation, "temperature", float)
    if "system_prompt" in generation:
        config.system_prompt = str(generation["system_prompt"])

    # --- Timeouts ---
    timeouts: dict[str, Any] = _table(data, "timeouts")
    if "secret_read" in timeouts:
        config.secret_read_timeout = _number(timeouts, "secret_read", float, positive=True)
    if "request" in timeouts:
        # 0 means no timeout, matching the unset default.
        config.request_timeout = _number(timeouts, "request", float) or None

    # --- Storage ---
    storage: dict[str, Any] = _table(data, "storage")
    if storage.get("credentials_path"):
        config.credentials_path = Path(storage["credentials_path"]).expanduser()

    # --- Logging ---
    logging_section: dict[str, Any] = _table(data, "logging")
    if "level" in logging_section:
        config.log_level = str(logging_section["level"]).upper()


def load_config(path: Path | None = None) -> Config:
    """Load configuration from file and environment.

    Resolution order for the log level:
        1. LMS_ASSISTANT_LOG_LEVEL environment variable
        2. [logging].level in config.toml
        3. Empty string (no logging configured)

    Args:
        path: Configuration file to read.  Defaults to ``config_path()``.

    Returns:
        Populated Config instance.

    Raises:
        ValueError: If the file contains an invalid numeric setting.
    """
    config = Config()
    target = path or config_path()

    if target.exists():
        with open(target, "rb") as f:
            _apply_toml(config, tomllib.load(f))

    env_level = os.environ.get(LOG_LEVEL_ENV_VAR, "")
    if env_level:
        config.log_level = env_level.upper()

    return config
