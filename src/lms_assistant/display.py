"""Terminal display — Rich-based formatting for chat output.

Renders transcript entries with provider colors, provider status tables,
and Markdown exports of a chat transcript.

Typical usage::

    from lms_assistant.display import render_transcript

    render_transcript(session.export())
"""

from __future__ import annotations

from collections.abc import Sequence

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table

from lms_assistant.config import Config
from lms_assistant.models import ChatTranscript, TranscriptEntry
from lms_assistant.types import ProviderId

console = Console()

# Provider → color mapping for visual distinction.
PROVIDER_COLORS: dict[ProviderId, str] = {
    ProviderId.OPENAI: "green",
    ProviderId.CLAUDE: "dark_orange",
    ProviderId.GEMINI: "blue",
}

USER_COLOR = "cyan"
ERROR_COLOR = "red"
DEFAULT_COLOR = "white"

SLASH_COMMANDS: dict[str, str] = {
    "/use <provider>": "Switch the active provider",
    "/providers": "List providers and which are configured",
    "/clear": "Clear the conversation",
    "/delete <n>": "Delete message number n",
    "/keys": "Add or replace API keys",
    "/save <file>": "Save the conversation (.json or .md)",
    "/help": "Show this help",
    "/quit": "Leave the chat",
}


def _get_color(provider: ProviderId | None) -> str:
    if provider is None:
        return DEFAULT_COLOR
    return PROVIDER_COLORS.get(provider, DEFAULT_COLOR)


def _entry_title(entry: TranscriptEntry, index: int | None) -> str:
    prefix = f"#{index} " if index is not None else ""
    if entry.is_user:
        return f"{prefix}You"
    name = entry.provider.display_name if entry.provider else "Assistant"
    return f"{prefix}{name}"


def render_entry(entry: TranscriptEntry, *, index: int | None = None) -> None:
    """Render one transcript entry as a panel.

    Args:
        entry: Entry to display.
        index: Position shown in the title so users can ``/delete`` it.
    """
    if entry.is_user:
        color = USER_COLOR
    elif entry.is_error:
        color = ERROR_COLOR
    else:
        color = _get_color(entry.provider)

    console.print(
        Panel(
            entry.content if entry.is_error else Markdown(entry.content),
            title=f"[bold {color}]{_entry_title(entry, index)}[/bold {color}]",
            subtitle=f"[dim]{entry.timestamp.astimezone():%H:%M}[/dim]",
            border_style=color,
            title_align="left",
            subtitle_align="right",
        )
    )


def render_transcript(transcript: ChatTranscript) -> None:
    """Render every entry of a transcript, numbered from 0.

    Args:
        transcript: Transcript snapshot to display.
    """
    if not transcript.entries:
        console.print("[dim]No messages yet.[/dim]")
        return
    for index, entry in enumerate(transcript.entries):
        render_entry(entry, index=index)


def render_provider_status(
    available: Sequence[ProviderId],
    active: ProviderId | None,
    config: Config | None = None,
) -> None:
    """Render a table of providers, their models, and availability.

    Args:
        available: Providers with a stored API key.
        active: Currently selected provider, if any.
        config: Source of model names.  Omitted column when None.
    """
    table = Table(title="Providers", show_lines=False)
    table.add_column("ID", style="bold")
    table.add_column("Name")
    if config is not None:
        table.add_column("Model", style="dim")
    table.add_column("API key")
    table.add_column("Active", justify="center")

    for provider in ProviderId:
        color = _get_color(provider)
        key_status = "[green]configured[/green]" if provider in available else "[dim]missing[/dim]"
        row = [
            provider.value,
            f"[{color}]{provider.display_name}[/{color}]",
        ]
        if config is not None:
            row.append(config.model_for(provider))
        row.extend([key_status, "●" if provider == active else ""])
        table.add_row(*row)

    console.print(table)


def render_help() -> None:
    """Render the list of chat slash commands."""
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold")
    table.add_column(style="dim")
    for command, description in SLASH_COMMANDS.items():
        table.add_row(command, description)
    console.print(table)


def render_config_show(config: Config, config_file: str) -> None:
    """Render the effective configuration.

    Args:
        config: Loaded configuration.
        config_file: Path of the configuration file, for display.
    """
    table = Table(title="Configuration", show_header=False)
    table.add_column("Setting", style="bold")
    table.add_column("Value")
    table.add_row("Config file", config_file)
    table.add_row("Credentials file", str(config.credentials_path))
    for provider in ProviderId:
        table.add_row(f"Model ({provider.value})", config.model_for(provider))
    table.add_row("Max tokens", str(config.max_tokens))
    table.add_row("Temperature", str(config.temperature))
    table.add_row("Key read timeout", f"{config.secret_read_timeout}s")
    table.add_row(
        "Request timeout",
        f"{config.request_timeout}s" if config.request_timeout else "none",
    )
    table.add_row("Log level", config.log_level or "off")
    console.print(table)
    console.print(Panel(config.system_prompt, title="System prompt", border_style="dim"))


# ---------------------------------------------------------------------------
# Markdown export
# ---------------------------------------------------------------------------


def format_markdown(transcript: ChatTranscript) -> str:
    """Format a transcript as a Markdown document.

    Args:
        transcript: Transcript snapshot to format.

    Returns:
        Markdown text ending with a newline.
    """
    lines = [
        f"# Chat transcript {transcript.short_id}",
        "",
        f"- **Started:** {transcript.created_at:%Y-%m-%d %H:%M} UTC",
    ]
    if transcript.active_provider:
        lines.append(f"- **Provider:** {transcript.active_provider.display_name}")
    lines.append("")

    for entry in transcript.entries:
        lines.append(f"## {_entry_title(entry, None)} ({entry.timestamp:%H:%M:%S})")
        lines.append("")
        lines.append(f"> {entry.content}" if entry.is_error else entry.content)
        lines.append("")

    return "\n".join(lines).rstrip("\n") + "\n"
