"""CLI entry point for the LMS assistant.

Provides the ``lms-assistant`` command with subcommands for interactive
chat, one-shot questions, API key management, and configuration.

Typical usage::

    lms-assistant keys set --openai sk-...
    lms-assistant chat --provider claude
    lms-assistant ask "Explain recursion" --output markdown --file answer.md
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape

from lms_assistant import __version__
from lms_assistant.config import Config, config_path, load_config
from lms_assistant.display import (
    format_markdown,
    render_config_show,
    render_entry,
    render_help,
    render_provider_status,
)
from lms_assistant.errors import ProviderUnavailable, StorageUnavailable
from lms_assistant.keystore import TomlSecretStore
from lms_assistant.models import ChatTranscript
from lms_assistant.session import ChatSession
from lms_assistant.types import ProviderId, SessionEvent, SessionState

console = Console(stderr=True)

PROVIDER_CHOICE = click.Choice([p.value for p in ProviderId], case_sensitive=False)
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _configure_logging(level: str) -> None:
    """Send log records to stderr at the given level name.

    Args:
        level: Logging level name (e.g. "DEBUG").  Empty disables setup.
    """
    if not level:
        return
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT, stream=sys.stderr, force=True)


def _load_config(ctx: click.Context) -> Config:
    """Load configuration and apply the ``--log-level`` override.

    Exits with status 1 if the configuration file is invalid.
    """
    try:
        config = load_config()
    except (ValueError, OSError) as exc:
        console.print(f"[red bold]Error:[/red bold] Invalid configuration: {escape(str(exc))}")
        sys.exit(1)

    override = (ctx.obj or {}).get("log_level")
    if override:
        config.log_level = override
    _configure_logging(config.log_level)
    return config


def _make_session(config: Config) -> ChatSession:
    return ChatSession(TomlSecretStore(config.credentials_path), config)


def _prompt_for_keys() -> dict[ProviderId, str]:
    """Ask for each provider's API key with hidden input.

    Returns:
        Provider → key for every non-empty answer.
    """
    console.print("Enter at least one API key to enable AI chat. Leave blank to skip.")
    keys: dict[ProviderId, str] = {}
    for provider in ProviderId:
        value = click.prompt(
            f"{provider.display_name} API key (optional)",
            default="",
            show_default=False,
            hide_input=True,
        ).strip()
        if value:
            keys[provider] = value
    return keys


def _emit_output(
    transcript: ChatTranscript,
    *,
    output: str,
    output_file: str | None,
) -> None:
    """Build and emit formatted output for a transcript.

    Terminal output without ``--file`` renders the reply with Rich.
    Terminal format with ``--file`` degrades to markdown with a stderr note.

    Args:
        transcript: Transcript snapshot to render.
        output: Output format: "terminal", "json", or "markdown".
        output_file: Path to write output to, or None for stdout.
    """
    if output == "terminal" and output_file is None:
        if transcript.entries:
            render_entry(transcript.entries[-1])
        return

    if output == "json":
        content = json.dumps(transcript.to_dict(), indent=2, ensure_ascii=False)
    else:
        if output == "terminal":
            console.print(
                "[dim]Note: --output terminal not supported with --file, writing as markdown.[/dim]"
            )
        content = format_markdown(transcript)

    content = content.rstrip("\n") + "\n"

    if output_file is not None:
        _write_file(Path(output_file), content)
    else:
        click.echo(content, nl=False)


def _write_file(path: Path, content: str) -> None:
    resolved = path.resolve()
    try:
        with open(resolved, "w", encoding="utf-8") as f:
            f.write(content)
    except OSError as exc:
        console.print(f"[red bold]Error:[/red bold] Cannot write to {resolved}: {exc}")
        sys.exit(1)
    console.print(f"[dim]Output written to {resolved}[/dim]")


@click.group()
@click.version_option(version=__version__, prog_name="lms-assistant")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Log to stderr at this level.",
)
@click.pass_context
def main(ctx: click.Context, log_level: str | None) -> None:
    """AI study assistant for the learning management system.

    Chat with ChatGPT, Claude, or Gemini using your own API keys.
    """
    ctx.ensure_object(dict)
    ctx.obj["log_level"] = log_level.upper() if log_level else ""


# ---------------------------------------------------------------------------
# chat
# ---------------------------------------------------------------------------


@main.command()
@click.option("--provider", type=PROVIDER_CHOICE, default=None, help="Provider to start with.")
@click.pass_context
def chat(ctx: click.Context, provider: str | None) -> None:
    """Start an interactive chat session.

    Prompts for API keys when none are stored.  Type /help for commands.
    """
    config = _load_config(ctx)
    session = _make_session(config)

    def _show_new_entry(event: SessionEvent, s: ChatSession) -> None:
        if event is SessionEvent.ENTRY_ADDED:
            render_entry(s.transcript[-1], index=len(s.transcript) - 1)

    session.subscribe(_show_new_entry)

    with asyncio.Runner() as runner:
        try:
            state = runner.run(session.initialize())
            if state is SessionState.NEEDS_SETUP and not _setup_keys(runner, session):
                sys.exit(1)

            if provider:
                try:
                    session.set_active_provider(ProviderId(provider.lower()))
                except ProviderUnavailable as exc:
                    console.print(f"[yellow]{exc}[/yellow]")

            _chat_loop(runner, session)
        finally:
            session.close()


def _setup_keys(runner: asyncio.Runner, session: ChatSession) -> bool:
    """Prompt for API keys and store them.

    Returns:
        True if at least one provider is available afterwards.
    """
    keys = _prompt_for_keys()
    if not keys:
        console.print("[red bold]Error:[/red bold] Please provide at least one API key.")
        return False
    try:
        available = runner.run(session.store_credentials(keys))
    except StorageUnavailable as exc:
        console.print(f"[red bold]Error:[/red bold] {exc}")
        return False
    console.print(f"[green]API keys saved. Available providers: {len(available)}[/green]")
    return bool(available)


def _chat_loop(runner: asyncio.Runner, session: ChatSession) -> None:
    """Read lines until /quit or end of input."""
    while True:
        try:
            line = click.prompt(
                click.style(f"[{session.active_provider_name}] You", bold=True),
                default="",
                show_default=False,
                prompt_suffix="> ",
            )
        except click.Abort:
            break

        line = line.strip()
        if not line:
            continue
        if line.startswith("/"):
            if not _handle_command(runner, session, line):
                break
            continue

        with console.status(f"{session.active_provider_name} is thinking..."):
            runner.run(session.send_message(line))


def _handle_command(runner: asyncio.Runner, session: ChatSession, line: str) -> bool:
    """Run one slash command.

    Args:
        runner: Event loop runner owning the session.
        session: Active chat session.
        line: Full command line, starting with "/".

    Returns:
        False when the chat should end.
    """
    command, _, arg = line.partition(" ")
    command = command.lower()
    arg = arg.strip()

    if command in ("/quit", "/exit"):
        return False
    if command == "/help":
        render_help()
    elif command == "/providers":
        render_provider_status(
            session.available_providers, session.active_provider, session.config
        )
    elif command == "/use":
        _use_provider(session, arg)
    elif command == "/clear":
        session.clear_transcript()
    elif command == "/delete":
        _delete_entry(session, arg)
    elif command == "/keys":
        _setup_keys(runner, session)
    elif command == "/save":
        _save_transcript(session, arg)
    else:
        console.print(f"[yellow]Unknown command {command}. Type /help for commands.[/yellow]")
    return True


def _use_provider(session: ChatSession, arg: str) -> None:
    try:
        provider = ProviderId(arg.lower())
    except ValueError:
        names = ", ".join(p.value for p in ProviderId)
        console.print(f"[yellow]Unknown provider '{arg}'. Choose one of: {names}.[/yellow]")
        return
    try:
        session.set_active_provider(provider)
    except ProviderUnavailable as exc:
        console.print(f"[yellow]{exc}[/yellow]")


def _delete_entry(session: ChatSession, arg: str) -> None:
    try:
        index = int(arg)
    except ValueError:
        console.print("[yellow]Usage: /delete <message number>[/yellow]")
        return
    if session.delete_entry(index):
        console.print(f"[dim]Deleted message #{index}.[/dim]")
    else:
        console.print(f"[dim]No message #{index}.[/dim]")


def _save_transcript(session: ChatSession, arg: str) -> None:
    if not arg:
        console.print("[yellow]Usage: /save <file.json|file.md>[/yellow]")
        return
    path = Path(arg).expanduser()
    transcript = session.export()
    if path.suffix.lower() == ".json":
        content = json.dumps(transcript.to_dict(), indent=2, ensure_ascii=False) + "\n"
    else:
        content = format_markdown(transcript)
    resolved = path.resolve()
    try:
        resolved.write_text(content, encoding="utf-8")
    except OSError as exc:
        console.print(f"[red bold]Error:[/red bold] Cannot write to {resolved}: {exc}")
        return
    console.print(f"[dim]Transcript saved to {resolved}[/dim]")


# ---------------------------------------------------------------------------
# ask
# ---------------------------------------------------------------------------


async def _run_ask(
    session: ChatSession, message: str, provider: ProviderId | None
) -> ChatTranscript | None:
    """Initialize a session, send one message, and snapshot the result.

    Returns:
        The transcript, or None if no provider is configured.

    Raises:
        ProviderUnavailable: If ``provider`` has no stored key.
    """
    try:
        if await session.initialize() is not SessionState.READY:
            return None
        if provider is not None and provider != session.active_provider:
            session.set_active_provider(provider)
        await session.send_message(message)
        return session.export()
    finally:
        session.close()


@main.command()
@click.argument("message")
@click.option("--provider", type=PROVIDER_CHOICE, default=None, help="Provider to ask.")
@click.option(
    "--output",
    type=click.Choice(["terminal", "json", "markdown"], case_sensitive=False),
    default="terminal",
    help="Output format (default: terminal).",
)
@click.option(
    "--file",
    "output_file",
    type=click.Path(dir_okay=False, writable=True),
    default=None,
    help="Write output to FILE instead of stdout.",
)
@click.pass_context
def ask(
    ctx: click.Context,
    message: str,
    provider: str | None,
    output: str,
    output_file: str | None,
) -> None:
    """Send a single MESSAGE and print the reply.

    Exits with status 1 if no API key is stored or the provider call fails.
    """
    if not message.strip():
        console.print("[red bold]Error:[/red bold] Message must not be empty.")
        sys.exit(1)

    config = _load_config(ctx)
    session = _make_session(config)
    selected = ProviderId(provider.lower()) if provider else None

    try:
        transcript = asyncio.run(_run_ask(session, message, selected))
    except ProviderUnavailable as exc:
        console.print(f"[red bold]Error:[/red bold] {exc}")
        sys.exit(1)

    if transcript is None:
        console.print(
            "[red bold]Error:[/red bold] No API key found.\n"
            "Run 'lms-assistant keys set' to store a provider key."
        )
        sys.exit(1)

    _emit_output(transcript, output=output.lower(), output_file=output_file)

    if transcript.entries and transcript.entries[-1].is_error:
        sys.exit(1)


# ---------------------------------------------------------------------------
# keys
# ---------------------------------------------------------------------------


@main.group()
def keys() -> None:
    """Manage provider API keys."""


@keys.command("set")
@click.option("--openai", "openai_key", default=None, help="OpenAI (ChatGPT) API key.")
@click.option("--claude", "claude_key", default=None, help="Anthropic (Claude) API key.")
@click.option("--gemini", "gemini_key", default=None, help="Google (Gemini) API key.")
@click.pass_context
def keys_set(
    ctx: click.Context,
    openai_key: str | None,
    claude_key: str | None,
    gemini_key: str | None,
) -> None:
    """Store API keys in the credentials file.

    Prompts with hidden input when no key option is given.
    """
    config = _load_config(ctx)
    session = _make_session(config)

    supplied = {
        ProviderId.OPENAI: openai_key,
        ProviderId.CLAUDE: claude_key,
        ProviderId.GEMINI: gemini_key,
    }
    new_keys = {p: v.strip() for p, v in supplied.items() if v and v.strip()}
    if not any(v is not None for v in supplied.values()):
        new_keys = _prompt_for_keys()
    if not new_keys:
        console.print("[red bold]Error:[/red bold] Please provide at least one API key.")
        sys.exit(1)

    async def _store() -> tuple[ProviderId, ...]:
        try:
            await session.initialize()
            return await session.store_credentials(new_keys)
        finally:
            session.close()

    try:
        available = asyncio.run(_store())
    except StorageUnavailable as exc:
        console.print(f"[red bold]Error:[/red bold] {exc}")
        sys.exit(1)

    names = ", ".join(p.display_name for p in available)
    console.print(f"[green]API keys saved. Available providers: {names}[/green]")


@keys.command("status")
@click.pass_context
def keys_status(ctx: click.Context) -> None:
    """Show which providers have a stored API key."""
    config = _load_config(ctx)
    session = _make_session(config)

    async def _status() -> tuple[tuple[ProviderId, ...], ProviderId | None]:
        try:
            await session.initialize()
            return session.available_providers, session.active_provider
        finally:
            session.close()

    available, active = asyncio.run(_status())
    render_provider_status(available, active, config)
    if not available:
        console.print("[dim]No API keys stored. Run 'lms-assistant keys set'.[/dim]")


# ---------------------------------------------------------------------------
# config
# ---------------------------------------------------------------------------


@main.group()
def config() -> None:
    """Manage configuration."""


@config.command()
def path() -> None:
    """Print the configuration file path."""
    click.echo(config_path())


@config.command("show")
@click.pass_context
def config_show(ctx: click.Context) -> None:
    """Display effective configuration."""
    cfg = _load_config(ctx)
    render_config_show(cfg, str(config_path()))


if __name__ == "__main__":
    main()
