"""
CLI command for live conversations.

Usage:
    live-infra live AIza...                 # Text mode (type, hear the reply)
    live-infra live AIza... voice           # Voice mode (microphone streaming)
    live-infra live --voice Kore AIza...    # Pick a prebuilt voice
    GEMINI_API_KEY=AIza... live-infra live  # Credential from the environment
"""

from __future__ import annotations

import asyncio
import os
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape

from live_infra.audio.sink import AudioSink
from live_infra.audio.source import MicrophoneSource
from live_infra.config import LiveConfig, SessionMode
from live_infra.errors import ConnectError, LiveInfraError
from live_infra.live.input import LineInputSource
from live_infra.live.session import SessionController
from live_infra.live.transport import build_url
from live_infra.logging import configure_logging

console = Console()


async def run_session(config: LiveConfig, credential: str) -> int:
    """Run one live session and return the process exit code."""
    sink = AudioSink(config.resolved_player_command())
    source_factory = None
    if config.mode is SessionMode.VOICE:
        source_factory = lambda: MicrophoneSource(sample_rate=config.input_sample_rate)  # noqa: E731

    controller = SessionController(
        config,
        sink=sink,
        source_factory=source_factory,
        console=console,
    )
    try:
        return await controller.run(build_url(config, credential), LineInputSource())
    except ConnectError as e:
        console.print(f"[red]❌ {escape(str(e))}[/red]")
        return 1


def live_cmd(
    ctx: typer.Context,
    credential: Optional[str] = typer.Argument(
        None,
        envvar="GEMINI_API_KEY",
        show_envvar=False,
        help="API key for the live service (or set GEMINI_API_KEY).",
    ),
    mode: SessionMode = typer.Argument(
        SessionMode.TEXT,
        help="Conversation mode: 'text' or 'voice'.",
    ),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Model id"),
    voice: Optional[str] = typer.Option(None, "--voice", help="Prebuilt voice name"),
    language: Optional[str] = typer.Option(
        None, "--language", "-l", help="BCP-47 language code for speech"
    ),
    host: Optional[str] = typer.Option(None, "--host", help="Service host or proxy"),
    dump_audio: Optional[Path] = typer.Option(
        None, "--dump-audio", help="Append received raw PCM audio to this file"
    ),
    log_level: str = typer.Option("WARNING", "--log-level", help="Log level (stderr)"),
    log_json: bool = typer.Option(False, "--log-json", help="Emit logs as JSON"),
):
    """Start a live conversation with the model."""
    # `live voice` with the key in the environment: the first positional is the mode.
    if credential and credential.lower() in {m.value for m in SessionMode}:
        mode = SessionMode(credential.lower())
        credential = os.environ.get("GEMINI_API_KEY")
    if not credential:
        typer.echo(ctx.get_usage())
        typer.echo("Error: an API key is required (argument or GEMINI_API_KEY).", err=True)
        raise typer.Exit(1)

    configure_logging(level=log_level, format="json" if log_json else "human")

    try:
        config = LiveConfig.from_env(
            model=model,
            voice_name=voice,
            language_code=language,
            host=host,
            mode=mode,
            audio_dump_path=dump_audio,
        )
    except LiveInfraError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1)

    try:
        exit_code = asyncio.run(run_session(config, credential))
    except KeyboardInterrupt:
        console.print("\n👋 Bye.")
        exit_code = 130
    raise typer.Exit(exit_code)


def register(app: typer.Typer):
    """Register live commands to main app."""
    app.command("live", rich_help_panel="Live")(live_cmd)
