"""
CLI commands for checking audio output.

Usage:
    live-infra test-audio                 # 2 s, 440 Hz tone through the player
    live-infra test-audio -f 880 -s 1     # Custom tone
"""

from __future__ import annotations

import asyncio

import typer

from live_infra.audio.sink import AudioSink, WriteResult
from live_infra.audio.utils import calculate_duration_ms, sine_pcm16
from live_infra.config import LiveConfig
from live_infra.errors import AudioDeviceError


async def play_tone(sink: AudioSink, audio: bytes, sample_rate: int) -> WriteResult:
    """Write ``audio`` to a fresh handle and keep it alive while it plays."""
    handle = await sink.spawn()
    try:
        result = handle.write(audio)
        if result is WriteResult.WRITTEN:
            # Margin for player startup latency.
            await asyncio.sleep(calculate_duration_ms(audio, sample_rate) / 1000 + 0.5)
        return result
    finally:
        await handle.aclose()


def audio_test_cmd(
    frequency: float = typer.Option(440.0, "--frequency", "-f", help="Tone frequency in Hz"),
    seconds: float = typer.Option(2.0, "--seconds", "-s", help="Tone length"),
):
    """Play a test tone through the audio player."""
    config = LiveConfig()
    rate = config.output_sample_rate
    audio = sine_pcm16(frequency, int(seconds * 1000), rate)

    typer.echo(f"Playing {seconds:g}s at {frequency:g} Hz; you should hear a beep.")
    try:
        result = asyncio.run(play_tone(AudioSink(config.resolved_player_command()), audio, rate))
    except AudioDeviceError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    if result is WriteResult.DROPPED:
        typer.echo("Error: the player exited before audio could be written.", err=True)
        raise typer.Exit(1)
    typer.echo("Done.")


def register(app: typer.Typer):
    """Register audio commands to main app."""
    app.command("test-audio", rich_help_panel="Audio")(audio_test_cmd)
