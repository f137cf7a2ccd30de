#!/usr/bin/env python
"""Live Text Session Example.

This example demonstrates:
- Building a LiveConfig from the environment
- Running a SessionController with stdin line input
- Hearing the spoken reply through ffplay

Type a question and press Return; type 'exit' to quit.
Set GEMINI_API_KEY before running.
"""

import asyncio
import os

from live_infra import (
    AudioSink,
    LineInputSource,
    LiveConfig,
    SessionController,
    build_url,
    configure_logging,
)


async def main():
    api_key = os.environ.get("GEMINI_API_KEY")
    if not api_key:
        print("  ⚠ Set GEMINI_API_KEY first")
        return 1

    configure_logging(level="INFO")
    config = LiveConfig.from_env(voice_name="Kore")

    controller = SessionController(config, sink=AudioSink(config.resolved_player_command()))
    return await controller.run(build_url(config, api_key), LineInputSource())


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
