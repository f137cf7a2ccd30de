from __future__ import annotations

import typer
from rich.console import Console
from rich.text import Text

from live_infra import __version__
from live_infra.cli.cmds import register_audio, register_live, register_search

console = Console()

_LOGO = "  ◉ live-infra"


def _show_banner():
    console.print()
    console.print(Text(_LOGO, style="bold #6366f1"), Text(f"v{__version__}", style="dim"))
    console.print(Text("  Live voice & text sessions from your terminal", style="dim italic"))
    console.print()


def _show_help():
    """Display the short help shown when no command is given."""
    _show_banner()

    console.print(Text("  Quick Start", style="bold #a78bfa"))
    console.print()
    console.print(
        "    [dim]$[/dim] [white]live-infra live <API_KEY>[/white]        [dim]Text chat[/dim]"
    )
    console.print(
        "    [dim]$[/dim] [white]live-infra live <API_KEY> voice[/white]  [dim]Voice chat[/dim]"
    )
    console.print()

    console.print(Text("  Commands", style="bold #a78bfa"))
    console.print()
    commands = [
        ("live", "Live conversation (text or voice)"),
        ("test-audio", "Play a test tone through the audio player"),
        ("search", "Web search with Tavily"),
        ("search-key", "Store or remove the Tavily API key"),
    ]
    for cmd, desc in commands:
        console.print(f"    [bold #6366f1]{cmd:16}[/bold #6366f1] [dim]{desc}[/dim]")
    console.print()
    console.print("    [dim]Run[/dim] [white]live-infra --help[/white] [dim]for all options[/dim]")
    console.print()


def version_callback(value: bool):
    """Show version and exit."""
    if value:
        _show_banner()
        raise typer.Exit()


app = typer.Typer(
    invoke_without_command=True,
    no_args_is_help=False,
    add_completion=False,
    help="Live voice and text sessions with a generative model.",
    rich_markup_mode="markdown",
)


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    version: bool | None = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
):
    """live-infra: live voice and text sessions."""
    if ctx.invoked_subcommand is None:
        _show_help()
        raise typer.Exit()


register_live(app)
register_audio(app)
register_search(app)


def main():
    app()


if __name__ == "__main__":
    main()
