"""
CLI commands for the web search tool.

Usage:
    live-infra search-key tvly-...           # Store the Tavily API key
    live-infra search-key                    # Remove the stored key
    live-infra search "python 3.13 release"  # Run a search
    live-infra search "..." --json           # Raw JSON result
"""

from __future__ import annotations

import asyncio
import json

import typer

from live_infra.errors import SearchError
from live_infra.tools.search import TavilySearchTool


def search_cmd(
    query: str = typer.Argument(..., help="What to search for"),
    depth: str = typer.Option(
        "basic",
        "--depth",
        "-d",
        help="Search depth: basic or advanced",
    ),
    max_results: int = typer.Option(5, "--max-results", "-n", help="Results to return (1-10)"),
    output_json: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
):
    """Search the web with Tavily."""
    if depth not in ("basic", "advanced"):
        typer.echo(f"Error: invalid depth '{depth}' (use basic or advanced)", err=True)
        raise typer.Exit(1)

    tool = TavilySearchTool()
    try:
        result = asyncio.run(tool.search(query, search_depth=depth, max_results=max_results))
    except SearchError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    if output_json:
        typer.echo(json.dumps(result, indent=2))
        return

    if result["answer"]:
        typer.echo(f"\n{result['answer']}\n")
    for i, item in enumerate(result["results"], 1):
        typer.secho(f"{i}. {item['title']}", bold=True)
        typer.echo(f"   {item['url']}")
    if result["response_time"] is not None:
        typer.secho(f"\n({result['response_time']}s)", fg=typer.colors.BRIGHT_BLACK)


def search_key_cmd(
    api_key: str = typer.Argument("", help="Tavily API key; omit to remove the stored key"),
):
    """Store or remove the Tavily API key."""
    tool = TavilySearchTool()
    try:
        tool.set_api_key(api_key)
    except OSError as e:
        typer.echo(f"Error: could not update the key store: {e}", err=True)
        raise typer.Exit(1)
    if tool.get_api_key():
        typer.echo("Tavily API key saved.")
    else:
        typer.echo("Tavily API key removed.")


def register(app: typer.Typer):
    """Register search commands to main app."""
    app.command("search", rich_help_panel="Tools")(search_cmd)
    app.command("search-key", rich_help_panel="Tools")(search_key_cmd)
