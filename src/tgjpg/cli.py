from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import httpx
import typer
from rich.console import Console
from rich.table import Table

from tgjpg.config import DEFAULT_ASSETS_DIR
from tgjpg.image_search import ImageSearchClient, ImageSearchError
from tgjpg.local_finder import CorpusReadError, LocalImageFinder
from tgjpg.main import main as serve_main
from tgjpg.source_fetcher import classify

app = typer.Typer(help="tgjpg image lookup CLI")
console = Console()


@app.command("find")
def find(
    text: str = typer.Argument(..., help="Text to match against asset names"),
    assets_dir: Path = typer.Option(
        Path(DEFAULT_ASSETS_DIR), "--assets-dir", "-d", help="Asset corpus root"
    ),
    limit: int = typer.Option(10, "--limit", "-n", help="Maximum rows to show"),
) -> None:
    """Rank local assets against TEXT."""
    _configure_logging()
    finder = LocalImageFinder(assets_dir)
    try:
        matches = finder.find_matches(text)
    except CorpusReadError as e:
        console.print(f"[red]Corpus read failed:[/red] {e}")
        raise typer.Exit(code=1) from e

    if not matches:
        console.print("[yellow]No matching assets.[/yellow]")
        return

    table = Table(title=f"Matches for '{text}' ({len(matches)})")
    table.add_column("Score", style="bold cyan", justify="right")
    table.add_column("Format", style="green")
    table.add_column("Path", style="white")
    for match in matches[:limit]:
        table.add_row(
            str(match.score), match.entry.format.value, str(match.entry.path)
        )

    console.print(table)


@app.command("search")
def search(
    query: str = typer.Argument(..., help="Search query"),
    gif: bool = typer.Option(False, "--gif", "-g", help="Search animated images"),
) -> None:
    """Run the remote image extraction pipeline for QUERY."""
    _configure_logging()
    with console.status(f"Searching images for '{query}'..."):
        try:
            urls = asyncio.run(_search(query, gif))
        except ImageSearchError as e:
            console.print(f"[yellow]{e.user_message}[/yellow]")
            raise typer.Exit(code=1) from e

    table = Table(title=f"Image URLs for '{query}' ({len(urls)})")
    table.add_column("#", style="bold cyan", justify="right")
    table.add_column("Source", style="green")
    table.add_column("URL", style="blue underline")
    for index, url in enumerate(urls, start=1):
        table.add_row(str(index), classify(url).value, url)

    console.print(table)


@app.command("serve")
def serve() -> None:
    """Run the Telegram webhook server."""
    serve_main()


def _configure_logging() -> None:
    logging.basicConfig(level=logging.WARNING)


async def _search(query: str, is_animated: bool) -> list[str]:
    async with httpx.AsyncClient() as http_client:
        client = ImageSearchClient(http_client=http_client)
        return await client.search(query, is_animated)


if __name__ == "__main__":
    app()
