"""Command line interface for NoteFinder."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table
from rich.tree import Tree

from notefinder.config import AppConfig
from notefinder.index.indexer import build_snapshot
from notefinder.index.search import (
    EmptyQueryError,
    IndexNotReadyError,
    SearchFailedError,
    Searcher,
)
from notefinder.index.tree import build_tree
from notefinder.models import Directory
from notefinder.sources import SourceAdapter, SourceUnavailableError, create_source

console = Console()
app = typer.Typer(help="NoteFinder - browse and search a mirrored notes folder")


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _load_config(local: Optional[Path]) -> AppConfig:
    config = AppConfig.from_env()
    if local is not None:
        config.use_local = True
        config.local_path = local
    for problem in config.problems():
        console.print(f"[yellow]Warning: {problem}[/yellow]")
    return config


async def _with_source(config: AppConfig, work):
    source = create_source(config)
    try:
        return await work(source)
    finally:
        await source.aclose()


def _add_branch(node: Tree, directory: Directory) -> None:
    for name, child in directory.children.items():
        if isinstance(child, Directory):
            _add_branch(node.add(f"[bold]{name}/[/bold]"), child)
        else:
            node.add(name)


LocalOption = typer.Option(
    None, "--local", help="Serve a local folder instead of GitHub", exists=True, file_okay=False
)
VerboseOption = typer.Option(False, "--verbose", "-v", help="Verbose logging")


@app.command()
def search(
    query: str = typer.Argument(..., help="Query text"),
    folder: Optional[str] = typer.Option(None, "--folder", help="Only search below this folder"),
    limit: int = typer.Option(10, help="Number of results to display"),
    local: Optional[Path] = LocalOption,
    verbose: bool = VerboseOption,
) -> None:
    """Index the source once and run a search."""
    _setup_logging(verbose)
    config = _load_config(local)

    async def run(source: SourceAdapter):
        return await build_snapshot(
            source,
            tree_extensions=config.tree_extensions,
            index_extensions=config.index_extensions,
            max_size=config.max_index_file_size,
        )

    snapshot = asyncio.run(_with_source(config, run))
    searcher = Searcher(snapshot, limit=max(1, min(limit, config.result_limit)))
    try:
        results = searcher.search(query, folder)
    except (EmptyQueryError, IndexNotReadyError, SearchFailedError) as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1)

    if not results:
        console.print("[yellow]No matches found.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Score")
    table.add_column("Path")
    table.add_column("Snippet")
    for result in results:
        snippet = result.snippet.replace("\n", " ")
        table.add_row(f"{result.score:.4f}", result.full_path, snippet[:180])
    console.print(table)


@app.command()
def tree(
    local: Optional[Path] = LocalOption,
    verbose: bool = VerboseOption,
) -> None:
    """Print the mirrored folder tree."""
    _setup_logging(verbose)
    config = _load_config(local)

    async def run(source: SourceAdapter):
        return await build_tree(source, extensions=config.tree_extensions)

    root = asyncio.run(_with_source(config, run))
    if not root.children:
        console.print("[yellow]Nothing found.[/yellow]")
        return
    view = Tree("[bold]/[/bold]")
    _add_branch(view, root)
    console.print(view)


@app.command()
def folders(
    local: Optional[Path] = LocalOption,
    verbose: bool = VerboseOption,
) -> None:
    """List the top-level folders of the source."""
    _setup_logging(verbose)
    config = _load_config(local)

    async def run(source: SourceAdapter):
        return await source.list_children("")

    try:
        items = asyncio.run(_with_source(config, run))
    except SourceUnavailableError as exc:
        console.print(f"[red]Failed to read folders: {exc.message}[/red]")
        raise typer.Exit(code=1)
    for item in items:
        if item.is_dir:
            console.print(item.name)


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, help="Host interface"),
    port: Optional[int] = typer.Option(None, help="Server port"),
    local: Optional[Path] = LocalOption,
    verbose: bool = VerboseOption,
) -> None:
    """Start the web API."""
    import uvicorn

    from notefinder.web.app import app as web_app, configure

    _setup_logging(verbose)
    config = _load_config(local)
    configure(config)
    host = host or config.host
    port = port or config.port

    console.print(f"Starting NoteFinder on http://{host}:{port}")
    uvicorn.run(
        web_app,
        host=host,
        port=port,
        reload=False,
        log_level="debug" if verbose else "info",
    )
