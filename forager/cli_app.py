from __future__ import annotations

import logging

import typer
from rich import print
from rich.logging import RichHandler

from . import __version__
from .commands.common import embedder_from_config, load_config_or_exit, store_from_config
from .commands.index_cmds import index_cmd
from .commands.maintenance_cmds import stats_cmd
from .commands.schedule_cmds import setup_cmd, teardown_cmd
from .commands.search_cmds import resume_cmd, search_cmd

app = typer.Typer(help="forager: search your coding-assistant session history")


@app.callback()
def _configure(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=verbose, show_path=False)],
        force=True,
    )


@app.command()
def index(
    full: bool = typer.Option(False, "--full", help="Re-index everything from scratch"),
    db_path: str = typer.Option(None, help="Path to SQLite database"),
) -> None:
    """Index all sessions (incremental by default)."""

    index_cmd(
        load_config=load_config_or_exit,
        store_from_config=store_from_config,
        embedder_from_config=embedder_from_config,
        db_path=db_path,
        full=full,
    )


@app.command()
def search(
    query: str = typer.Argument(..., help="What you remember about the session"),
    limit: int = typer.Option(None, "--limit", "-n", help="Number of results"),
    db_path: str = typer.Option(None, help="Path to SQLite database"),
) -> None:
    """Semantic search across all indexed sessions."""

    search_cmd(
        load_config=load_config_or_exit,
        store_from_config=store_from_config,
        embedder_from_config=embedder_from_config,
        db_path=db_path,
        query=query,
        limit=limit,
    )


@app.command()
def resume(
    token: str = typer.Argument(..., help="Session ID, ID prefix, or result number"),
    db_path: str = typer.Option(None, help="Path to SQLite database"),
) -> None:
    """Resume a session by ID, prefix, or result number from the last search."""

    resume_cmd(
        load_config=load_config_or_exit,
        store_from_config=store_from_config,
        db_path=db_path,
        token=token,
    )


@app.command()
def stats(db_path: str = typer.Option(None, help="Path to SQLite database")) -> None:
    """Show index statistics."""

    stats_cmd(
        load_config=load_config_or_exit,
        store_from_config=store_from_config,
        db_path=db_path,
    )


@app.command()
def setup() -> None:
    """Install daily auto-indexing (launchd on macOS, cron elsewhere)."""

    setup_cmd(load_config=load_config_or_exit)


@app.command()
def teardown() -> None:
    """Remove daily auto-indexing."""

    teardown_cmd()


@app.command("version")
def version() -> None:
    """Print version."""

    print(__version__)


def main() -> None:
    app()
