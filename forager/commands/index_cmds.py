from __future__ import annotations

import typer
from rich import print
from rich.markup import escape

from forager.config import ForagerConfig
from forager.indexer import DocumentSettings, IndexSummary, ProgressEvent, index_sessions
from forager.ingest.discovery import SessionSources

LABEL_CHARS = 60


def print_progress(event: ProgressEvent) -> None:
    if event.kind == "start":
        print(f"[dim]Found {event.total} sessions across all projects[/dim]\n")
    elif event.kind == "indexed":
        label = (event.label or "untitled")[:LABEL_CHARS]
        print(f"[green]  + {escape(label)}[/green]")
    elif event.kind == "error":
        print(f"[red]  ! {escape(event.message)}[/red]")


def print_summary(result: IndexSummary) -> None:
    print("")
    print(f"[green]Indexed: {result.indexed}[/green]")
    if result.skipped > 0:
        print(f"[dim]Skipped (unchanged): {result.skipped}[/dim]")
    if result.errors > 0:
        print(f"[red]Errors: {result.errors}[/red]")


def index_cmd(
    *,
    load_config,
    store_from_config,
    embedder_from_config,
    db_path: str | None,
    full: bool,
) -> IndexSummary:
    config: ForagerConfig = load_config()
    print("[blue]Foraging sessions...[/blue]")
    print("[dim](First run downloads the embedding model)[/dim]\n")
    store = store_from_config(config, db_path)
    embedder = embedder_from_config(config)
    try:
        with embedder:
            result = index_sessions(
                store,
                embedder,
                SessionSources.from_config(config),
                full=full,
                on_progress=print_progress,
                settings=DocumentSettings.from_config(config),
            )
    except RuntimeError as exc:
        print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(code=1) from exc
    finally:
        store.close()
    print_summary(result)
    return result
