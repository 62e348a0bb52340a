from __future__ import annotations

import subprocess

import typer
from rich import print
from rich.markup import escape

from forager.config import ForagerConfig
from forager.store import SearchResult

from .common import format_date, shorten_path

SHORT_ID_CHARS = 8


def print_results(results: list[SearchResult], *, resume_command: str) -> None:
    print("")
    for position, result in enumerate(results, start=1):
        session = result.session
        summary = escape(session.summary or session.first_prompt[:60] or "untitled")
        date = format_date(session.modified)
        print(
            f"[bold white] {position}. [/bold white][dim]\\[{result.score:.2f}][/dim] "
            f"[white]{summary}[/white][dim] ({date})[/dim]"
        )
        if session.project_path:
            line = f"    Project: {shorten_path(session.project_path)}"
            if session.git_branch:
                line += f"  Branch: {session.git_branch}"
            print(f"[dim]{escape(line)}[/dim]")
        short_id = session.session_id[:SHORT_ID_CHARS]
        print(f"[cyan]    Resume: {escape(resume_command)} --resume {escape(short_id)}[/cyan]")
        print("")


def search_cmd(
    *,
    load_config,
    store_from_config,
    embedder_from_config,
    db_path: str | None,
    query: str,
    limit: int | None,
) -> list[SearchResult]:
    config: ForagerConfig = load_config()
    effective_limit = limit if limit and limit > 0 else config.search_limit
    store = store_from_config(config, db_path)
    try:
        if store.count_sessions() == 0:
            print("[yellow]No sessions indexed yet. Run `forager index` first.[/yellow]")
            return []
        with embedder_from_config(config) as embedder:
            results = store.search(embedder, query, limit=effective_limit)
    except RuntimeError as exc:
        print(f"[red]Search failed: {escape(str(exc))}[/red]")
        raise typer.Exit(code=1) from exc
    finally:
        store.close()
    if not results:
        print("[yellow]No sessions with embeddings found. Run `forager index --full`.[/yellow]")
        return results
    print_results(results, resume_command=config.resume_command)
    return results


def resume_cmd(
    *,
    load_config,
    store_from_config,
    db_path: str | None,
    token: str,
    run=subprocess.run,
) -> None:
    config: ForagerConfig = load_config()
    store = store_from_config(config, db_path)
    try:
        session_id = store.resolve_session_id(token)
    finally:
        store.close()
    if not session_id:
        print(f'[red]Could not find session matching "{escape(token)}"[/red]')
        raise typer.Exit(code=1)

    print(f"[blue]Resuming session {escape(session_id[:SHORT_ID_CHARS])}...[/blue]")
    try:
        completed = run([config.resume_command, "--resume", session_id], check=False)
    except OSError as exc:
        print(f"[red]Failed to run {escape(config.resume_command)}: {escape(str(exc))}[/red]")
        raise typer.Exit(code=1) from exc
    if completed.returncode:
        raise typer.Exit(code=completed.returncode)
