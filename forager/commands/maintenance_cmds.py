from __future__ import annotations

from rich import print

from forager.config import ForagerConfig
from forager.store import IndexStats

from .common import format_date


def _format_bytes(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    if size < 1024 * 1024 * 1024:
        return f"{size / 1024 / 1024:.1f} MB"
    return f"{size / 1024 / 1024 / 1024:.1f} GB"


def stats_cmd(*, load_config, store_from_config, db_path: str | None) -> IndexStats:
    config: ForagerConfig = load_config()
    store = store_from_config(config, db_path)
    try:
        stats = store.stats()
        path = store.db_path
    finally:
        store.close()

    if stats["total_sessions"] == 0:
        print("[yellow]No sessions indexed yet. Run `forager index` first.[/yellow]")
        return stats

    size = path.stat().st_size if path.exists() else 0
    print("")
    print("[bold white]Forager Stats[/bold white]")
    print("[dim]" + "─" * 35 + "[/dim]")
    print(f"  Sessions indexed:  [green]{stats['total_sessions']}[/green]")
    print(f"  Projects:          [green]{stats['project_count']}[/green]")
    print(f"  Oldest session:    {format_date(stats['oldest_session'])}")
    print(f"  Newest session:    {format_date(stats['newest_session'])}")
    print(f"  Database:          {path} ({_format_bytes(size)})")
    print("")
    return stats
