from __future__ import annotations

import os
from pathlib import Path

import typer
from rich import print

from forager.config import ForagerConfig, load_config, read_config_file
from forager.semantic import Embedder
from forager.store import SessionStore
from forager.store.utils import parse_iso8601


def load_config_or_exit() -> ForagerConfig:
    try:
        read_config_file()
    except ValueError as exc:
        print(f"[red]Invalid config file: {exc}[/red]")
        raise typer.Exit(code=1) from exc
    return load_config()


def store_from_config(config: ForagerConfig, db_path: str | None = None) -> SessionStore:
    return SessionStore(db_path or config.database_path)


def embedder_from_config(config: ForagerConfig) -> Embedder:
    return Embedder(config.embedding_model)


def format_date(value: str | None) -> str:
    if not value:
        return "?"
    parsed = parse_iso8601(value)
    if parsed is None:
        return "?"
    return f"{parsed.strftime('%b')} {parsed.day}, {parsed.year}"


def shorten_path(path: str, home: str | None = None) -> str:
    home = home if home is not None else os.environ.get("HOME") or str(Path.home())
    if home and path.startswith(home):
        return "~" + path[len(home) :]
    return path
