from __future__ import annotations

import contextlib
import plistlib
import shlex
import subprocess
import sys
from pathlib import Path

import typer
from rich import print
from rich.markup import escape

from forager.config import ForagerConfig

LAUNCHD_LABEL = "com.session-forager.index"
CRON_MARKER = "# session-forager auto-index"


def launchd_plist_path() -> Path:
    return Path.home() / "Library" / "LaunchAgents" / f"{LAUNCHD_LABEL}.plist"


def index_command() -> list[str]:
    return [sys.executable, "-m", "forager", "index"]


def build_plist(program_args: list[str], *, hour: int, log_path: str) -> bytes:
    return plistlib.dumps(
        {
            "Label": LAUNCHD_LABEL,
            "ProgramArguments": program_args,
            "StartCalendarInterval": {"Hour": hour, "Minute": 0},
            "StandardOutPath": log_path,
            "StandardErrorPath": log_path,
        }
    )


def build_cron_line(program_args: list[str], *, hour: int, log_path: str) -> str:
    command = shlex.join(program_args)
    return f"0 {hour} * * * {command} >> {shlex.quote(log_path)} 2>&1 {CRON_MARKER}"


def strip_cron_entries(existing: str) -> str:
    kept = [line for line in existing.split("\n") if CRON_MARKER not in line]
    return "\n".join(kept).rstrip("\n")


def merge_crontab(existing: str, cron_line: str) -> str:
    filtered = strip_cron_entries(existing)
    return f"{filtered}\n{cron_line}\n" if filtered else f"{cron_line}\n"


def _read_crontab() -> str | None:
    try:
        result = subprocess.run(["crontab", "-l"], capture_output=True, text=True, check=False)
    except OSError:
        return None
    if result.returncode != 0:
        return None
    return result.stdout


def _write_crontab(content: str) -> None:
    subprocess.run(["crontab", "-"], input=content, capture_output=True, text=True, check=True)


def _setup_launchd(config: ForagerConfig) -> None:
    dest = launchd_plist_path()
    if dest.exists():
        subprocess.run(
            ["launchctl", "unload", str(dest)], capture_output=True, text=True, check=False
        )
    dest.parent.mkdir(parents=True, exist_ok=True)
    dest.write_bytes(
        build_plist(index_command(), hour=config.schedule_hour, log_path=config.schedule_log)
    )
    subprocess.run(["launchctl", "load", str(dest)], capture_output=True, text=True, check=True)
    print(
        f"[green]Launch agent installed; sessions will auto-index daily at "
        f"{config.schedule_hour:02d}:00.[/green]"
    )
    print("[dim]Missed runs (e.g. laptop was asleep) will run on next wake.[/dim]")
    print(f"[dim]Logs: {escape(config.schedule_log)}[/dim]")


def _teardown_launchd() -> None:
    dest = launchd_plist_path()
    if not dest.exists():
        print("[dim]No launch agent found; nothing to remove.[/dim]")
        return
    subprocess.run(["launchctl", "unload", str(dest)], capture_output=True, text=True, check=False)
    with contextlib.suppress(FileNotFoundError):
        dest.unlink()
    print("[green]Launch agent removed.[/green]")


def _setup_cron(config: ForagerConfig) -> None:
    cron_line = build_cron_line(
        index_command(), hour=config.schedule_hour, log_path=config.schedule_log
    )
    _write_crontab(merge_crontab(_read_crontab() or "", cron_line))
    print(
        f"[green]Cron job installed; sessions will auto-index daily at "
        f"{config.schedule_hour:02d}:00.[/green]"
    )
    print(f"[dim]Logs: {escape(config.schedule_log)}[/dim]")


def _teardown_cron() -> None:
    existing = _read_crontab()
    if existing is None:
        print("[dim]No crontab found; nothing to remove.[/dim]")
        return
    filtered = strip_cron_entries(existing)
    if filtered:
        _write_crontab(filtered + "\n")
    else:
        subprocess.run(["crontab", "-r"], capture_output=True, text=True, check=False)
    print("[green]Cron job removed.[/green]")


def setup_cmd(*, load_config) -> None:
    config: ForagerConfig = load_config()
    try:
        if sys.platform.startswith("darwin"):
            _setup_launchd(config)
        else:
            _setup_cron(config)
    except (OSError, subprocess.CalledProcessError) as exc:
        print(f"[red]Failed to install daily indexing: {escape(str(exc))}[/red]")
        raise typer.Exit(code=1) from exc


def teardown_cmd() -> None:
    try:
        if sys.platform.startswith("darwin"):
            _teardown_launchd()
        else:
            _teardown_cron()
    except (OSError, subprocess.CalledProcessError) as exc:
        print(f"[red]Failed to remove daily indexing: {escape(str(exc))}[/red]")
        raise typer.Exit(code=1) from exc
