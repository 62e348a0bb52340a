from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ..config import ForagerConfig
from .jsonl import ParseStats, iter_jsonl
from .types import CandidateEntry, HistoryEntry, IndexEntry, OrphanEntry

SESSION_INDEX_FILE = "sessions-index.json"
TRANSCRIPT_SUFFIX = ".jsonl"
SESSION_GAP_MS = 30 * 60 * 1000
HISTORY_ID_PREFIX = "history-"

_BASE36_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionSources:
    projects_dir: Path
    history_path: Path
    session_gap_ms: int = SESSION_GAP_MS

    @classmethod
    def from_config(cls, config: ForagerConfig) -> SessionSources:
        return cls(
            projects_dir=config.projects_dir,
            history_path=config.history_path,
            session_gap_ms=config.session_gap_ms,
        )


@dataclass(frozen=True)
class PromptRecord:
    display: str
    timestamp: int
    project: str


@dataclass
class _PromptGroup:
    project: str
    first_timestamp: int
    last_timestamp: int
    prompts: list[str] = field(default_factory=list)


def _base36(value: int) -> str:
    if value == 0:
        return "0"
    digits: list[str] = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36_DIGITS[rem])
    return "".join(reversed(digits))


def project_hash(text: str) -> str:
    """Signed 32-bit ``h * 31 + c`` hash over UTF-16 code units, |h| in base 36."""

    data = text.encode("utf-16-le", "surrogatepass")
    h = 0
    for i in range(0, len(data), 2):
        unit = data[i] | (data[i + 1] << 8)
        h = (h * 31 + unit) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return _base36(abs(h))


def synthetic_session_id(first_timestamp: int, project: str) -> str:
    return f"{HISTORY_ID_PREFIX}{first_timestamp}-{project_hash(project)}"


def _list_dir(path: Path) -> list[Path]:
    try:
        return sorted(path.iterdir(), key=lambda p: p.name)
    except OSError as exc:
        logger.debug("cannot list %s: %s", path, exc)
        return []


def _is_dir(path: Path) -> bool:
    try:
        return path.is_dir()
    except OSError:
        return False


def project_dirs(projects_dir: Path) -> list[Path]:
    return [path for path in _list_dir(projects_dir) if _is_dir(path)]


def _as_str(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    return int(value)


def _index_entry(project_dir: Path, raw: dict[str, Any]) -> IndexEntry | None:
    session_id = raw.get("sessionId")
    if not isinstance(session_id, str) or not session_id:
        return None
    full_path = _as_str(raw.get("fullPath"))
    transcript_path = (
        Path(full_path) if full_path else project_dir / f"{session_id}{TRANSCRIPT_SUFFIX}"
    )
    return IndexEntry(
        session_id=session_id,
        transcript_path=transcript_path,
        project_path=_as_str(raw.get("projectPath")),
        git_branch=_as_str(raw.get("gitBranch")),
        summary=_as_str(raw.get("summary")),
        first_prompt=_as_str(raw.get("firstPrompt")),
        created=_as_str(raw.get("created")),
        modified=_as_str(raw.get("modified")),
        message_count=_as_int(raw.get("messageCount")) or 0,
        file_mtime=_as_int(raw.get("fileMtime")),
    )


def read_session_index(project_dir: Path) -> list[IndexEntry]:
    """Parse ``sessions-index.json`` in ``project_dir``; anything malformed yields []."""

    index_path = project_dir / SESSION_INDEX_FILE
    try:
        raw = index_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return []
    except OSError as exc:
        logger.debug("cannot read %s: %s", index_path, exc)
        return []
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        logger.debug("skipping malformed session index %s", index_path)
        return []
    if not isinstance(data, dict) or not isinstance(data.get("entries"), list):
        return []
    entries: list[IndexEntry] = []
    for item in data["entries"]:
        if not isinstance(item, dict):
            continue
        entry = _index_entry(project_dir, item)
        if entry is not None:
            entries.append(entry)
    return entries


def transcript_files(project_dir: Path) -> list[Path]:
    return [
        path
        for path in _list_dir(project_dir)
        if path.name.endswith(TRANSCRIPT_SUFFIX) and not _is_dir(path)
    ]


def read_prompt_log(path: Path, *, stats: ParseStats | None = None) -> list[PromptRecord]:
    records: list[PromptRecord] = []
    for raw in iter_jsonl(path, stats=stats):
        display = raw.get("display")
        timestamp = _as_int(raw.get("timestamp"))
        if not isinstance(display, str) or not display or not timestamp:
            continue
        records.append(
            PromptRecord(display=display, timestamp=timestamp, project=_as_str(raw.get("project")))
        )
    return records


def group_prompts(
    records: Iterable[PromptRecord], *, gap_ms: int = SESSION_GAP_MS
) -> list[HistoryEntry]:
    """Group prompt-log records into synthetic sessions.

    A record joins the open group only when it has the same project and comes
    less than ``gap_ms`` after the group's latest record.
    """

    groups: list[_PromptGroup] = []
    current: _PromptGroup | None = None
    for record in sorted(records, key=lambda r: r.timestamp):
        if (
            current is not None
            and record.project == current.project
            and record.timestamp - current.last_timestamp < gap_ms
        ):
            current.prompts.append(record.display)
            current.last_timestamp = record.timestamp
            continue
        current = _PromptGroup(
            project=record.project,
            first_timestamp=record.timestamp,
            last_timestamp=record.timestamp,
            prompts=[record.display],
        )
        groups.append(current)
    return [
        HistoryEntry(
            session_id=synthetic_session_id(group.first_timestamp, group.project),
            project_path=group.project,
            prompts=tuple(group.prompts),
            first_timestamp=group.first_timestamp,
            last_timestamp=group.last_timestamp,
        )
        for group in groups
    ]


def discover_sessions(sources: SessionSources) -> list[CandidateEntry]:
    """Reconcile session indexes, loose transcripts and the prompt log.

    Earlier sources win: an ID claimed by a session index is never repeated as
    an orphan transcript, and neither is repeated as a prompt-log session.
    """

    seen: set[str] = set()
    indexed: list[CandidateEntry] = []
    orphans: list[CandidateEntry] = []
    dirs = project_dirs(sources.projects_dir)

    for project_dir in dirs:
        for entry in read_session_index(project_dir):
            if entry.session_id in seen:
                continue
            seen.add(entry.session_id)
            indexed.append(entry)

    for project_dir in dirs:
        for path in transcript_files(project_dir):
            session_id = path.name[: -len(TRANSCRIPT_SUFFIX)]
            if not session_id or session_id in seen:
                continue
            seen.add(session_id)
            orphans.append(
                OrphanEntry(
                    session_id=session_id,
                    transcript_path=path,
                    project_dir_name=project_dir.name,
                )
            )

    stats = ParseStats()
    history: list[CandidateEntry] = []
    records = read_prompt_log(sources.history_path, stats=stats)
    if stats.skipped:
        logger.debug("skipped %d malformed prompt-log lines", stats.skipped)
    for entry in group_prompts(records, gap_ms=sources.session_gap_ms):
        if entry.session_id in seen:
            continue
        seen.add(entry.session_id)
        history.append(entry)

    logger.debug(
        "discovered %d indexed, %d orphaned, %d prompt-log sessions",
        len(indexed),
        len(orphans),
        len(history),
    )
    return [*indexed, *orphans, *history]
