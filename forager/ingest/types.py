from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal


def epoch_ms_to_iso(value: int) -> str:
    moment = dt.datetime.fromtimestamp(value / 1000, tz=dt.UTC)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


@dataclass(frozen=True, slots=True)
class IndexEntry:
    """A session declared by a project's ``sessions-index.json``."""

    session_id: str
    transcript_path: Path
    project_path: str = ""
    git_branch: str = ""
    summary: str = ""
    first_prompt: str = ""
    created: str = ""
    modified: str = ""
    message_count: int = 0
    file_mtime: int | None = None
    provenance: Literal["index"] = field(default="index", init=False)


@dataclass(frozen=True, slots=True)
class OrphanEntry:
    """A transcript file on disk that no session index mentions."""

    session_id: str
    transcript_path: Path
    project_dir_name: str
    provenance: Literal["orphan"] = field(default="orphan", init=False)


@dataclass(frozen=True, slots=True)
class HistoryEntry:
    """A run of prompt-log records from one project with no long pauses."""

    session_id: str
    project_path: str
    prompts: tuple[str, ...]
    first_timestamp: int
    last_timestamp: int
    provenance: Literal["history"] = field(default="history", init=False)

    @property
    def first_prompt(self) -> str:
        return self.prompts[0] if self.prompts else ""

    @property
    def created(self) -> str:
        return epoch_ms_to_iso(self.first_timestamp)

    @property
    def modified(self) -> str:
        return epoch_ms_to_iso(self.last_timestamp)

    @property
    def message_count(self) -> int:
        return len(self.prompts)


CandidateEntry = IndexEntry | OrphanEntry | HistoryEntry


@dataclass(frozen=True, slots=True)
class TranscriptMeta:
    project_path: str | None = None
    git_branch: str | None = None
    first_prompt: str | None = None
    created: str | None = None
    modified: str | None = None
    message_count: int = 0
