from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from typing import Any, TypedDict


@dataclass
class SessionRecord:
    session_id: str
    project_path: str = ""
    git_branch: str = ""
    summary: str = ""
    first_prompt: str = ""
    document: str = ""
    embedding: bytes | None = None
    created: str = ""
    modified: str = ""
    message_count: int = 0
    file_mtime: int = 0
    indexed_at: str = ""

    @classmethod
    def from_row(cls, row: sqlite3.Row | dict[str, Any]) -> SessionRecord:
        data = dict(row)
        return cls(
            session_id=str(data["session_id"]),
            project_path=data.get("project_path") or "",
            git_branch=data.get("git_branch") or "",
            summary=data.get("summary") or "",
            first_prompt=data.get("first_prompt") or "",
            document=data.get("document") or "",
            embedding=data.get("embedding"),
            created=data.get("created") or "",
            modified=data.get("modified") or "",
            message_count=int(data.get("message_count") or 0),
            file_mtime=int(data.get("file_mtime") or 0),
            indexed_at=data.get("indexed_at") or "",
        )

    def to_row(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "project_path": self.project_path,
            "git_branch": self.git_branch,
            "summary": self.summary,
            "first_prompt": self.first_prompt,
            "document": self.document,
            "embedding": self.embedding,
            "created": self.created,
            "modified": self.modified,
            "message_count": self.message_count,
            "file_mtime": self.file_mtime,
            "indexed_at": self.indexed_at,
        }


@dataclass
class SearchResult:
    session: SessionRecord
    score: float

    @property
    def session_id(self) -> str:
        return self.session.session_id


class IndexStats(TypedDict):
    total_sessions: int
    oldest_session: str | None
    newest_session: str | None
    project_count: int
