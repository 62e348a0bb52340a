from __future__ import annotations

from pathlib import Path

from .. import db
from ..semantic import Embedder
from . import search as store_search
from . import utils as store_utils
from .types import IndexStats, SearchResult, SessionRecord


class SessionStore:
    """One row per canonical session plus a small key/value ``meta`` table.

    Every write commits on its own, so an interrupted indexing run keeps all
    sessions persisted before the interruption.
    """

    def __init__(
        self,
        db_path: Path | str = db.DEFAULT_DB_PATH,
        *,
        check_same_thread: bool = True,
    ):
        self.db_path = Path(db_path).expanduser()
        self.conn = db.connect(self.db_path, check_same_thread=check_same_thread)
        db.initialize_schema(self.conn)

    def close(self) -> None:
        self.conn.close()

    def __enter__(self) -> SessionStore:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def upsert_session(self, session: SessionRecord) -> None:
        self.conn.execute(
            """
            INSERT INTO sessions(
                session_id, project_path, git_branch, summary, first_prompt, document,
                embedding, created, modified, message_count, file_mtime, indexed_at
            )
            VALUES (
                :session_id, :project_path, :git_branch, :summary, :first_prompt, :document,
                :embedding, :created, :modified, :message_count, :file_mtime, :indexed_at
            )
            ON CONFLICT(session_id) DO UPDATE SET
                project_path = excluded.project_path,
                git_branch = excluded.git_branch,
                summary = excluded.summary,
                first_prompt = excluded.first_prompt,
                document = excluded.document,
                embedding = excluded.embedding,
                created = excluded.created,
                modified = excluded.modified,
                message_count = excluded.message_count,
                file_mtime = excluded.file_mtime,
                indexed_at = excluded.indexed_at
            """,
            session.to_row(),
        )
        self.conn.commit()

    def get_session(self, session_id: str) -> SessionRecord | None:
        row = self.conn.execute(
            "SELECT * FROM sessions WHERE session_id = ?", (session_id,)
        ).fetchone()
        return SessionRecord.from_row(row) if row else None

    def get_session_by_prefix(self, prefix: str) -> SessionRecord | None:
        row = self.conn.execute(
            """
            SELECT * FROM sessions
            WHERE session_id LIKE ? ESCAPE '\\'
            ORDER BY modified DESC, session_id
            LIMIT 1
            """,
            (store_utils.escape_like(prefix) + "%",),
        ).fetchone()
        return SessionRecord.from_row(row) if row else None

    def get_session_mtime(self, session_id: str) -> int | None:
        row = self.conn.execute(
            "SELECT file_mtime FROM sessions WHERE session_id = ?", (session_id,)
        ).fetchone()
        if row is None or row["file_mtime"] is None:
            return None
        return int(row["file_mtime"])

    def all_sessions(self) -> list[SessionRecord]:
        rows = self.conn.execute("SELECT * FROM sessions ORDER BY modified DESC").fetchall()
        return [SessionRecord.from_row(row) for row in rows]

    def count_sessions(self) -> int:
        row = self.conn.execute("SELECT COUNT(*) AS count FROM sessions").fetchone()
        return int(row["count"]) if row else 0

    def stats(self) -> IndexStats:
        row = self.conn.execute(
            """
            SELECT
                COUNT(*) AS total,
                MIN(NULLIF(created, '')) AS oldest,
                MAX(NULLIF(modified, '')) AS newest,
                COUNT(DISTINCT NULLIF(project_path, '')) AS projects
            FROM sessions
            """
        ).fetchone()
        return {
            "total_sessions": int(row["total"] or 0),
            "oldest_session": row["oldest"],
            "newest_session": row["newest"],
            "project_count": int(row["projects"] or 0),
        }

    def set_meta(self, key: str, value: str) -> None:
        self.conn.execute(
            """
            INSERT INTO meta(key, value) VALUES (?, ?)
            ON CONFLICT(key) DO UPDATE SET value = excluded.value
            """,
            (key, value),
        )
        self.conn.commit()

    def get_meta(self, key: str) -> str | None:
        row = self.conn.execute("SELECT value FROM meta WHERE key = ?", (key,)).fetchone()
        return row["value"] if row else None

    def search(
        self,
        embedder: Embedder,
        query: str,
        limit: int = store_search.DEFAULT_SEARCH_LIMIT,
    ) -> list[SearchResult]:
        return store_search.search(self, embedder, query, limit=limit)

    def last_search_results(self) -> list[str]:
        return store_search.last_results(self)

    def resolve_session_id(self, token: str) -> str | None:
        return store_search.resolve(self, token)
