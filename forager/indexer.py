from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Literal

from .config import ForagerConfig
from .ingest.discovery import SessionSources, discover_sessions
from .ingest.document import build_document, build_history_document
from .ingest.transcript import extract_metadata, extract_user_messages, project_dir_to_path
from .ingest.types import CandidateEntry, HistoryEntry, IndexEntry, OrphanEntry
from .semantic import Embedder, vector_to_blob
from .store import SessionRecord, SessionStore
from .store.utils import now_iso

ProgressKind = Literal["start", "indexed", "skip", "error"]
LABEL_CHARS = 60
EMPTY_SESSION_LABEL = "(empty session)"

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProgressEvent:
    kind: ProgressKind
    session_id: str | None = None
    label: str = ""
    message: str = ""
    current: int = 0
    total: int = 0


ProgressCallback = Callable[[ProgressEvent], None]


@dataclass
class IndexSummary:
    total: int = 0
    indexed: int = 0
    skipped: int = 0
    errors: int = 0


@dataclass(frozen=True)
class DocumentSettings:
    max_user_messages: int = 8
    max_message_length: int = 300
    first_prompt_chars: int = 500

    @classmethod
    def from_config(cls, config: ForagerConfig) -> DocumentSettings:
        return cls(
            max_user_messages=config.max_user_messages,
            max_message_length=config.max_message_length,
            first_prompt_chars=config.first_prompt_chars,
        )


def mtime_ms(path: Path) -> int | None:
    try:
        return path.stat().st_mtime_ns // 1_000_000
    except OSError:
        return None


def fingerprint(entry: CandidateEntry, sources: SessionSources) -> int:
    """Modification time (ms) of the file backing ``entry``; 0 when it cannot be read."""

    if isinstance(entry, HistoryEntry):
        return mtime_ms(sources.history_path) or 0
    observed = mtime_ms(entry.transcript_path)
    if observed is not None:
        return observed
    if isinstance(entry, IndexEntry) and entry.file_mtime:
        return entry.file_mtime
    return 0


def session_label(summary: str, first_prompt: str) -> str:
    if summary:
        return summary
    return (first_prompt or "untitled")[:LABEL_CHARS]


def prepare_session(
    entry: CandidateEntry,
    settings: DocumentSettings,
) -> SessionRecord | None:
    """Build the session row for ``entry`` without its embedding.

    Returns None for an orphan transcript with no recoverable first prompt.
    """

    match entry:
        case HistoryEntry():
            document = build_history_document(
                project_path=entry.project_path,
                prompts=entry.prompts,
                max_length=settings.max_message_length,
            )
            return SessionRecord(
                session_id=entry.session_id,
                project_path=entry.project_path,
                first_prompt=entry.first_prompt,
                document=document,
                created=entry.created,
                modified=entry.modified,
                message_count=entry.message_count,
            )
        case OrphanEntry():
            meta = extract_metadata(
                entry.transcript_path, first_prompt_chars=settings.first_prompt_chars
            )
            if meta is None or not meta.first_prompt:
                return None
            record = SessionRecord(
                session_id=entry.session_id,
                project_path=meta.project_path or project_dir_to_path(entry.project_dir_name),
                git_branch=meta.git_branch or "",
                first_prompt=meta.first_prompt,
                created=meta.created or "",
                modified=meta.modified or "",
                message_count=meta.message_count,
            )
        case IndexEntry():
            record = SessionRecord(
                session_id=entry.session_id,
                project_path=entry.project_path,
                git_branch=entry.git_branch,
                summary=entry.summary,
                first_prompt=entry.first_prompt,
                created=entry.created,
                modified=entry.modified,
                message_count=entry.message_count,
            )

    user_messages = extract_user_messages(
        entry.transcript_path,
        max_messages=settings.max_user_messages,
        max_length=settings.max_message_length,
    )
    record.document = build_document(
        project_path=record.project_path,
        git_branch=record.git_branch,
        summary=record.summary,
        first_prompt=record.first_prompt,
        user_messages=user_messages,
        max_messages=settings.max_user_messages,
    )
    return record


class Indexer:
    """Discover sessions, skip unchanged ones, embed and persist the rest.

    Entries are processed one at a time in discovery order. A failure in one
    entry is counted and reported through the progress callback; it never
    stops the run.
    """

    def __init__(
        self,
        store: SessionStore,
        embedder: Embedder,
        sources: SessionSources,
        *,
        settings: DocumentSettings | None = None,
    ) -> None:
        self.store = store
        self.embedder = embedder
        self.sources = sources
        self.settings = settings or DocumentSettings()

    def run(
        self, *, full: bool = False, on_progress: ProgressCallback | None = None
    ) -> IndexSummary:
        entries = discover_sessions(self.sources)
        summary = IndexSummary(total=len(entries))

        def emit(event: ProgressEvent) -> None:
            if on_progress is not None:
                on_progress(event)

        emit(ProgressEvent(kind="start", total=summary.total))
        for entry in entries:
            event = self._process(entry, full=full)
            if event.kind == "indexed":
                summary.indexed += 1
            elif event.kind == "skip":
                summary.skipped += 1
            else:
                summary.errors += 1
            # Errors do not advance the progress counter.
            emit(
                replace(
                    event, current=summary.indexed + summary.skipped, total=summary.total
                )
            )
        logger.info(
            "indexed %d, skipped %d, errors %d of %d sessions",
            summary.indexed,
            summary.skipped,
            summary.errors,
            summary.total,
        )
        return summary

    def _process(self, entry: CandidateEntry, *, full: bool) -> ProgressEvent:
        try:
            file_mtime = fingerprint(entry, self.sources)
            if not full and self.store.get_session_mtime(entry.session_id) == file_mtime:
                return ProgressEvent(
                    kind="skip",
                    session_id=entry.session_id,
                    label=entry.summary if isinstance(entry, IndexEntry) else "",
                )
            record = prepare_session(entry, self.settings)
            if record is None:
                return ProgressEvent(
                    kind="skip",
                    session_id=entry.session_id,
                    label=EMPTY_SESSION_LABEL,
                )
            record.embedding = vector_to_blob(self.embedder.embed(record.document))
            record.file_mtime = file_mtime
            record.indexed_at = now_iso()
            self.store.upsert_session(record)
        except Exception as exc:  # noqa: BLE001
            logger.warning("failed to index %s: %s", entry.session_id, exc)
            logger.debug("index failure for %s", entry.session_id, exc_info=exc)
            return ProgressEvent(
                kind="error",
                session_id=entry.session_id,
                message=f"Failed to index {entry.session_id}: {exc}",
            )
        return ProgressEvent(
            kind="indexed",
            session_id=record.session_id,
            label=session_label(record.summary, record.first_prompt),
        )


def index_sessions(
    store: SessionStore,
    embedder: Embedder,
    sources: SessionSources,
    *,
    full: bool = False,
    on_progress: ProgressCallback | None = None,
    settings: DocumentSettings | None = None,
) -> IndexSummary:
    return Indexer(store, embedder, sources, settings=settings).run(
        full=full, on_progress=on_progress
    )
