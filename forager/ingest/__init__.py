from __future__ import annotations

from .discovery import SessionSources, discover_sessions
from .types import CandidateEntry, HistoryEntry, IndexEntry, OrphanEntry

__all__ = [
    "CandidateEntry",
    "HistoryEntry",
    "IndexEntry",
    "OrphanEntry",
    "SessionSources",
    "discover_sessions",
]
