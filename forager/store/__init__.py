from __future__ import annotations

from ._store import SessionStore
from .search import LAST_RESULTS_KEY
from .types import IndexStats, SearchResult, SessionRecord

__all__ = [
    "LAST_RESULTS_KEY",
    "IndexStats",
    "SearchResult",
    "SessionRecord",
    "SessionStore",
]
