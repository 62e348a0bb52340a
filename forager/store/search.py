from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .. import db
from ..semantic import Embedder, blob_to_vector, cosine_similarity
from .types import SearchResult

if TYPE_CHECKING:
    from ._store import SessionStore

LAST_RESULTS_KEY = "last_search_results"
MAX_RESULT_ORDINAL = 20
DEFAULT_SEARCH_LIMIT = 5

logger = logging.getLogger(__name__)


def search(
    store: SessionStore,
    embedder: Embedder,
    query: str,
    limit: int = DEFAULT_SEARCH_LIMIT,
) -> list[SearchResult]:
    """Rank every embedded session against ``query`` and remember the ordering.

    Scores are cosine similarities. ``sorted`` is stable, so equal scores keep
    the store's newest-modified-first order. The returned IDs overwrite the
    last-results handle used by ``resolve``.
    """

    query_embedding = embedder.embed(query)
    scored: list[SearchResult] = []
    for session in store.all_sessions():
        if not session.embedding:
            continue
        score = cosine_similarity(query_embedding, blob_to_vector(session.embedding))
        scored.append(SearchResult(session=session, score=score))
    scored.sort(key=lambda item: item.score, reverse=True)
    results = scored[: max(limit, 0)]
    store.set_meta(LAST_RESULTS_KEY, db.to_json([item.session_id for item in results]))
    logger.debug("search %r ranked %d sessions, kept %d", query, len(scored), len(results))
    return results


def parse_ordinal(token: str) -> int | None:
    try:
        num = int(token, 10)
    except ValueError:
        return None
    if str(num) != token:
        return None
    if not 1 <= num <= MAX_RESULT_ORDINAL:
        return None
    return num


def last_results(store: SessionStore) -> list[str]:
    return [str(item) for item in db.from_json_list(store.get_meta(LAST_RESULTS_KEY))]


def resolve(store: SessionStore, token: str) -> str | None:
    """Map a result ordinal ("1".."20") or a session ID prefix to a session ID."""

    ordinal = parse_ordinal(token)
    if ordinal is not None:
        ids = last_results(store)
        if ordinal <= len(ids):
            return ids[ordinal - 1]
        return None
    session = store.get_session_by_prefix(token)
    return session.session_id if session else None
