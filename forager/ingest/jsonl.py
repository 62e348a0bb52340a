from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class ParseStats:
    parsed: int = 0
    skipped: int = 0


def iter_jsonl(path: Path, *, stats: ParseStats | None = None) -> Iterator[dict[str, Any]]:
    """Yield each JSON object line of ``path``.

    Blank lines are ignored; lines that are not JSON objects are counted in
    ``stats.skipped`` and dropped. A missing or unreadable file yields nothing.
    """

    try:
        handle = path.open(encoding="utf-8", errors="replace")
    except OSError as exc:
        logger.debug("cannot open %s: %s", path, exc)
        return
    with handle:
        try:
            for line in handle:
                if not line.strip():
                    continue
                try:
                    record = json.loads(line)
                except json.JSONDecodeError:
                    if stats is not None:
                        stats.skipped += 1
                    continue
                if not isinstance(record, dict):
                    if stats is not None:
                        stats.skipped += 1
                    continue
                if stats is not None:
                    stats.parsed += 1
                yield record
        except OSError as exc:
            logger.debug("read of %s stopped early: %s", path, exc)
