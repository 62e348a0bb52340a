from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from .jsonl import ParseStats, iter_jsonl
from .types import TranscriptMeta

ELLIPSIS = "..."


def truncate(text: str, limit: int) -> str:
    if len(text) > limit:
        return text[:limit] + ELLIPSIS
    return text


def message_content(record: dict[str, Any]) -> str | None:
    """Return a user/assistant record's content as text, or None when empty.

    Structured content (a list of blocks) is kept as compact JSON so the
    result is stable across runs.
    """

    message = record.get("message")
    if not isinstance(message, dict):
        return None
    content = message.get("content")
    if not content:
        return None
    if isinstance(content, str):
        return content
    return json.dumps(content, ensure_ascii=False, separators=(",", ":"))


def _str_or_none(value: Any) -> str | None:
    if isinstance(value, str) and value:
        return value
    return None


def extract_metadata(
    path: Path,
    *,
    first_prompt_chars: int = 500,
    stats: ParseStats | None = None,
) -> TranscriptMeta | None:
    if not path.is_file():
        return None
    project_path: str | None = None
    git_branch: str | None = None
    first_prompt: str | None = None
    created: str | None = None
    modified: str | None = None
    message_count = 0

    for record in iter_jsonl(path, stats=stats):
        record_type = record.get("type")
        if record_type == "user":
            content = message_content(record)
            if content is None:
                continue
            message_count += 1
            timestamp = _str_or_none(record.get("timestamp"))
            project_path = project_path or _str_or_none(record.get("cwd"))
            git_branch = git_branch or _str_or_none(record.get("gitBranch"))
            created = created or timestamp
            modified = timestamp or modified
            if first_prompt is None:
                first_prompt = content[:first_prompt_chars]
        elif record_type == "assistant":
            message_count += 1
            timestamp = _str_or_none(record.get("timestamp"))
            if timestamp:
                modified = timestamp

    return TranscriptMeta(
        project_path=project_path,
        git_branch=git_branch,
        first_prompt=first_prompt,
        created=created,
        modified=modified,
        message_count=message_count,
    )


def extract_user_messages(
    path: Path,
    *,
    max_messages: int = 8,
    max_length: int = 300,
    stats: ParseStats | None = None,
) -> list[str]:
    messages: list[str] = []
    if max_messages <= 0:
        return messages
    for record in iter_jsonl(path, stats=stats):
        if record.get("type") != "user":
            continue
        content = message_content(record)
        if content is None:
            continue
        messages.append(truncate(content, max_length))
        if len(messages) >= max_messages:
            break
    return messages


def project_dir_to_path(dir_name: str) -> str:
    """Best-effort decode of a project directory name (``-home-me-app`` -> ``/home/me/app``)."""

    if dir_name.startswith("-"):
        dir_name = "/" + dir_name[1:]
    return dir_name.replace("-", "/")
