from __future__ import annotations

from collections.abc import Sequence

from .transcript import truncate

MAX_USER_MESSAGES = 8
MAX_MESSAGE_LENGTH = 300


def build_document(
    *,
    project_path: str = "",
    git_branch: str = "",
    summary: str = "",
    first_prompt: str = "",
    user_messages: Sequence[str] = (),
    max_messages: int = MAX_USER_MESSAGES,
) -> str:
    """Compose the text that gets embedded for a transcript-backed session.

    Empty fields are left out; the order is fixed so unchanged input always
    produces the same document. ``user_messages`` are expected to be
    truncated already (see ``extract_user_messages``).
    """

    parts: list[str] = []
    if project_path:
        parts.append(f"Project: {project_path}")
    if git_branch:
        parts.append(f"Branch: {git_branch}")
    if summary:
        parts.append(f"Summary: {summary}")
    if first_prompt:
        parts.append(f"First prompt: {first_prompt}")
    messages = list(user_messages)[:max_messages]
    if messages:
        parts.append(f"Key messages: {' | '.join(messages)}")
    return "\n".join(parts)


def build_history_document(
    *,
    project_path: str,
    prompts: Sequence[str],
    max_length: int = MAX_MESSAGE_LENGTH,
) -> str:
    parts: list[str] = []
    if project_path:
        parts.append(f"Project: {project_path}")
    if prompts and prompts[0]:
        parts.append(f"First prompt: {prompts[0]}")
    if prompts:
        parts.append(f"Prompts: {' | '.join(truncate(p, max_length) for p in prompts)}")
    return "\n".join(parts)
