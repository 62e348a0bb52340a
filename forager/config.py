from __future__ import annotations

import json
import os
import warnings
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

DEFAULT_CONFIG_PATH = Path("~/.config/forager/config.json").expanduser()
DEFAULT_CLAUDE_DIR = "~/.claude"

CONFIG_ENV_OVERRIDES = {
    "claude_dir": "FORAGER_CLAUDE_DIR",
    "db_path": "FORAGER_DB_PATH",
    "embedding_model": "FORAGER_EMBEDDING_MODEL",
    "max_user_messages": "FORAGER_MAX_USER_MESSAGES",
    "max_message_length": "FORAGER_MAX_MESSAGE_LENGTH",
    "first_prompt_chars": "FORAGER_FIRST_PROMPT_CHARS",
    "session_gap_minutes": "FORAGER_SESSION_GAP_MINUTES",
    "search_limit": "FORAGER_SEARCH_LIMIT",
    "resume_command": "FORAGER_RESUME_COMMAND",
    "schedule_hour": "FORAGER_SCHEDULE_HOUR",
    "schedule_log": "FORAGER_SCHEDULE_LOG",
}

_INT_KEYS = {
    "max_user_messages",
    "max_message_length",
    "first_prompt_chars",
    "session_gap_minutes",
    "search_limit",
}


def get_config_path(path: Path | None = None) -> Path:
    candidate = path or Path(os.getenv("FORAGER_CONFIG", DEFAULT_CONFIG_PATH))
    return candidate.expanduser()


def read_config_file(path: Path | None = None) -> dict[str, Any]:
    config_path = get_config_path(path)
    if not config_path.exists():
        return {}
    raw = config_path.read_text()
    if not raw.strip():
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError("invalid config json") from exc
    if not isinstance(data, dict):
        raise ValueError("config must be an object")
    return data


def get_env_overrides() -> dict[str, str]:
    overrides: dict[str, str] = {}
    for key, env_var in CONFIG_ENV_OVERRIDES.items():
        value = os.getenv(env_var)
        if value is not None:
            overrides[key] = value
    return overrides


@dataclass
class ForagerConfig:
    claude_dir: str = DEFAULT_CLAUDE_DIR
    # None means <claude_dir>/session-memory.db
    db_path: str | None = None
    embedding_model: str = "sentence-transformers/all-MiniLM-L6-v2"
    max_user_messages: int = 8
    max_message_length: int = 300
    first_prompt_chars: int = 500
    session_gap_minutes: int = 30
    search_limit: int = 5
    resume_command: str = "claude"
    schedule_hour: int = 3
    schedule_log: str = "/tmp/session-forager.log"

    @property
    def claude_path(self) -> Path:
        return Path(self.claude_dir).expanduser()

    @property
    def projects_dir(self) -> Path:
        return self.claude_path / "projects"

    @property
    def history_path(self) -> Path:
        return self.claude_path / "history.jsonl"

    @property
    def database_path(self) -> Path:
        if self.db_path:
            return Path(self.db_path).expanduser()
        return self.claude_path / "session-memory.db"

    @property
    def session_gap_ms(self) -> int:
        return self.session_gap_minutes * 60 * 1000


_FIELD_NAMES = {f.name for f in fields(ForagerConfig)}


def _parse_int(value: object, default: int, *, key: str) -> int:
    if value is None:
        return default
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        warnings.warn(f"Invalid int for {key}: {value!r}", RuntimeWarning, stacklevel=2)
        return default


def _parse_positive_int(value: object, default: int, *, key: str) -> int:
    parsed = _parse_int(value, default, key=key)
    if parsed <= 0:
        warnings.warn(f"Expected positive int for {key}: {value!r}", RuntimeWarning, stacklevel=2)
        return default
    return parsed


def load_config(path: Path | None = None) -> ForagerConfig:
    cfg = ForagerConfig()
    config_path = get_config_path(path)
    if config_path.exists():
        try:
            data = json.loads(config_path.read_text())
        except json.JSONDecodeError:
            data = {}
        if isinstance(data, dict):
            cfg = _apply_dict(cfg, data)
    cfg = _apply_env(cfg)
    return cfg


def _apply_dict(cfg: ForagerConfig, data: dict[str, Any]) -> ForagerConfig:
    for key, value in data.items():
        if key not in _FIELD_NAMES:
            continue
        if key == "schedule_hour":
            setattr(cfg, key, _parse_int(value, getattr(cfg, key), key=key))
            continue
        if key in _INT_KEYS:
            setattr(cfg, key, _parse_positive_int(value, getattr(cfg, key), key=key))
            continue
        if value is None and key != "db_path":
            continue
        setattr(cfg, key, str(value) if value is not None else None)
    if not 0 <= cfg.schedule_hour <= 23:
        warnings.warn(
            f"Invalid schedule_hour: {cfg.schedule_hour!r}", RuntimeWarning, stacklevel=2
        )
        cfg.schedule_hour = ForagerConfig.schedule_hour
    return cfg


def _apply_env(cfg: ForagerConfig) -> ForagerConfig:
    overrides = get_env_overrides()
    if not overrides:
        return cfg
    return _apply_dict(cfg, dict(overrides))
