from __future__ import annotations

import hashlib
import json
import os
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import pytest

from forager.config import CONFIG_ENV_OVERRIDES
from forager.ingest.discovery import SessionSources
from forager.semantic import Embedder
from forager.store import SessionStore

FAKE_DIM = 16


class FakeEmbeddingClient:
    """Bag-of-words hashing client: same text, same vector; no model download."""

    model = "fake-embedding"

    def __init__(self, overrides: dict[str, list[float]] | None = None) -> None:
        self.overrides = dict(overrides or {})
        self.calls: list[str] = []

    def embed(self, texts: Iterable[str]) -> list[list[float]]:
        vectors = []
        for text in texts:
            self.calls.append(text)
            if text in self.overrides:
                vectors.append(list(self.overrides[text]))
                continue
            vector = [0.0] * FAKE_DIM
            for token in text.lower().split():
                digest = hashlib.sha256(token.encode("utf-8")).digest()
                vector[digest[0] % FAKE_DIM] += 1.0
            vectors.append(vector)
        return vectors


class ClaudeHome:
    def __init__(self, root: Path) -> None:
        self.root = root
        self.projects_dir = root / "projects"
        self.history_path = root / "history.jsonl"
        self.projects_dir.mkdir(parents=True, exist_ok=True)

    @property
    def sources(self) -> SessionSources:
        return SessionSources(projects_dir=self.projects_dir, history_path=self.history_path)

    def project(self, name: str) -> Path:
        path = self.projects_dir / name
        path.mkdir(parents=True, exist_ok=True)
        return path

    def write_transcript(self, project: str, session_id: str, records: list[Any]) -> Path:
        path = self.project(project) / f"{session_id}.jsonl"
        lines = [r if isinstance(r, str) else json.dumps(r) for r in records]
        path.write_text("\n".join(lines) + "\n")
        return path

    def write_index(self, project: str, entries: list[dict[str, Any]]) -> Path:
        path = self.project(project) / "sessions-index.json"
        path.write_text(json.dumps({"version": 1, "entries": entries}))
        return path

    def write_history(self, records: list[Any]) -> Path:
        lines = [r if isinstance(r, str) else json.dumps(r) for r in records]
        self.history_path.write_text("\n".join(lines) + "\n")
        return self.history_path

    def set_mtime(self, path: Path, epoch_ms: int) -> None:
        os.utime(path, ns=(epoch_ms * 1_000_000, epoch_ms * 1_000_000))


def user_record(
    content: Any,
    *,
    session_id: str = "s",
    cwd: str = "/work/app",
    branch: str = "main",
    timestamp: str = "2025-01-01T10:00:00.000Z",
) -> dict[str, Any]:
    return {
        "type": "user",
        "sessionId": session_id,
        "cwd": cwd,
        "gitBranch": branch,
        "timestamp": timestamp,
        "message": {"role": "user", "content": content},
    }


def assistant_record(text: str, *, timestamp: str = "2025-01-01T10:01:00.000Z") -> dict[str, Any]:
    return {
        "type": "assistant",
        "timestamp": timestamp,
        "message": {"role": "assistant", "content": [{"type": "text", "text": text}]},
    }


@pytest.fixture(autouse=True)
def _isolate_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for env_var in CONFIG_ENV_OVERRIDES.values():
        monkeypatch.delenv(env_var, raising=False)
    monkeypatch.setenv("FORAGER_CONFIG", str(tmp_path / "forager-config.json"))


@pytest.fixture
def claude_home(tmp_path: Path) -> ClaudeHome:
    return ClaudeHome(tmp_path / "claude")


@pytest.fixture
def fake_client() -> FakeEmbeddingClient:
    return FakeEmbeddingClient()


@pytest.fixture
def embedder(fake_client: FakeEmbeddingClient) -> Embedder:
    return Embedder(fake_client.model, client=fake_client)


@pytest.fixture
def store(tmp_path: Path):
    session_store = SessionStore(tmp_path / "sessions.sqlite")
    yield session_store
    session_store.close()


@pytest.fixture
def make_user_record():
    return user_record


@pytest.fixture
def make_assistant_record():
    return assistant_record
