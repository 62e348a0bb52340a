from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from typing import Protocol

import numpy as np

DEFAULT_EMBEDDING_MODEL = "sentence-transformers/all-MiniLM-L6-v2"

logger = logging.getLogger(__name__)


class EmbeddingClient(Protocol):
    model: str

    def embed(self, texts: Iterable[str]) -> list[list[float]]: ...


class _FastEmbedClient:
    def __init__(self, model: str) -> None:
        try:
            from fastembed import TextEmbedding
        except Exception as exc:  # pragma: no cover
            raise RuntimeError("fastembed is required for semantic search") from exc
        self.model = model
        self._embedder = TextEmbedding(model_name=model)

    def embed(self, texts: Iterable[str]) -> list[list[float]]:
        embeddings = self._embedder.embed(list(texts))
        return [list(vec) for vec in embeddings]


class Embedder:
    """Turns text into unit-length float32 vectors.

    The underlying client is created by ``open()`` and reused until ``close()``;
    callers own the lifecycle and pass the embedder to whatever needs it.
    """

    def __init__(
        self,
        model: str = DEFAULT_EMBEDDING_MODEL,
        *,
        client: EmbeddingClient | None = None,
    ) -> None:
        self.model = model
        self._client = client
        self._owns_client = client is None
        self.dimension: int | None = None

    @property
    def is_open(self) -> bool:
        return self._client is not None

    def open(self) -> Embedder:
        if self._client is None:
            logger.debug("loading embedding model %s", self.model)
            try:
                self._client = _FastEmbedClient(model=self.model)
            except RuntimeError:
                raise
            except Exception as exc:
                raise RuntimeError(f"failed to load embedding model {self.model}") from exc
            self._owns_client = True
        return self

    def close(self) -> None:
        if self._owns_client:
            self._client = None

    def __enter__(self) -> Embedder:
        return self.open()

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def embed(self, text: str) -> np.ndarray:
        if self._client is None:
            raise RuntimeError("embedder is not open")
        vectors = self._client.embed([text])
        if not vectors:
            raise RuntimeError(f"embedding model {self.model} returned no vector")
        vector = normalize(vectors[0])
        if self.dimension is None:
            self.dimension = int(vector.shape[0])
        elif vector.shape[0] != self.dimension:
            raise RuntimeError(
                f"embedding dimension changed from {self.dimension} to {vector.shape[0]}"
            )
        return vector


def normalize(vector: Iterable[float] | np.ndarray) -> np.ndarray:
    arr = np.asarray(vector, dtype=np.float32)
    norm = float(np.linalg.norm(arr))
    if norm == 0.0:
        return arr
    return (arr / norm).astype(np.float32)


def vector_to_blob(vector: Iterable[float] | np.ndarray) -> bytes:
    return np.asarray(vector, dtype="<f4").tobytes()


def blob_to_vector(blob: bytes) -> np.ndarray:
    # Trailing bytes that do not make up a whole float are dropped.
    usable = len(blob) - (len(blob) % 4)
    return np.frombuffer(blob[:usable], dtype="<f4").astype(np.float32)


def cosine_similarity(a: Iterable[float] | np.ndarray, b: Iterable[float] | np.ndarray) -> float:
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    length = min(va.shape[0], vb.shape[0])
    if va.shape[0] != vb.shape[0]:
        logger.debug("cosine over mismatched dimensions %d and %d", va.shape[0], vb.shape[0])
    va = va[:length]
    vb = vb[:length]
    denom = math.sqrt(float(np.dot(va, va)) * float(np.dot(vb, vb)))
    if denom == 0.0:
        return 0.0
    return float(np.dot(va, vb) / denom)
