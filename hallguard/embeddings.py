"""Embedding backends and the owned embedder resource."""

from __future__ import annotations

import asyncio
import hashlib
import logging
import os
import re
from collections.abc import Callable, Sequence

import numpy as np

from hallguard.config import (
    EMBED_MODEL_NAME,
    EMBED_PROVIDER,
    EMBED_YIELD_EVERY,
    HASH_EMBED_DIM,
    env_flag,
)
from hallguard.errors import EmbedderUnavailable

log = logging.getLogger(__name__)

ProgressCallback = Callable[[dict], None]
StepCallback = Callable[[int, int], None]

_TOKEN_RE = re.compile(r"[a-z0-9]+")


def _normalize(matrix: np.ndarray) -> np.ndarray:
    norms = np.linalg.norm(matrix, axis=1, keepdims=True)
    norms[norms == 0] = 1.0
    return matrix / norms


class HashEmbedder:
    """Deterministic offline embedder that requires no network or model downloads."""

    def __init__(self, dim: int = HASH_EMBED_DIM) -> None:
        self._dim = max(64, dim)

    @property
    def dim(self) -> int:
        return self._dim

    def encode(
        self,
        texts: list[str],
        convert_to_numpy: bool = True,
        normalize_embeddings: bool = False,
    ) -> np.ndarray:
        del convert_to_numpy
        matrix = np.zeros((len(texts), self._dim), dtype=np.float32)
        for row, text in enumerate(texts):
            for token in _TOKEN_RE.findall(text.lower()):
                digest = hashlib.sha256(token.encode("utf-8")).digest()
                idx = int.from_bytes(digest[:2], "big") % self._dim
                sign = 1.0 if digest[2] % 2 == 0 else -1.0
                matrix[row, idx] += sign
        if normalize_embeddings:
            matrix = _normalize(matrix)
        return matrix


def resolve_provider(provider: str | None = None) -> str:
    if env_flag("OFFLINE_MODE"):
        return "hash"
    chosen = provider or os.getenv("EMBED_PROVIDER", EMBED_PROVIDER)
    return chosen.strip().lower()


class Embedder:
    """Explicitly loaded text-to-vector resource.

    Construct once, ``await load()``, reuse for every embedding call, then
    ``close()``. Vectors are float32 and unit-normalized.
    """

    def __init__(self, provider: str | None = None, model_name: str | None = None) -> None:
        self.provider = resolve_provider(provider)
        self.model_name = model_name or os.getenv("EMBED_MODEL_NAME", EMBED_MODEL_NAME)
        self._backend = None
        self._lock = asyncio.Lock()

    @property
    def loaded(self) -> bool:
        return self._backend is not None

    @property
    def signature(self) -> str:
        """Identifies the vector space; vectors from different signatures are not comparable."""
        if self.provider == "hash":
            return f"hash:{HASH_EMBED_DIM}"
        return f"{self.provider}:{self.model_name}"

    def _build_backend(self):
        if self.provider == "hash":
            return HashEmbedder()
        if self.provider == "sentence_transformer":
            from sentence_transformers import SentenceTransformer

            return SentenceTransformer(self.model_name)
        raise EmbedderUnavailable(f"Unknown EMBED_PROVIDER={self.provider!r}")

    async def load(self, on_progress: ProgressCallback | None = None) -> Embedder:
        async with self._lock:
            if self._backend is not None:
                return self
            if on_progress:
                on_progress({"status": "initiate", "model": self.model_name})
            try:
                self._backend = await asyncio.to_thread(self._build_backend)
            except EmbedderUnavailable:
                raise
            except Exception as exc:
                log.error("Embedding backend %s failed to load: %s", self.provider, exc)
                raise EmbedderUnavailable(
                    f"Embedding backend {self.provider!r} failed to load: {exc}"
                ) from exc
            log.info("Embedder ready (provider=%s, model=%s)", self.provider, self.model_name)
            if on_progress:
                on_progress({"status": "done", "model": self.model_name})
        return self

    def _encode(self, texts: list[str]) -> np.ndarray:
        matrix = self._backend.encode(
            texts,
            convert_to_numpy=True,
            normalize_embeddings=True,
        )
        return np.asarray(matrix, dtype=np.float32)

    async def embed_one(self, text: str) -> np.ndarray:
        if self._backend is None:
            await self.load()
        try:
            matrix = await asyncio.to_thread(self._encode, [text])
        except Exception as exc:
            raise EmbedderUnavailable(f"Embedding call failed: {exc}") from exc
        return matrix[0]

    async def embed_many(
        self,
        texts: Sequence[str],
        on_step: StepCallback | None = None,
    ) -> list[np.ndarray]:
        out: list[np.ndarray] = []
        total = len(texts)
        for i, text in enumerate(texts):
            out.append(await self.embed_one(text))
            if on_step:
                on_step(i + 1, total)
            if EMBED_YIELD_EVERY > 0 and (i + 1) % EMBED_YIELD_EVERY == 0:
                await asyncio.sleep(0)
        return out

    def close(self) -> None:
        self._backend = None
