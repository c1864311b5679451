import asyncio

import numpy as np
import pytest

from hallguard.embeddings import Embedder, HashEmbedder, resolve_provider
from hallguard.errors import EmbedderUnavailable


def test_hash_embedder_is_deterministic() -> None:
    embedder = HashEmbedder(dim=128)
    a = embedder.encode(["alpha beta gamma"], convert_to_numpy=True)
    b = embedder.encode(["alpha beta gamma"], convert_to_numpy=True)
    assert a.shape == (1, 128)
    assert np.array_equal(a, b)


def test_offline_mode_forces_hash_provider(monkeypatch) -> None:
    monkeypatch.setenv("OFFLINE_MODE", "1")
    assert resolve_provider("sentence_transformer") == "hash"
    monkeypatch.setenv("OFFLINE_MODE", "0")
    assert resolve_provider("Hash ") == "hash"


@pytest.mark.asyncio
async def test_load_reports_progress_once() -> None:
    events: list[dict] = []
    embedder = Embedder(provider="hash")
    assert embedder.loaded is False
    await embedder.load(events.append)
    await embedder.load(events.append)
    assert [e["status"] for e in events] == ["initiate", "done"]
    assert embedder.loaded is True
    embedder.close()
    assert embedder.loaded is False


@pytest.mark.asyncio
async def test_embed_one_is_unit_float32() -> None:
    embedder = Embedder(provider="hash")
    vec = await embedder.embed_one("carbon accounting baseline")
    assert vec.dtype == np.float32
    assert abs(float(np.linalg.norm(vec)) - 1.0) < 1e-5


@pytest.mark.asyncio
async def test_embed_many_keeps_order_and_reports_steps() -> None:
    embedder = Embedder(provider="hash")
    texts = [f"text number {i}" for i in range(7)]
    steps: list[tuple[int, int]] = []
    vectors = await embedder.embed_many(texts, lambda i, n: steps.append((i, n)))
    assert len(vectors) == 7
    assert steps == [(i, 7) for i in range(1, 8)]
    for text, vec in zip(texts, vectors):
        assert np.allclose(vec, await embedder.embed_one(text))


@pytest.mark.asyncio
async def test_concurrent_loads_build_backend_once(monkeypatch) -> None:
    embedder = Embedder(provider="hash")
    builds: list[int] = []
    original = embedder._build_backend

    def counting_build():
        builds.append(1)
        return original()

    monkeypatch.setattr(embedder, "_build_backend", counting_build)
    await asyncio.gather(embedder.load(), embedder.load(), embedder.load())
    assert len(builds) == 1


@pytest.mark.asyncio
async def test_unknown_provider_is_unavailable(monkeypatch) -> None:
    monkeypatch.delenv("OFFLINE_MODE", raising=False)
    embedder = Embedder(provider="does_not_exist")
    try:
        await embedder.load()
        raise AssertionError("Expected EmbedderUnavailable.")
    except EmbedderUnavailable as exc:
        assert "does_not_exist" in str(exc)


@pytest.mark.asyncio
async def test_backend_load_failure_is_wrapped(monkeypatch) -> None:
    monkeypatch.delenv("OFFLINE_MODE", raising=False)
    embedder = Embedder(provider="hash")

    def broken():
        raise OSError("model download failed")

    monkeypatch.setattr(embedder, "_build_backend", broken)
    try:
        await embedder.load()
        raise AssertionError("Expected EmbedderUnavailable.")
    except EmbedderUnavailable as exc:
        assert "model download failed" in str(exc)
    assert embedder.loaded is False
