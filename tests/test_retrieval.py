import pytest

from hallguard.claims import extract_claims
from hallguard.embeddings import Embedder
from hallguard.errors import EmbedderMismatch, NoEmbeddingsForDocument
from hallguard.retrieval import RetrievalOrchestrator, reduce_status
from hallguard.storage import JsonFileStore
from hallguard.vector_index import VectorIndex


async def _index_with(tmp_path, texts: list[str]) -> tuple[RetrievalOrchestrator, VectorIndex]:
    embedder = Embedder(provider="hash")
    index = VectorIndex(JsonFileStore(tmp_path))
    if texts:
        vectors = await embedder.embed_many(texts)
        index.save(
            "doc_a",
            [{"text": t, "vector": v, "embedder": embedder.signature} for t, v in zip(texts, vectors)],
        )
    return RetrievalOrchestrator(embedder, index), index


def test_reduce_status_contradiction_dominates() -> None:
    assert reduce_status([]) == "unknown"
    assert reduce_status(["unknown", "unknown"]) == "unknown"
    assert reduce_status(["unknown", "supported"]) == "supported"
    assert reduce_status(["supported", "contradiction"]) == "unknown"


def test_reduce_status_adding_support_never_demotes() -> None:
    base = ["unknown", "unknown"]
    assert reduce_status(base + ["supported"]) == "supported"
    assert reduce_status(base + ["supported", "supported"]) == "supported"


@pytest.mark.asyncio
async def test_every_claim_fails_without_embeddings(tmp_path) -> None:
    retriever, index = await _index_with(tmp_path, [])
    assert index.exists("doc_a") is False
    claims = extract_claims("Revenue grew 20% in 2022.")
    assert claims
    for claim in claims:
        try:
            await retriever.retrieve(claim.text, "doc_a")
            raise AssertionError("Expected NoEmbeddingsForDocument.")
        except NoEmbeddingsForDocument as exc:
            assert exc.doc_id == "doc_a"


@pytest.mark.asyncio
async def test_blank_claim_is_unknown_without_lookup(tmp_path) -> None:
    retriever, _ = await _index_with(tmp_path, [])
    result = await retriever.retrieve("   ", "doc_a")
    assert result.status == "unknown"
    assert result.items == []


@pytest.mark.asyncio
async def test_matching_chunk_supports_claim(tmp_path) -> None:
    retriever, _ = await _index_with(
        tmp_path,
        [
            "The company reported revenue growth of 20% in 2022.",
            "Unrelated notes about gardening tools and soil.",
        ],
    )
    result = await retriever.retrieve("Revenue grew 20% in 2022", "doc_a", k=2)
    assert result.status == "supported"
    assert len(result.items) == 2
    supported = [item for item in result.items if item.label == "supported"]
    assert [item.idx for item in supported] == [0]
    assert all(-1.0 <= item.score <= 1.0 for item in result.items)


@pytest.mark.asyncio
async def test_contradicting_chunk_keeps_claim_unknown(tmp_path) -> None:
    retriever, _ = await _index_with(tmp_path, ["Revenue grew 20% in 2023."])
    result = await retriever.retrieve("Revenue grew 20% in 2022.", "doc_a", k=5)
    assert result.status == "unknown"
    assert [item.label for item in result.items] == ["contradiction"]


@pytest.mark.asyncio
async def test_repeated_retrieval_is_identical(tmp_path) -> None:
    retriever, _ = await _index_with(
        tmp_path,
        [
            "The company reported revenue growth of 20% in 2022.",
            "Revenue grew 20% in 2023 according to a later filing.",
            "Unrelated notes about gardening tools and soil.",
        ],
    )
    first = await retriever.retrieve("Revenue grew 20% in 2022", "doc_a", k=3)
    second = await retriever.retrieve("Revenue grew 20% in 2022", "doc_a", k=3)
    assert first == second
    assert [(i.idx, i.score, i.overlap, i.label) for i in first.items] == [
        (i.idx, i.score, i.overlap, i.label) for i in second.items
    ]


@pytest.mark.asyncio
async def test_vectors_from_another_embedder_are_rejected(tmp_path) -> None:
    embedder = Embedder(provider="hash")
    index = VectorIndex(JsonFileStore(tmp_path))
    index.save(
        "doc_a",
        [
            {
                "text": "Revenue grew 20% in 2022.",
                "vector": [0.6, 0.8],
                "embedder": "sentence_transformer:all-MiniLM-L6-v2",
            }
        ],
    )
    retriever = RetrievalOrchestrator(embedder, index)
    try:
        await retriever.retrieve("Revenue grew 20% in 2022", "doc_a")
        raise AssertionError("Expected EmbedderMismatch.")
    except EmbedderMismatch as exc:
        assert exc.stored == "sentence_transformer:all-MiniLM-L6-v2"
        assert exc.active == embedder.signature


@pytest.mark.asyncio
async def test_untagged_vectors_are_still_ranked(tmp_path) -> None:
    embedder = Embedder(provider="hash")
    index = VectorIndex(JsonFileStore(tmp_path))
    vector = await embedder.embed_one("Revenue grew 20% in 2022.")
    index.save("doc_a", [{"text": "Revenue grew 20% in 2022.", "vector": vector}])
    result = await RetrievalOrchestrator(embedder, index).retrieve("Revenue grew 20% in 2022", "doc_a")
    assert result.status == "supported"
