import asyncio

import pytest

from hallguard.models import EvidenceItem, RetrievalResult
from hallguard.session import ReviewSession

ANSWER = "Revenue grew 20% in 2022."


def _supported() -> RetrievalResult:
    item = EvidenceItem(idx=0, text="Revenue grew 20% in 2022.", score=0.9, overlap=1.0, label="supported")
    return RetrievalResult(status="supported", items=[item])


class FixedRetriever:
    def __init__(self, result: RetrievalResult) -> None:
        self.result = result
        self.calls: list[tuple[str, str, int]] = []

    async def retrieve(self, claim_text: str, doc_id: str, k: int = 5) -> RetrievalResult:
        self.calls.append((claim_text, doc_id, k))
        return self.result


class GatedRetriever:
    """First call blocks until ``release`` is set; later calls return at once."""

    def __init__(self) -> None:
        self.release = asyncio.Event()
        self.calls = 0

    async def retrieve(self, claim_text: str, doc_id: str, k: int = 5) -> RetrievalResult:
        self.calls += 1
        if self.calls == 1:
            await self.release.wait()
            return RetrievalResult(status="unknown", items=[])
        return _supported()


def test_extract_sets_every_claim_pending() -> None:
    session = ReviewSession(FixedRetriever(_supported()))
    claims = session.extract(ANSWER)
    assert len(claims) == 2
    assert set(session.statuses.values()) == {"pending"}
    assert session.counts() == {"total": 2, "supported": 0, "unknown": 0, "pending": 2}


def test_get_claim_unknown_id() -> None:
    session = ReviewSession(FixedRetriever(_supported()))
    session.extract(ANSWER)
    try:
        session.get_claim("claim_missing")
        raise AssertionError("Expected KeyError.")
    except KeyError:
        pass


@pytest.mark.asyncio
async def test_review_all_resolves_statuses() -> None:
    retriever = FixedRetriever(_supported())
    session = ReviewSession(retriever)
    session.extract(ANSWER)
    results = await session.review_all("doc_a", 3)
    assert len(results) == 2
    assert [call[1:] for call in retriever.calls] == [("doc_a", 3), ("doc_a", 3)]
    assert session.counts()["supported"] == 2
    assert all(items for items in session.evidence_by_claim.values())


@pytest.mark.asyncio
async def test_superseded_evidence_response_is_discarded() -> None:
    retriever = GatedRetriever()
    session = ReviewSession(retriever)
    claim = session.extract(ANSWER)[0]

    async def second_request():
        result = await session.view_evidence(claim.id, "doc_a")
        retriever.release.set()
        return result

    first, second = await asyncio.gather(session.view_evidence(claim.id, "doc_a"), second_request())
    assert first is None
    assert second is not None
    assert session.statuses[claim.id] == "supported"


@pytest.mark.asyncio
async def test_evidence_from_previous_extraction_is_discarded() -> None:
    retriever = GatedRetriever()
    session = ReviewSession(retriever)
    claim = session.extract(ANSWER)[0]

    pending = asyncio.create_task(session.view_evidence(claim.id, "doc_a"))
    await asyncio.sleep(0)
    session.extract("Acme Corp hired 300 people in 2021.")
    retriever.release.set()
    assert await pending is None
    assert set(session.statuses.values()) == {"pending"}
    assert claim.id not in session.evidence_by_claim


@pytest.mark.asyncio
async def test_new_evidence_invalidates_draft() -> None:
    session = ReviewSession(FixedRetriever(_supported()))
    claims = session.extract(ANSWER)
    fix = await session.generate_draft(use_llm=False)
    assert fix is not None and fix.used == "template"
    assert "[TODO unverified]" in fix.draft
    await session.view_evidence(claims[0].id, "doc_a")
    assert session.fix is None


@pytest.mark.asyncio
async def test_report_reflects_session_state() -> None:
    session = ReviewSession(FixedRetriever(_supported()))
    session.extract(ANSWER)
    await session.review_all("doc_a")
    await session.generate_draft(use_llm=False)
    report = session.build_report(generated_at="t")
    assert report.summary.supported == 2
    assert report.draft == session.fix.draft
    assert [ref.cid for ref in report.references] == [0]
