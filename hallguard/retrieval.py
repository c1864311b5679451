"""Evidence retrieval for a single claim."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from hallguard.config import TOP_K_PER_CLAIM
from hallguard.embeddings import Embedder
from hallguard.models import EvidenceItem, EvidenceLabel, ResolvedStatus, RetrievalResult
from hallguard.scoring import EvidenceScorer
from hallguard.vector_index import VectorIndex

log = logging.getLogger(__name__)


def reduce_status(labels: Iterable[EvidenceLabel]) -> ResolvedStatus:
    """Collapse per-chunk labels; any contradiction dominates."""
    seen = set(labels)
    if "contradiction" in seen:
        return "unknown"
    if "supported" in seen:
        return "supported"
    return "unknown"


class RetrievalOrchestrator:
    def __init__(
        self,
        embedder: Embedder,
        index: VectorIndex,
        scorer: EvidenceScorer | None = None,
    ) -> None:
        self.embedder = embedder
        self.index = index
        self.scorer = scorer or EvidenceScorer()

    async def retrieve(
        self,
        claim_text: str,
        doc_id: str,
        k: int = TOP_K_PER_CLAIM,
    ) -> RetrievalResult:
        """Rank the document's chunks for a claim and summarize a status.

        Raises ``NoEmbeddingsForDocument`` when nothing is indexed for
        ``doc_id`` and ``EmbedderMismatch`` when the stored vectors come from
        another embedder; embedder failures propagate unchanged.
        """
        claim = (claim_text or "").strip()
        if not claim:
            return RetrievalResult(status="unknown", items=[])

        rows = self.index.query_for(doc_id, self.embedder.signature)
        query_vector = await self.embedder.embed_one(claim)
        ranked = self.index.rank(query_vector, rows, k)

        items: list[EvidenceItem] = []
        for record, similarity in ranked:
            scored = self.scorer.score(claim, record.text)
            items.append(
                EvidenceItem(
                    idx=record.idx,
                    text=record.text,
                    score=similarity,
                    overlap=scored.overlap,
                    label=scored.label,
                )
            )

        status = reduce_status(item.label for item in items)
        log.debug(
            "Claim %r on %s: status=%s labels=%s",
            claim[:60],
            doc_id,
            status,
            [item.label for item in items],
        )
        return RetrievalResult(status=status, items=items)
