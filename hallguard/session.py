"""Review session state for one pasted answer."""

from __future__ import annotations

import asyncio
import logging

from hallguard.claims import ClaimMiner
from hallguard.config import TOP_K_PER_CLAIM
from hallguard.drafting import FixInputs, generate_fix_draft
from hallguard.llm_client import LLMClient
from hallguard.models import Claim, ClaimStatus, EvidenceItem, FixResult, Report, RetrievalResult
from hallguard.report import build_report
from hallguard.retrieval import RetrievalOrchestrator

log = logging.getLogger(__name__)


class ReviewSession:
    """Claims, their statuses and evidence, and the derived draft.

    Every extraction bumps a generation counter and every evidence or draft
    request takes a sequence number; a response that is no longer the latest
    for its claim (or belongs to an older extraction) is discarded.
    """

    def __init__(
        self,
        retriever: RetrievalOrchestrator,
        miner: ClaimMiner | None = None,
    ) -> None:
        self.retriever = retriever
        self.miner = miner or ClaimMiner()
        self.answer = ""
        self.claims: list[Claim] = []
        self.statuses: dict[str, ClaimStatus] = {}
        self.evidence_by_claim: dict[str, list[EvidenceItem]] = {}
        self.fix: FixResult | None = None
        self._generation = 0
        self._claim_seq: dict[str, int] = {}
        self._draft_seq = 0

    def extract(self, answer: str) -> list[Claim]:
        self._generation += 1
        self.answer = answer or ""
        self.claims = self.miner.extract(self.answer)
        self.statuses = {claim.id: "pending" for claim in self.claims}
        self.evidence_by_claim = {}
        self.fix = None
        self._claim_seq = {}
        log.info("Extracted %d claim(s)", len(self.claims))
        return self.claims

    def get_claim(self, claim_id: str) -> Claim:
        for claim in self.claims:
            if claim.id == claim_id:
                return claim
        raise KeyError(f"Unknown claim id {claim_id!r}")

    async def view_evidence(
        self,
        claim_id: str,
        doc_id: str,
        k: int = TOP_K_PER_CLAIM,
    ) -> RetrievalResult | None:
        """Retrieve evidence and record the status; None when superseded."""
        claim = self.get_claim(claim_id)
        generation = self._generation
        seq = self._claim_seq.get(claim_id, 0) + 1
        self._claim_seq[claim_id] = seq

        result = await self.retriever.retrieve(claim.text, doc_id, k)

        if generation != self._generation or self._claim_seq.get(claim_id) != seq:
            log.info("Discarding stale evidence for %s (request %d)", claim_id, seq)
            return None
        self.statuses[claim_id] = result.status
        self.evidence_by_claim[claim_id] = result.items
        self.fix = None
        return result

    async def review_all(self, doc_id: str, k: int = TOP_K_PER_CLAIM) -> dict[str, RetrievalResult]:
        results: dict[str, RetrievalResult] = {}
        for claim in list(self.claims):
            result = await self.view_evidence(claim.id, doc_id, k)
            if result is not None:
                results[claim.id] = result
        return results

    def fix_inputs(self) -> FixInputs:
        return FixInputs(
            answer=self.answer,
            claims=list(self.claims),
            statuses=dict(self.statuses),
            evidence_by_claim={cid: list(items) for cid, items in self.evidence_by_claim.items()},
        )

    async def generate_draft(
        self,
        llm: LLMClient | None = None,
        *,
        use_llm: bool = True,
    ) -> FixResult | None:
        self._draft_seq += 1
        seq = self._draft_seq
        generation = self._generation
        fix = await asyncio.to_thread(generate_fix_draft, self.fix_inputs(), llm, use_llm=use_llm)
        if seq != self._draft_seq or generation != self._generation:
            log.info("Discarding stale draft (request %d)", seq)
            return None
        self.fix = fix
        return fix

    def counts(self) -> dict[str, int]:
        supported = sum(1 for status in self.statuses.values() if status == "supported")
        pending = sum(1 for status in self.statuses.values() if status == "pending")
        return {
            "total": len(self.claims),
            "supported": supported,
            "unknown": len(self.claims) - supported - pending,
            "pending": pending,
        }

    def build_report(self, generated_at: str | None = None) -> Report:
        return build_report(
            self.answer,
            self.fix.draft if self.fix else None,
            self.claims,
            self.statuses,
            self.evidence_by_claim,
            generated_at=generated_at,
        )
