"""Grounded rewrite ("fix draft") of a reviewed answer.

The template generator is pure and always available. The LLM path is an
optional enhancement; any failure there falls back to the template.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from hallguard.config import DRAFT_MAX_TOKENS
from hallguard.errors import DraftGenerationFailure
from hallguard.llm_client import LLMClient, get_llm_client
from hallguard.models import Claim, ClaimStatus, EvidenceItem, FixResult
from hallguard.prompts import DRAFT_SYSTEM_PROMPT, build_draft_prompt

log = logging.getLogger(__name__)

HINT_CHARS = 200
REFERENCE_CHARS = 260
PROMPT_EVIDENCE_CHARS = 280
UNVERIFIED_MARKER = "[TODO unverified]"


@dataclass
class FixInputs:
    answer: str
    claims: list[Claim]
    statuses: dict[str, ClaimStatus] = field(default_factory=dict)
    evidence_by_claim: dict[str, list[EvidenceItem]] = field(default_factory=dict)

    def status_of(self, claim: Claim) -> ClaimStatus:
        return self.statuses.get(claim.id, "pending")

    def evidence_of(self, claim: Claim) -> list[EvidenceItem]:
        return self.evidence_by_claim.get(claim.id) or []


def collapse_whitespace(text: str, limit: int | None = None) -> str:
    flat = " ".join(text.split())
    return flat[:limit] if limit is not None else flat


def claim_marker(status: ClaimStatus, items: list[EvidenceItem]) -> str:
    if not items:
        return UNVERIFIED_MARKER
    if status == "supported":
        return f"[C{items[0].idx}]"
    return f"[TODO verify; grounded from C{items[0].idx}]"


def annotate_answer(inputs: FixInputs) -> str:
    """Insert one marker after each claim span, in reading order."""
    answer = inputs.answer
    markers: dict[int, list[str]] = {}
    for claim in inputs.claims:
        pos = max(0, min(claim.end, len(answer)))
        marker = claim_marker(inputs.status_of(claim), inputs.evidence_of(claim))
        at = markers.setdefault(pos, [])
        if marker not in at:
            at.append(marker)

    parts: list[str] = []
    cursor = 0
    for pos in sorted(markers):
        parts.append(answer[cursor:pos])
        parts.append(" " + " ".join(markers[pos]))
        cursor = pos
    parts.append(answer[cursor:])
    return "".join(parts)


def reference_lines(inputs: FixInputs) -> list[str]:
    seen: set[int] = set()
    refs: list[str] = []
    for claim in inputs.claims:
        for item in inputs.evidence_of(claim):
            if item.idx in seen:
                continue
            seen.add(item.idx)
            refs.append(f"[C{item.idx}] {collapse_whitespace(item.text, REFERENCE_CHARS)}")
    return refs


def generate_template_draft(inputs: FixInputs) -> str:
    lines: list[str] = [
        "## Grounded Revision (Template Mode)",
        "",
        "> This draft keeps supported facts and annotates uncertain parts with TODO.",
        "",
        annotate_answer(inputs),
        "",
    ]

    notes: list[str] = []
    for claim in inputs.claims:
        if inputs.status_of(claim) == "supported":
            continue
        items = inputs.evidence_of(claim)[:2]
        cites = "".join(f" [C{item.idx}]" for item in items)
        hint = collapse_whitespace(items[0].text, HINT_CHARS) if items else "(no close match)"
        notes.append(f'- TODO: Verify/ground: "{claim.text}"{cites} | Hint: {hint}')
    if notes:
        lines.append("### TODOs (needs grounding)")
        lines.extend(notes)
        lines.append("")

    refs = reference_lines(inputs)
    if refs:
        lines.append("### References (chunks)")
        lines.extend(f"- {ref}" for ref in refs)

    return "\n".join(lines).rstrip() + "\n"


def _evidence_prompt_lines(inputs: FixInputs) -> list[str]:
    lines: list[str] = []
    for claim in inputs.claims:
        best = [
            f"  - [C{item.idx}] {collapse_whitespace(item.text, PROMPT_EVIDENCE_CHARS)}"
            for item in inputs.evidence_of(claim)[:2]
        ]
        lines.append(f'- Claim: "{claim.text}" | status: {inputs.status_of(claim)} | evidence:')
        lines.extend(best or ["  - (none)"])
    return lines


def generate_with_llm(inputs: FixInputs, llm: LLMClient) -> str:
    prompt = build_draft_prompt(inputs.answer, _evidence_prompt_lines(inputs))
    response = llm.generate(prompt, system=DRAFT_SYSTEM_PROMPT, max_tokens=DRAFT_MAX_TOKENS)
    text = response.text.strip()
    if not text:
        raise DraftGenerationFailure(f"{llm.provider} returned an empty draft.")
    return text


def generate_fix_draft(
    inputs: FixInputs,
    llm: LLMClient | None = None,
    *,
    use_llm: bool = True,
) -> FixResult:
    if use_llm:
        try:
            client = llm or get_llm_client()
        except ValueError as exc:
            log.warning("LLM draft client unavailable, using template: %s", exc)
            client = None
        if client is not None:
            try:
                return FixResult(draft=generate_with_llm(inputs, client), used="llm")
            except Exception as exc:
                log.warning("LLM draft failed, falling back to template: %s", exc)
    return FixResult(draft=generate_template_draft(inputs), used="template")
