"""Evidence scoring heuristics.

Each (claim, evidence chunk) pair is labelled:

- ``supported``: strong lexical overlap and no conflicting dates.
- ``contradiction``: same subject but disjoint months or years.
- ``unknown``: everything else.

Overlap is asymmetric containment: the share of claim tokens found in the
evidence, so long chunks are not penalized for their extra text.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from hallguard.config import (
    CONTRADICTION_OVERLAP,
    MIN_SHARED_CONTEXT,
    PARTIAL_OVERLAP,
    SUPPORT_OVERLAP,
)
from hallguard.lexicon import MONTH_ABBREVIATIONS, MONTHS, STOPWORDS, normalize_month
from hallguard.models import EvidenceLabel

_TOKEN_RE = re.compile(r"[a-z0-9]+")
_MONTH_RE = re.compile(
    r"\b(" + "|".join(sorted([*MONTHS, *MONTH_ABBREVIATIONS], key=len, reverse=True)) + r")\b",
    re.IGNORECASE,
)
_YEAR_RE = re.compile(r"\b(19\d{2}|20\d{2})\b")


@dataclass(frozen=True)
class ScoringThresholds:
    support_overlap: float = SUPPORT_OVERLAP
    partial_overlap: float = PARTIAL_OVERLAP
    contradiction_overlap: float = CONTRADICTION_OVERLAP
    min_shared_context: int = MIN_SHARED_CONTEXT


@dataclass(frozen=True)
class DateTokens:
    months: frozenset[str] = field(default_factory=frozenset)
    years: frozenset[str] = field(default_factory=frozenset)

    def __bool__(self) -> bool:
        return bool(self.months or self.years)


@dataclass(frozen=True)
class EvidenceScore:
    label: EvidenceLabel
    overlap: float


def normalize_tokens(text: str) -> list[str]:
    return [tok for tok in _TOKEN_RE.findall(text.lower()) if tok not in STOPWORDS]


def extract_dates(text: str) -> DateTokens:
    months = set()
    for m in _MONTH_RE.finditer(text):
        token = m.group(1)
        # Lowercase "may"/"march" are usually verbs.
        if token.islower() and token in {"may", "march"}:
            continue
        month = normalize_month(token)
        if month:
            months.add(month)
    years = {m.group(1) for m in _YEAR_RE.finditer(text)}
    return DateTokens(months=frozenset(months), years=frozenset(years))


def lexical_overlap(claim_tokens: list[str], evidence_tokens: set[str]) -> float:
    if not claim_tokens:
        return 0.0
    common = sum(1 for tok in claim_tokens if tok in evidence_tokens)
    return common / len(claim_tokens)


def dates_align(claim_dates: DateTokens, evidence_dates: DateTokens) -> bool:
    """True unless some date type present on both sides has no common value."""
    if claim_dates.months and evidence_dates.months and not (
        claim_dates.months & evidence_dates.months
    ):
        return False
    if claim_dates.years and evidence_dates.years and not (
        claim_dates.years & evidence_dates.years
    ):
        return False
    return True


class EvidenceScorer:
    def __init__(self, thresholds: ScoringThresholds | None = None) -> None:
        self.thresholds = thresholds or ScoringThresholds()

    def has_date_contradiction(self, claim: str, evidence: str) -> bool:
        claim_dates = extract_dates(claim)
        evidence_dates = extract_dates(evidence)
        if not claim_dates or not evidence_dates:
            return False
        evidence_tokens = set(normalize_tokens(evidence))
        shared = [tok for tok in normalize_tokens(claim) if tok in evidence_tokens]
        if len(shared) < self.thresholds.min_shared_context:
            return False
        return not dates_align(claim_dates, evidence_dates)

    def score(self, claim: str, evidence: str) -> EvidenceScore:
        """Label one evidence chunk for a claim and report the lexical overlap."""
        t = self.thresholds
        claim_tokens = normalize_tokens(claim)
        evidence_tokens = normalize_tokens(evidence)
        if not claim_tokens or not evidence_tokens:
            return EvidenceScore(label="unknown", overlap=0.0)

        overlap = lexical_overlap(claim_tokens, set(evidence_tokens))
        contradiction = self.has_date_contradiction(claim, evidence)

        if overlap >= t.support_overlap and not contradiction:
            return EvidenceScore(label="supported", overlap=overlap)
        if contradiction and overlap >= t.contradiction_overlap:
            return EvidenceScore(label="contradiction", overlap=overlap)
        if t.partial_overlap <= overlap < t.support_overlap and dates_align(
            extract_dates(claim), extract_dates(evidence)
        ):
            return EvidenceScore(label="supported", overlap=overlap)
        return EvidenceScore(label="unknown", overlap=overlap)


def score_evidence(claim: str, evidence: str) -> EvidenceScore:
    return EvidenceScorer().score(claim, evidence)
