"""Heuristic claim mining.

Turns a free-text answer into checkable claim spans without any language
model: quoted strings, dates, numbers, capitalized multi-word names and, as a
fallback, whole declarative sentences. Claims of different kinds may overlap
(a number inside a sentence claim); exact text duplicates are emitted once.
"""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass

from hallguard.config import MAX_CLAIMS
from hallguard.lexicon import MONTH_PATTERN, NUMBER_WORDS, SENTENCE_STARTERS, normalize_month
from hallguard.models import Claim, ClaimKind

_SENTENCE_END_RE = re.compile(r"[.!?]+(?=\s|$)")

_QUOTED_RE = re.compile(
    r'"([^"\n]{3,120})"'
    r"|(?<!\w)'([^'\n]{3,120})'(?!\w)"
    r"|“([^”\n]{3,120})”"
    r"|‘([^’\n]{3,120})’"
)
_YEAR_RE = re.compile(r"\b(?:19|20)\d{2}\b")
_MONTH_RE = re.compile(rf"\b(?:{MONTH_PATTERN})\b")
_NUMBER_RE = re.compile(
    r"(?<![\w.,])[$€£]?(?:\d{1,3}(?:,\d{3})+|\d+)(?:\.\d+)?(?:\s?%|[kmb]\b)?(?![\w%])"
    rf"|\b(?:{'|'.join(NUMBER_WORDS)})\b",
    re.IGNORECASE,
)
_ENTITY_RE = re.compile(r"\b[A-Z][a-zA-Z]+(?: +[A-Z][a-zA-Z]+){1,4}\b")
_DECLARATIVE_RE = re.compile(
    r"\b(?:is|are|was|were|has|have|shows?|reports?|states?|confirms?)\b",
    re.IGNORECASE,
)

SENTENCE_MIN_CHARS = 40
SENTENCE_MAX_CHARS = 280
DEDUP_KEY_CHARS = 200


@dataclass(frozen=True)
class Sentence:
    text: str
    start: int
    end: int


def _trimmed(text: str, start: int, end: int) -> tuple[str, int, int]:
    raw = text[start:end]
    lead = len(raw) - len(raw.lstrip())
    trail = len(raw) - len(raw.rstrip())
    return raw.strip(), start + lead, end - trail


def split_sentences(text: str) -> list[Sentence]:
    """Split on ``.``, ``!`` or ``?`` followed by whitespace or end of text."""
    out: list[Sentence] = []
    cursor = 0
    bounds = [m.end() for m in _SENTENCE_END_RE.finditer(text)]
    if not bounds or bounds[-1] < len(text):
        bounds.append(len(text))
    for end in bounds:
        sent, s, e = _trimmed(text, cursor, end)
        if sent:
            out.append(Sentence(text=sent, start=s, end=e))
        cursor = end
    return out


def _claim_id(kind: str, start: int, end: int, text: str) -> str:
    digest = hashlib.sha1(f"{kind}:{start}:{end}:{text}".encode("utf-8")).hexdigest()
    return f"claim_{digest[:10]}"


class ClaimMiner:
    """Extracts claims sorted by position, capped at ``max_claims``."""

    def __init__(self, max_claims: int = MAX_CLAIMS) -> None:
        self.max_claims = max(0, max_claims)

    def extract(self, answer: str) -> list[Claim]:
        if not answer or not answer.strip():
            return []

        claims: list[Claim] = []
        seen: set[str] = set()

        def push(start: int, end: int, kind: ClaimKind) -> bool:
            text, start, end = _trimmed(answer, start, end)
            key = text.lower()[:DEDUP_KEY_CHARS]
            if not text or key in seen:
                return False
            seen.add(key)
            claims.append(
                Claim(id=_claim_id(kind, start, end, text), text=text, start=start, end=end, kind=kind)
            )
            return True

        for sent in split_sentences(answer):
            self._mine_sentence(sent, push)

        claims.sort(key=lambda c: (c.start, c.end))
        return claims[: self.max_claims]

    def _mine_sentence(self, sent: Sentence, push) -> None:
        base = sent.start
        text = sent.text

        for m in _QUOTED_RE.finditer(text):
            group = next(g for g in range(1, 5) if m.group(g) is not None)
            push(base + m.start(group), base + m.end(group), "quoted")

        date_spans: list[tuple[int, int]] = []
        for regex in (_YEAR_RE, _MONTH_RE):
            for m in regex.finditer(text):
                date_spans.append((m.start(), m.end()))
                push(base + m.start(), base + m.end(), "date")

        for m in _NUMBER_RE.finditer(text):
            if any(m.start() < de and ds < m.end() for ds, de in date_spans):
                continue
            push(base + m.start(), base + m.end(), "number")

        for m in _ENTITY_RE.finditer(text):
            words = list(re.finditer(r"\S+", m.group()))
            while words and (
                words[0].group() in SENTENCE_STARTERS or normalize_month(words[0].group())
            ):
                words.pop(0)
            if len(words) < 2:
                continue
            push(base + m.start() + words[0].start(), base + m.end(), "entity")

        if SENTENCE_MIN_CHARS <= len(text) <= SENTENCE_MAX_CHARS and _DECLARATIVE_RE.search(text):
            push(sent.start, sent.end, "sentence")


def extract_claims(answer: str, max_claims: int = MAX_CLAIMS) -> list[Claim]:
    return ClaimMiner(max_claims=max_claims).extract(answer)
