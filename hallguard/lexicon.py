"""Word lists shared by the claim miner and the evidence scorer."""

from __future__ import annotations

MONTHS = (
    "january",
    "february",
    "march",
    "april",
    "may",
    "june",
    "july",
    "august",
    "september",
    "october",
    "november",
    "december",
)

MONTH_ABBREVIATIONS = {
    "jan": "january",
    "feb": "february",
    "mar": "march",
    "apr": "april",
    "jun": "june",
    "jul": "july",
    "aug": "august",
    "sep": "september",
    "sept": "september",
    "oct": "october",
    "nov": "november",
    "dec": "december",
}

# Longest alternatives first so "Sept" wins over "Sep".
MONTH_PATTERN = "|".join(
    sorted(
        [m.capitalize() for m in MONTHS] + [a.capitalize() for a in MONTH_ABBREVIATIONS],
        key=len,
        reverse=True,
    )
)

NUMBER_WORDS = (
    "one",
    "two",
    "three",
    "four",
    "five",
    "six",
    "seven",
    "eight",
    "nine",
    "ten",
    "hundred",
    "thousand",
    "million",
    "billion",
)

STOPWORDS = frozenset(
    {
        "the",
        "a",
        "an",
        "and",
        "or",
        "of",
        "in",
        "on",
        "for",
        "to",
        "at",
        "by",
        "with",
        "from",
        "this",
        "that",
        "it",
        "is",
        "was",
        "were",
        "are",
        "be",
        "as",
        "not",
        "no",
        "did",
        "does",
        "have",
        "has",
        "had",
        "later",
        "first",
        "will",
        "would",
        "can",
        "could",
        "should",
    }
)

# Capitalized words that commonly open a sentence and are not part of a name.
SENTENCE_STARTERS = frozenset(
    {
        "The",
        "A",
        "An",
        "In",
        "On",
        "At",
        "By",
        "For",
        "From",
        "This",
        "That",
        "These",
        "Those",
        "It",
        "Its",
        "Our",
        "Their",
        "His",
        "Her",
        "We",
        "They",
        "He",
        "She",
        "According",
        "After",
        "Before",
        "During",
        "Since",
        "Today",
        "Yesterday",
    }
)


def normalize_month(token: str) -> str | None:
    low = token.lower().rstrip(".")
    if low in MONTHS:
        return low
    return MONTH_ABBREVIATIONS.get(low)
