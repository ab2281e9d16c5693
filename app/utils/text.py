"""
Text utilities shared by the classifier, retrieval, and prompt assembly:
  - Artifact cleanup for raw corpus text
  - Query word extraction for keyword scoring
  - Dedupe keys and caller-facing previews

All functions are pure (no I/O, no LLM).
"""

from __future__ import annotations

import re

# Watermarks left behind by the PDF → text conversion of the books
_WATERMARKS: tuple[str, ...] = (
    "OceanofPDF.com",
)

_ROMAN_VALUES = {"i": 1, "v": 5, "x": 10, "l": 50, "c": 100}


def clean_corpus_text(text: str) -> str:
    """
    Strip conversion artifacts from a slice of corpus text.

    Form feeds become a visible page break, watermark strings are
    removed, and runs of 3+ newlines collapse to a single blank line.
    """
    cleaned = text.replace("\f", "\n\n---\n\n")
    for mark in _WATERMARKS:
        cleaned = cleaned.replace(mark, "")
    cleaned = re.sub(r"\n{3,}", "\n\n", cleaned)
    return cleaned.strip()


def query_words(query: str, min_length: int) -> list[str]:
    """Lowercased whitespace tokens strictly longer than ``min_length``."""
    return [w for w in query.lower().split() if len(w) > min_length]


def dedupe_key(text: str, prefix_chars: int) -> str:
    """Key used to merge the same passage coming from different searches."""
    return text[:prefix_chars]


def preview(text: str, limit: int) -> str:
    """First ``limit`` characters, with an ellipsis when truncated."""
    text = text.strip()
    if len(text) <= limit:
        return text
    return text[:limit].rstrip() + "..."


def roman_to_int(token: str) -> int | None:
    """Convert a lowercase roman numeral (i..cccc) to int, None if invalid."""
    token = token.lower()
    if not token or any(ch not in _ROMAN_VALUES for ch in token):
        return None
    total = 0
    prev = 0
    for ch in reversed(token):
        value = _ROMAN_VALUES[ch]
        if value < prev:
            total -= value
        else:
            total += value
            prev = value
    return total


def int_to_roman(number: int) -> str:
    """Uppercase roman numeral for 1..399."""
    parts = []
    for value, symbol in (
        (100, "C"), (90, "XC"), (50, "L"), (40, "XL"),
        (10, "X"), (9, "IX"), (5, "V"), (4, "IV"), (1, "I"),
    ):
        while number >= value:
            parts.append(symbol)
            number -= value
    return "".join(parts)
