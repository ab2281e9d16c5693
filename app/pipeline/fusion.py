"""
Passage scoring, fusion, and source weighting.

All functions here are pure (no I/O, no index, no LLM).  Inputs are
never mutated; scored passages are copies.
"""

from __future__ import annotations

from app.schemas.intent import SourcePreference
from app.schemas.retrieval import Passage, SourceCategory
from app.utils.logging import get_logger
from app.utils.text import dedupe_key, query_words

logger = get_logger("tufti.pipeline.fusion")


def clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


def keyword_search(
    query: str,
    candidates: list[Passage],
    top_k: int,
    *,
    min_word_length: int = 3,
    phrase_bonus: float = 5.0,
) -> list[Passage]:
    """
    Score candidates by query-word substring hits.

    One point per query word found inside the passage, plus a single
    ``phrase_bonus`` when the whole query appears verbatim.  Passages
    with no hit are dropped.
    """
    words = query_words(query, min_word_length)
    phrase = query.lower().strip()
    if not words and not phrase:
        return []

    scored: list[Passage] = []
    for passage in candidates:
        text = passage.text.lower()
        score = float(sum(1 for w in words if w in text))
        if phrase and phrase in text:
            score += phrase_bonus
        if score > 0:
            scored.append(passage.model_copy(update={"keyword_score": score}))

    scored.sort(key=lambda p: p.keyword_score or 0.0, reverse=True)
    return scored[:top_k]


def hybrid_merge(
    semantic: list[Passage],
    keyword: list[Passage],
    top_k: int,
    *,
    semantic_weight: float = 0.7,
    keyword_weight: float = 0.3,
    keyword_normalizer: float = 10.0,
    prefix_chars: int = 50,
) -> list[Passage]:
    """
    Fuse semantic and keyword results into one ranked list.

    combined = semantic_weight * semantic + keyword_weight * (keyword / normalizer)

    Passages are deduplicated on a text-prefix key; a passage found by
    only one search keeps only that search's weighted contribution.
    """
    merged: dict[str, Passage] = {}
    contributions: dict[str, float] = {}

    for passage in semantic:
        key = dedupe_key(passage.text, prefix_chars)
        if key in merged:
            continue
        merged[key] = passage
        contributions[key] = semantic_weight * clamp01(passage.score)

    for passage in keyword:
        key = dedupe_key(passage.text, prefix_chars)
        kw_part = keyword_weight * clamp01((passage.keyword_score or 0.0) / keyword_normalizer)
        if key in merged:
            merged[key] = merged[key].model_copy(update={"keyword_score": passage.keyword_score})
            contributions[key] += kw_part
        else:
            merged[key] = passage
            contributions[key] = kw_part

    fused = [
        p.model_copy(update={"score": clamp01(contributions[key])})
        for key, p in merged.items()
    ]
    fused.sort(key=lambda p: p.score, reverse=True)

    logger.info(
        "[FUSION] hybrid: %d semantic + %d keyword -> %d unique, returning %d",
        len(semantic), len(keyword), len(fused), min(top_k, len(fused)),
    )
    return fused[:top_k]


def apply_source_preference(
    passages: list[Passage],
    preference: SourcePreference,
    top_k: int,
) -> list[Passage]:
    """
    Multiply each passage's score by its category weight, re-sort, truncate.
    Passages without a category keep weight 1.0.
    """
    weighted: list[Passage] = []
    for passage in passages:
        weight = 1.0
        if passage.category == SourceCategory.PRIMARY:
            weight = preference.primary
        elif passage.category == SourceCategory.SECONDARY:
            weight = preference.secondary
        weighted.append(passage.model_copy(update={"weighted_score": passage.score * weight}))

    weighted.sort(key=lambda p: p.ranking_score, reverse=True)
    top = weighted[:top_k]

    n_primary = sum(1 for p in top if p.category == SourceCategory.PRIMARY)
    n_secondary = sum(1 for p in top if p.category == SourceCategory.SECONDARY)
    logger.info("[FUSION] source mix: %d primary, %d secondary", n_primary, n_secondary)
    return top
