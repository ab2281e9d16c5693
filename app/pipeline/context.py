"""
Prompt-context assembly helpers.

format_evidence turns a RetrievalResult into the text substituted for
the {evidence} slot.  is_complex_question decides whether a query is
worth running the research chain before the persona answer.
"""

from __future__ import annotations

import re

from app.core.config import Settings, settings as default_settings
from app.schemas.intent import Emotion
from app.schemas.retrieval import Passage, RetrievalResult, SourceCategory
from app.services.llm import count_tokens
from app.utils.logging import get_logger

logger = get_logger("tufti.pipeline.context")

RULE = "═" * 60
THIN_RULE = "─" * 40
SEPARATOR = "\n\n---\n\n"

_EMOTIONAL_GUIDANCE = {
    Emotion.VULNERABLE: "EMOTIONAL CONTEXT: User seems vulnerable. Lead with compassion before teaching.",
    Emotion.FRUSTRATED: (
        "EMOTIONAL CONTEXT: User seems frustrated. "
        "Acknowledge their struggle, then offer practical steps."
    ),
}

COMPLEXITY_KEYWORDS: tuple[str, ...] = (
    "intention", "outer intention", "inner intention",
    "pendulum", "pendulums",
    "importance", "excess potential",
    "slides", "target slide",
    "alternatives", "space of variations",
    "soul", "mind", "unity",
    "plait", "coordination",
    "why does", "how do i", "what is the relationship",
    "explain", "understand", "deeper", "meaning",
    "manifest", "reality", "film",
)

_PHILOSOPHICAL_RE = re.compile(r"why|how|what is the (meaning|relationship|connection)", re.IGNORECASE)


# ── Evidence formatting ─────────────────────────────────────────────

def _format_primary(p: Passage) -> str:
    return f'[{p.source}] ({p.score * 100:.0f}% match):\n"{p.text}"'


def _format_secondary(p: Passage) -> str:
    label = f"{p.author}: {p.source}" if p.author else p.source
    return f'[{label}] ({p.score * 100:.0f}% match):\n"{p.text}"'


def _fit_to_budget(passages: list[Passage], budget: int) -> list[Passage]:
    """Keep passages in rank order until the token budget is spent (at least one)."""
    kept: list[Passage] = []
    used = 0
    for p in passages:
        tokens = count_tokens(p.text)
        if kept and used + tokens > budget:
            break
        kept.append(p)
        used += tokens
    if len(kept) < len(passages):
        logger.info("[CONTEXT] token budget %d: kept %d/%d passages", budget, len(kept), len(passages))
    return kept


def format_evidence(result: RetrievalResult, cfg: Settings | None = None) -> str:
    """Render retrieved passages for the instruction text.  Empty string when nothing was retrieved."""
    cfg = cfg or default_settings
    if result.is_empty:
        return ""

    first = result.passages[0]
    if first.is_direct_read:
        return "\n".join([
            RULE,
            f"DIRECT READING FROM: {first.source}",
            RULE,
            "",
            first.text,
            "",
            RULE,
            "You are reading directly from the book with the user.",
            "Discuss this passage with them. Offer insights.",
            "Ask if they want to continue reading.",
            RULE,
        ])

    passages = _fit_to_budget(result.passages, cfg.evidence_token_budget)
    # Uncategorized passages are treated as primary-corpus text
    primary = [p for p in passages if p.category != SourceCategory.SECONDARY]
    secondary = [p for p in passages if p.category == SourceCategory.SECONDARY]

    sections: list[str] = []
    if primary:
        sections.append("\n".join([
            "PRIMARY SOURCES (authoritative)",
            THIN_RULE,
            SEPARATOR.join(_format_primary(p) for p in primary),
        ]))
    if secondary:
        sections.append("\n".join([
            "SECONDARY SOURCES (practical guidance)",
            THIN_RULE,
            SEPARATOR.join(_format_secondary(p) for p in secondary),
        ]))

    header = ["RETRIEVED KNOWLEDGE"]
    guidance = _EMOTIONAL_GUIDANCE.get(result.classification.emotion.dominant)
    if guidance:
        header.append(guidance)

    logger.info(
        "[CONTEXT] injecting %d passage(s) (%d primary, %d secondary)",
        len(passages), len(primary), len(secondary),
    )
    return "\n".join([RULE, *header, RULE, "\n\n".join(sections), RULE])


# ── Complexity gate ─────────────────────────────────────────────────

def is_complex_question(
    question: str,
    emotional_intensity: int = 0,
    cfg: Settings | None = None,
) -> bool:
    """Complex when enough independent criteria hold.

    ``emotional_intensity`` is the dominant emotion's pattern-hit count from
    ``detect_emotion`` (0 to 5).
    """
    cfg = cfg or default_settings
    lower = question.lower()

    keyword_hits = sum(1 for kw in COMPLEXITY_KEYWORDS if kw in lower)
    word_count = len(question.split())

    criteria = [
        keyword_hits >= cfg.complexity_min_keyword_hits,
        word_count >= cfg.complexity_min_words,
        bool(_PHILOSOPHICAL_RE.search(question)),
        emotional_intensity >= cfg.complexity_min_emotional_intensity,
        len(re.findall(r"[.?!]", question)) >= 2,
    ]
    met = sum(criteria)

    logger.info(
        "[CONTEXT] complexity: keywords=%d words=%d criteria=%d",
        keyword_hits, word_count, met,
    )
    return met >= cfg.complexity_min_criteria
