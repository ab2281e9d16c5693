"""
Intent Classifier: rule-based, zero cost, < 1 ms.

Layers, short-circuiting on the first decisive one:
  1. Fast path       : short greetings / acknowledgements → CHAT
  2. Explicit intent : quote requests → VERBATIM, reading requests → DIRECT_READ
  3. Emotion         : regex bank per emotion, highest count wins
  4. Concepts        : domain vocabulary hits
  5. Archetype score : weighted regex sub-checks, each archetype capped at 1.0
  6. Source preference: archetype table + emotion nudge (never renormalized)

Never raises; unmatched input falls through to defaults.
"""

from __future__ import annotations

import re

from app.core.config import Settings, settings as default_settings
from app.schemas.intent import (
    SCORED_ARCHETYPES,
    Archetype,
    ConceptMatch,
    Emotion,
    EmotionalState,
    IntentClassification,
    SourcePreference,
)
from app.utils.logging import get_logger

logger = get_logger("tufti.pipeline.intent")


# ── Fast checks ─────────────────────────────────────────────────────
GREETING_PATTERNS: tuple[re.Pattern, ...] = (
    re.compile(r"^(hi|hello|hey|hola|bonjour|ciao|salam|marhaba)[\s!.,]*$", re.I),
    re.compile(r"^(good morning|good afternoon|good evening|gm|gn)[\s!.,]*$", re.I),
    re.compile(r"^(thanks|thank you|merci|shukran)[\s!.,]*$", re.I),
    re.compile(r"^(ok|okay|cool|great|nice|perfect|yes|no|yeah|nope)[\s!.,]*$", re.I),
)

QUOTE_PATTERNS: tuple[re.Pattern, ...] = (
    re.compile(r"quote", re.I),
    re.compile(r"exact words", re.I),
    re.compile(r"verbatim", re.I),
    re.compile(r"\bcite\b", re.I),
    re.compile(r"word for word", re.I),
)

READ_PATTERNS: tuple[re.Pattern, ...] = (
    re.compile(r"read.*page", re.I),
    re.compile(r"read.*chapter", re.I),
    re.compile(r"page \d+", re.I),
    re.compile(r"chapter (\d+|[ivxlc]+\b)", re.I),
    re.compile(r"first page", re.I),
    re.compile(r"foreword", re.I),
    re.compile(r"beginning of", re.I),
)


# ── Emotion bank (declaration order breaks ties) ────────────────────
EMOTION_PATTERNS: dict[Emotion, tuple[re.Pattern, ...]] = {
    Emotion.VULNERABLE: (
        re.compile(r"i('m| am) (lost|stuck|confused|struggling|suffering|hurting)"),
        re.compile(r"nothing (is )?work(s|ing)"),
        re.compile(r"can't (seem to|figure|understand|make)"),
        re.compile(r"feel(s|ing)? (heavy|dark|hopeless|alone|empty)"),
        re.compile(r"why (can't|won't|doesn't)"),
    ),
    Emotion.FRUSTRATED: (
        re.compile(r"this (is|isn't) work(ing)?"),
        re.compile(r"i('ve| have) tried everything"),
        re.compile(r"still (not|no|nothing)"),
        re.compile(r"how (many|much|long) (more|until)"),
        re.compile(r"sick (of|and tired)"),
    ),
    Emotion.CURIOUS: (
        re.compile(r"what (is|are|does)"),
        re.compile(r"how (does|do|can)"),
        re.compile(r"tell me (about|more)"),
        re.compile(r"explain"),
        re.compile(r"help me understand"),
    ),
    Emotion.DETERMINED: (
        re.compile(r"i want to"),
        re.compile(r"i need to"),
        re.compile(r"how (do|can) i"),
        re.compile(r"teach me"),
        re.compile(r"show me (how|the way)"),
    ),
    Emotion.EXCITED: (
        re.compile(r"this (is )?amazing"),
        re.compile(r"i (finally )?(get|understand) it"),
        re.compile(r"wow"),
        re.compile(r"incredible"),
        re.compile(r"it('s| is) working"),
    ),
}


# ── Domain vocabulary ───────────────────────────────────────────────
CONCEPT_KEYWORDS: dict[str, tuple[str, ...]] = {
    "pendulum": ("pendulum", "pendulums", "defeating pendulum", "escaping pendulum", "energy vampire"),
    "intention": ("intention", "outer intention", "inner intention", "intent", "will"),
    "reality": ("reality", "film", "frame", "screen", "layer", "alternative", "lifeline"),
    "awareness": ("awareness", "awake", "asleep", "dream", "sleep", "conscious", "overseer"),
    "importance": ("importance", "excess potential", "balanced", "dropping importance"),
    "visualization": ("slide", "visualization", "compose", "illuminate", "target slide"),
    "space": ("space of variations", "alternatives", "coordinates", "mirror", "reflection"),
}


# ── Archetype sub-checks: (pattern, increment) ──────────────────────
ARCHETYPE_CHECKS: dict[Archetype, tuple[tuple[re.Pattern, float], ...]] = {
    Archetype.WISDOM: (
        (re.compile(r"why|meaning|nature|philosophy|deeper|understand|essence"), 0.3),
        (re.compile(r"what (is|are|does) (the )?"), 0.2),
        (re.compile(r"explain|help me (understand|see)"), 0.2),
    ),
    Archetype.ACTION: (
        (re.compile(r"how (do|can|should) i"), 0.4),
        (re.compile(r"step|practice|exercise|technique|apply"), 0.3),
        (re.compile(r"what (should|can) i do"), 0.3),
    ),
    Archetype.EXPLORATION: (
        (re.compile(r"tell me (about|more)"), 0.3),
        (re.compile(r"what('s| is) (a |the )?"), 0.3),
    ),
    Archetype.COMFORT: (
        (re.compile(r"lost|stuck|confused|struggling|can't|nothing works"), 0.4),
        (re.compile(r"feel(s|ing)?( like)?"), 0.2),
        (re.compile(r"help me|i need|please"), 0.2),
    ),
    Archetype.APPLICATION: (
        (re.compile(r"my (job|work|relationship|boss|life|situation)"), 0.4),
        (re.compile(r"how (do|can|should) i (use|apply)"), 0.3),
        (re.compile(r"real life|practical|situation"), 0.2),
    ),
    Archetype.VERBATIM: (
        (re.compile(r"what did .+ say about"), 0.4),
        (re.compile(r"passage|excerpt|in (his|her|their) (own )?words"), 0.3),
        (re.compile(r"\"[^\"]+\""), 0.2),
    ),
}
# Exploration also gains this much when any domain concept is mentioned
CONCEPT_EXPLORATION_BONUS = 0.3


def _matches_any(patterns: tuple[re.Pattern, ...], text: str) -> bool:
    return any(p.search(text) for p in patterns)


def fast_check(query: str, cfg: Settings) -> IntentClassification | None:
    """Layers 1-2: decisive pattern checks that bypass scoring."""
    trimmed = query.strip()

    if len(trimmed) < cfg.fast_path_max_chars and _matches_any(GREETING_PATTERNS, trimmed):
        return IntentClassification(archetype=Archetype.CHAT, confidence=1.0, fast_path=True)

    if _matches_any(QUOTE_PATTERNS, trimmed):
        return IntentClassification(archetype=Archetype.VERBATIM, confidence=0.95, fast_path=True)

    if _matches_any(READ_PATTERNS, trimmed):
        return IntentClassification(archetype=Archetype.DIRECT_READ, confidence=0.95, fast_path=True)

    return None


def detect_emotion(query: str) -> EmotionalState:
    lower = query.lower()
    counts: dict[str, int] = {}
    for emotion, patterns in EMOTION_PATTERNS.items():
        hits = sum(1 for p in patterns if p.search(lower))
        if hits:
            counts[emotion.value] = hits

    dominant = Emotion.NEUTRAL
    best = 0
    for emotion in EMOTION_PATTERNS:
        if counts.get(emotion.value, 0) > best:
            best = counts[emotion.value]
            dominant = emotion

    return EmotionalState(dominant=dominant, intensity=best, scores=counts)


def detect_concepts(query: str) -> list[ConceptMatch]:
    lower = query.lower()
    found: list[ConceptMatch] = []
    for concept, keywords in CONCEPT_KEYWORDS.items():
        for keyword in keywords:
            if keyword in lower:
                found.append(ConceptMatch(concept=concept, keyword=keyword))
                break
    return found


def score_archetypes(
    query: str,
    concepts: list[ConceptMatch],
) -> tuple[Archetype, dict[str, float]]:
    """Layer 5: independent weighted sub-checks; primary is the max (first wins ties)."""
    lower = query.lower()
    scores: dict[str, float] = {}
    for archetype in SCORED_ARCHETYPES:
        total = sum(inc for pattern, inc in ARCHETYPE_CHECKS[archetype] if pattern.search(lower))
        if archetype == Archetype.EXPLORATION and concepts:
            total += CONCEPT_EXPLORATION_BONUS
        scores[archetype.value] = round(min(total, 1.0), 4)

    primary = Archetype.EXPLORATION
    best = 0.0
    for archetype in SCORED_ARCHETYPES:
        if scores[archetype.value] > best:
            best = scores[archetype.value]
            primary = archetype
    return primary, scores


def derive_source_preference(
    archetype: Archetype,
    emotion: EmotionalState,
    cfg: Settings,
) -> SourcePreference:
    """Layer 6: table lookup plus additive emotion nudge."""
    primary, secondary = cfg.source_preference_table.get(archetype.value, (0.5, 0.5))

    if emotion.dominant.value in cfg.primary_nudge_emotions:
        primary += cfg.emotion_nudge
    if emotion.dominant.value in cfg.secondary_nudge_emotions:
        secondary += cfg.emotion_nudge

    return SourcePreference(primary=round(primary, 4), secondary=round(secondary, 4))


def classify(query: str, cfg: Settings | None = None) -> IntentClassification:
    """
    Classify a raw query.  Deterministic, synchronous, no I/O.
    """
    cfg = cfg or default_settings
    query = query or ""

    fast = fast_check(query, cfg)
    if fast is not None:
        logger.info("[INTENT] Fast match: %s (%.0f%%)", fast.archetype.value, fast.confidence * 100)
        return fast

    emotion = detect_emotion(query)
    concepts = detect_concepts(query)
    primary, scores = score_archetypes(query, concepts)
    preference = derive_source_preference(primary, emotion, cfg)

    result = IntentClassification(
        archetype=primary,
        confidence=scores[primary.value],
        fast_path=False,
        scores=scores,
        emotion=emotion,
        concepts=concepts,
        source_preference=preference,
    )

    logger.info(
        "[INTENT] archetype=%s (%.0f%%) | emotion=%s x%d | concepts=%s | prefs primary=%.2f secondary=%.2f",
        result.archetype.value, result.confidence * 100,
        emotion.dominant.value, emotion.intensity,
        ",".join(c.concept for c in concepts) or "-",
        preference.primary, preference.secondary,
    )
    return result
