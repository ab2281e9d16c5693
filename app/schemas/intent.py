"""
Schema for the Intent Classifier output.

IntentClassification is computed once per query and consumed by the
Retrieval Fusion Engine.  Every field is explicit so retrieval never
has to re-derive anything from the raw text.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Archetype(str, Enum):
    """Coarse intent categories.  CHAT and DIRECT_READ only come from fast checks."""
    WISDOM = "wisdom"
    ACTION = "action"
    EXPLORATION = "exploration"
    COMFORT = "comfort"
    APPLICATION = "application"
    VERBATIM = "verbatim"
    DIRECT_READ = "direct-read"
    CHAT = "chat"


# Archetypes that take part in weighted scoring, in tie-break order
SCORED_ARCHETYPES: tuple[Archetype, ...] = (
    Archetype.WISDOM,
    Archetype.ACTION,
    Archetype.EXPLORATION,
    Archetype.COMFORT,
    Archetype.APPLICATION,
    Archetype.VERBATIM,
)


class Emotion(str, Enum):
    VULNERABLE = "vulnerable"
    FRUSTRATED = "frustrated"
    CURIOUS = "curious"
    DETERMINED = "determined"
    EXCITED = "excited"
    NEUTRAL = "neutral"


class EmotionalState(BaseModel):
    model_config = ConfigDict(frozen=True)

    dominant: Emotion = Emotion.NEUTRAL
    intensity: int = 0
    scores: dict[str, int] = Field(default_factory=dict)


class ConceptMatch(BaseModel):
    model_config = ConfigDict(frozen=True)

    concept: str
    keyword: str


class SourcePreference(BaseModel):
    """
    Independent relevance multipliers for the two corpus categories.
    Not a probability distribution: the pair is never renormalized.
    """
    model_config = ConfigDict(frozen=True)

    primary: float = 0.5
    secondary: float = 0.5


class IntentClassification(BaseModel):
    """Complete decision object produced by the Intent Classifier."""
    model_config = ConfigDict(frozen=True)

    archetype: Archetype
    confidence: float = Field(ge=0.0, le=1.0)
    fast_path: bool = False
    scores: dict[str, float] = Field(default_factory=dict)
    emotion: EmotionalState = Field(default_factory=EmotionalState)
    concepts: list[ConceptMatch] = Field(default_factory=list)
    source_preference: SourcePreference = Field(default_factory=SourcePreference)

    @property
    def is_chat(self) -> bool:
        return self.fast_path and self.archetype == Archetype.CHAT
