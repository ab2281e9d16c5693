"""
Schemas for Retrieval Fusion Engine output.

RetrievalResult carries ranked passages plus the classification that
shaped them into prompt assembly.  Every passage carries its source and
category so formatting never guesses from raw index metadata.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

from app.schemas.intent import IntentClassification


class SourceCategory(str, Enum):
    PRIMARY = "primary"  # books
    SECONDARY = "secondary"  # practitioner courses


class RetrievalMode(str, Enum):
    NONE = "none"
    DIRECT_READ = "direct-read"
    KEYWORD = "keyword"
    SEMANTIC = "semantic"
    HYBRID = "hybrid"


class Passage(BaseModel):
    """One unit of retrieved evidence."""
    text: str
    source: str = "Unknown"
    category: SourceCategory | None = None
    author: str | None = None
    score: float = Field(default=0.0, ge=0.0, le=1.0)

    # Per-strategy scores kept for fusion and diagnostics
    semantic_score: float | None = None
    keyword_score: float | None = None
    weighted_score: float | None = None

    is_direct_read: bool = False
    is_reranked: bool = False

    @property
    def ranking_score(self) -> float:
        """Score used for ordering: the source-weighted one when present."""
        return self.weighted_score if self.weighted_score is not None else self.score


class RetrievalResult(BaseModel):
    """Complete output of the Retrieval Fusion Engine."""
    passages: list[Passage] = Field(default_factory=list)
    classification: IntentClassification
    mode: RetrievalMode = RetrievalMode.NONE

    @property
    def is_empty(self) -> bool:
        return not self.passages
