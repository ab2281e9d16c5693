"""
External API schemas for the chat and classify endpoints.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, field_validator

from app.schemas.intent import IntentClassification
from app.schemas.pipeline import Turn


class ChatMode(str, Enum):
    AUTO = "auto"  # persona answer, with research chain for complex questions
    RESEARCH = "research"  # always run the research chain first
    DEEP = "deep"  # 3-pass iterative refinement


class ChatRequest(BaseModel):
    query: str = Field(..., min_length=1)
    history: list[Turn] = Field(default_factory=list)
    memory_summary: str | None = None
    media_refs: list[str] = Field(default_factory=list)
    top_k: int | None = Field(default=None, ge=1, le=50)
    mode: ChatMode = ChatMode.AUTO

    @field_validator("query", mode="before")
    @classmethod
    def strip_query(cls, v: str) -> str:
        if isinstance(v, str):
            return v.strip()
        return v


class ClassifyRequest(BaseModel):
    query: str = Field(..., min_length=1)


class ClassifyResponse(BaseModel):
    classification: IntentClassification
    retrieval_mode: str
