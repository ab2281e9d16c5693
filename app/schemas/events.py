"""
Stream events written to the caller's event sink.

Each event is a small tagged object; ``type`` is the discriminator on
the wire.  Deltas always carry the ordinal of the stage they belong to.
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter


class StageStarted(BaseModel):
    type: Literal["stage_started"] = "stage_started"
    pipeline: str
    stage: int
    name: str
    total_stages: int
    visible: bool = True


class ReasoningDelta(BaseModel):
    """
    Incremental reasoning text.  ``origin`` tells model reasoning tokens
    apart from answer text of an intermediate (non-visible) stage.
    """
    type: Literal["reasoning_delta"] = "reasoning_delta"
    stage: int
    text: str
    origin: Literal["model", "intermediate"] = "model"


class ContentDelta(BaseModel):
    type: Literal["content_delta"] = "content_delta"
    stage: int
    text: str


class StageCompleted(BaseModel):
    type: Literal["stage_completed"] = "stage_completed"
    pipeline: str
    stage: int
    name: str
    summary: str = ""


class PipelineError(BaseModel):
    """``pipeline`` and ``stage`` are unset when the failure happened outside any pipeline run."""
    type: Literal["pipeline_error"] = "pipeline_error"
    pipeline: str | None = None
    stage: int | None = None
    message: str


class PipelineCompleted(BaseModel):
    type: Literal["pipeline_completed"] = "pipeline_completed"
    pipeline: str
    final_text: str


class IntentDetected(BaseModel):
    """Observability echo of the classification, emitted before any stage."""
    type: Literal["intent"] = "intent"
    archetype: str
    confidence: float
    emotion: str
    retrieval_mode: str
    passages: int
    sources: list[str] = Field(default_factory=list)


StreamEvent = Annotated[
    Union[
        StageStarted,
        ReasoningDelta,
        ContentDelta,
        StageCompleted,
        PipelineError,
        PipelineCompleted,
        IntentDetected,
    ],
    Field(discriminator="type"),
]

stream_event_adapter: TypeAdapter[StreamEvent] = TypeAdapter(StreamEvent)


def encode_sse(event: BaseModel) -> str:
    """One event per SSE frame, JSON encoded."""
    return f"data: {event.model_dump_json()}\n\n"
