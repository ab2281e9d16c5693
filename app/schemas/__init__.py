"""
Pydantic schemas for every pipeline boundary.
Each module covers one pipeline component or cross-cutting concern.
"""

from app.schemas.intent import (
    Archetype,
    ConceptMatch,
    Emotion,
    EmotionalState,
    IntentClassification,
    SourcePreference,
)
from app.schemas.retrieval import (
    Passage,
    RetrievalMode,
    RetrievalResult,
    SourceCategory,
)
from app.schemas.pipeline import (
    PassResult,
    PipelineOutcome,
    PipelineStage,
    PipelineVariant,
    Query,
    RunStatus,
    Turn,
)
from app.schemas.events import (
    ContentDelta,
    IntentDetected,
    PipelineCompleted,
    PipelineError,
    ReasoningDelta,
    StageCompleted,
    StageStarted,
    StreamEvent,
)
from app.schemas.response import ChatMode, ChatRequest, ClassifyRequest, ClassifyResponse

__all__ = [
    # Intent
    "Archetype",
    "ConceptMatch",
    "Emotion",
    "EmotionalState",
    "IntentClassification",
    "SourcePreference",
    # Retrieval
    "Passage",
    "RetrievalMode",
    "RetrievalResult",
    "SourceCategory",
    # Pipeline
    "PassResult",
    "PipelineOutcome",
    "PipelineStage",
    "PipelineVariant",
    "Query",
    "RunStatus",
    "Turn",
    # Events
    "ContentDelta",
    "IntentDetected",
    "PipelineCompleted",
    "PipelineError",
    "ReasoningDelta",
    "StageCompleted",
    "StageStarted",
    "StreamEvent",
    # API
    "ChatMode",
    "ChatRequest",
    "ClassifyRequest",
    "ClassifyResponse",
]
