"""
Schemas for the Pipeline Orchestrator.

PipelineStage / PipelineVariant are static configuration: a variant is
an ordered list of stages and is validated once, when it is defined.
PassResult is the per-stage accumulator that is frozen when the stage's
stream completes.  PipelineOutcome is what a run hands back.
"""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, model_validator

from app.pipeline.templates import BASE_SLOTS, StageTemplate, TemplateError


class Turn(BaseModel):
    """One prior conversational turn."""
    model_config = ConfigDict(frozen=True)

    role: Literal["user", "assistant"]
    text: str


class Query(BaseModel):
    """Immutable per-request input."""
    model_config = ConfigDict(frozen=True)

    text: str
    history: list[Turn] = Field(default_factory=list)
    memory_summary: str | None = None
    media_refs: list[str] = Field(default_factory=list)


class PipelineStage(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    name: str
    template: StageTemplate
    max_tokens: int = 4096
    visible: bool = True


class PipelineVariant(BaseModel):
    """
    Ordered list of stages.  Slot references are checked here: every
    slot must be a base slot or the key of an *earlier* stage.
    """
    model_config = ConfigDict(frozen=True)

    name: str
    stages: list[PipelineStage]

    @model_validator(mode="after")
    def _check_slots(self) -> "PipelineVariant":
        if not self.stages:
            raise TemplateError(f"Pipeline '{self.name}' has no stages")
        seen: set[str] = set()
        for stage in self.stages:
            if stage.key in BASE_SLOTS or stage.key in seen:
                raise TemplateError(
                    f"Pipeline '{self.name}': stage key '{stage.key}' is reserved or duplicated"
                )
            for slot in stage.template.slots:
                if slot in BASE_SLOTS or slot in seen:
                    continue
                raise TemplateError(
                    f"Pipeline '{self.name}': stage '{stage.key}' references "
                    f"unknown or later slot '{slot}'"
                )
            seen.add(stage.key)
        return self

    @property
    def total_stages(self) -> int:
        return len(self.stages)


class PassResult(BaseModel):
    """Accumulated output of one stage; append-only until frozen."""
    stage: int
    key: str
    name: str
    reasoning: str = ""
    text: str = ""

    _frozen: bool = PrivateAttr(default=False)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def append_reasoning(self, delta: str) -> None:
        self._ensure_open()
        self.reasoning += delta

    def append_text(self, delta: str) -> None:
        self._ensure_open()
        self.text += delta

    def freeze(self) -> None:
        self._frozen = True

    def _ensure_open(self) -> None:
        if self._frozen:
            raise RuntimeError(f"PassResult for stage {self.stage} is frozen")


class RunStatus(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"


class PipelineOutcome(BaseModel):
    pipeline: str
    status: RunStatus
    passes: list[PassResult] = Field(default_factory=list)
    final_text: str | None = None
    failed_stage: int | None = None
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == RunStatus.COMPLETED
