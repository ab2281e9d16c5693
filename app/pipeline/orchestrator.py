"""
Pipeline Orchestrator.

Runs a PipelineVariant's stages strictly in order.  For each stage:
  stage_started → deltas relayed as they arrive → stage_completed
and after the last stage: pipeline_completed.  A failing stage emits
one pipeline_error and the remaining stages are skipped.

Caller cancellation is not an error: the open backend stream is
closed, nothing more is emitted, and CancelledError propagates.
"""

from __future__ import annotations

import asyncio
from typing import AsyncIterator, Protocol

from pydantic import BaseModel

from app.core.config import Settings, settings as default_settings
from app.pipeline.templates import TemplateError
from app.schemas.events import (
    ContentDelta,
    PipelineCompleted,
    PipelineError,
    ReasoningDelta,
    StageCompleted,
    StageStarted,
)
from app.schemas.pipeline import (
    PassResult,
    PipelineOutcome,
    PipelineStage,
    PipelineVariant,
    Query,
    RunStatus,
)
from app.services.llm import BackendDelta, BackendError, LLMBackend
from app.utils.logging import get_logger
from app.utils.text import preview
from app.utils.timing import Timer

logger = get_logger("tufti.pipeline.orchestrator")


class EventSink(Protocol):
    async def emit(self, event: BaseModel) -> None:
        ...


class QueueSink:
    """Event sink backed by an asyncio.Queue; ``None`` marks end of stream."""

    def __init__(self, queue: asyncio.Queue | None = None):
        self.queue: asyncio.Queue = queue or asyncio.Queue()

    async def emit(self, event: BaseModel) -> None:
        await self.queue.put(event)

    async def close(self) -> None:
        await self.queue.put(None)

    async def events(self) -> AsyncIterator[BaseModel]:
        while True:
            event = await self.queue.get()
            if event is None:
                return
            yield event


def build_messages(query: Query, first_stage: bool) -> list[dict[str, str]]:
    """
    First stage: full prior-turn history plus the question.
    Later stages: only the question; earlier findings are already in
    the instruction text.
    """
    if first_stage:
        messages = [{"role": t.role, "content": t.text} for t in query.history]
        messages.append({"role": "user", "content": query.text})
        return messages
    return [{"role": "user", "content": f"Original Question: {query.text}"}]


class PipelineOrchestrator:
    def __init__(self, backend: LLMBackend, cfg: Settings | None = None):
        self.backend = backend
        self.cfg = cfg or default_settings

    async def run(
        self,
        variant: PipelineVariant,
        query: Query,
        sink: EventSink,
        *,
        evidence: str = "",
        findings: str = "",
    ) -> PipelineOutcome:
        """Run every stage of ``variant`` and return the outcome; the answer is the last stage's text."""
        passes: list[PassResult] = []
        base_values = {
            "question": query.text,
            "evidence": evidence,
            "memory": query.memory_summary or "",
            "findings": findings,
        }

        logger.info(
            "[PIPELINE] %s started | %d stage(s) | question: %s",
            variant.name, variant.total_stages, query.text[:80],
        )

        for ordinal, stage in enumerate(variant.stages, start=1):
            result = PassResult(stage=ordinal, key=stage.key, name=stage.name)

            await sink.emit(StageStarted(
                pipeline=variant.name,
                stage=ordinal,
                name=stage.name,
                total_stages=variant.total_stages,
                visible=stage.visible,
            ))

            try:
                values = {**base_values, **{p.key: p.text for p in passes}}
                instruction = stage.template.render(values)
                async with Timer(f"{variant.name}:{stage.key}", logger) as timer:
                    await self._stream_stage(
                        stage, result, instruction, build_messages(query, ordinal == 1), sink, timer,
                    )
            except asyncio.CancelledError:
                logger.info("[PIPELINE] %s cancelled during stage %d (%s)", variant.name, ordinal, stage.name)
                raise
            except (BackendError, TemplateError) as e:
                return await self._fail(variant, passes, ordinal, str(e), sink)
            except Exception as e:
                logger.exception("[PIPELINE] unexpected failure in stage %d", ordinal)
                return await self._fail(variant, passes, ordinal, f"Stage failed: {e}", sink)

            result.freeze()
            passes.append(result)
            await sink.emit(StageCompleted(
                pipeline=variant.name,
                stage=ordinal,
                name=stage.name,
                summary=preview(result.text, self.cfg.stage_summary_chars),
            ))
            logger.info(
                "[PIPELINE] %s stage %d/%d (%s) done | %d chars",
                variant.name, ordinal, variant.total_stages, stage.name, len(result.text),
            )

        final_text = passes[-1].text
        await sink.emit(PipelineCompleted(pipeline=variant.name, final_text=final_text))
        logger.info("[PIPELINE] %s completed | answer %d chars", variant.name, len(final_text))
        return PipelineOutcome(
            pipeline=variant.name,
            status=RunStatus.COMPLETED,
            passes=passes,
            final_text=final_text,
        )

    async def _stream_stage(
        self,
        stage: PipelineStage,
        result: PassResult,
        instruction: str,
        messages: list[dict[str, str]],
        sink: EventSink,
        timer: Timer,
    ) -> None:
        stream = self.backend.stream(
            instruction=instruction,
            messages=messages,
            max_tokens=stage.max_tokens or self.cfg.default_stage_max_tokens,
        )
        iterator = stream.__aiter__()
        timeout = self.cfg.stage_idle_timeout_seconds
        try:
            while True:
                try:
                    delta = await asyncio.wait_for(iterator.__anext__(), timeout)
                except StopAsyncIteration:
                    break
                except asyncio.TimeoutError:
                    raise BackendError(f"Backend sent no data for {timeout:.0f}s")
                timer.mark("first_delta")
                await self._relay(stage, result, delta, sink)
        finally:
            aclose = getattr(iterator, "aclose", None)
            if aclose is not None:
                await aclose()

    async def _relay(
        self,
        stage: PipelineStage,
        result: PassResult,
        delta: BackendDelta,
        sink: EventSink,
    ) -> None:
        if not delta.text:
            return
        if delta.kind == "reasoning":
            result.append_reasoning(delta.text)
            await sink.emit(ReasoningDelta(stage=result.stage, text=delta.text))
            return

        result.append_text(delta.text)
        if stage.visible:
            await sink.emit(ContentDelta(stage=result.stage, text=delta.text))
        else:
            await sink.emit(ReasoningDelta(stage=result.stage, text=delta.text, origin="intermediate"))

    async def _fail(
        self,
        variant: PipelineVariant,
        passes: list[PassResult],
        ordinal: int,
        message: str,
        sink: EventSink,
    ) -> PipelineOutcome:
        logger.error("[PIPELINE] %s failed at stage %d: %s", variant.name, ordinal, message)
        await sink.emit(PipelineError(pipeline=variant.name, stage=ordinal, message=message))
        return PipelineOutcome(
            pipeline=variant.name,
            status=RunStatus.FAILED,
            passes=passes,
            failed_stage=ordinal,
            error=message,
        )
