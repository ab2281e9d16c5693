"""Unit tests for the Pipeline Orchestrator against a scripted backend."""

from __future__ import annotations

import asyncio

import pytest

from app.core.config import Settings
from app.pipeline.orchestrator import PipelineOrchestrator, QueueSink, build_messages
from app.pipeline.templates import template
from app.pipeline.variants import DEEP_EXPERIMENT
from app.schemas.events import ContentDelta, ReasoningDelta, StageStarted
from app.schemas.pipeline import PipelineStage, PipelineVariant, Query, RunStatus, Turn
from tests.fakes import HANG, FakeBackend, ListSink, backend_failure, content, reasoning

TWO_STAGES = PipelineVariant(
    name="two-stage",
    stages=[
        PipelineStage(key="draft", name="Draft", template=template("Evidence: {evidence}"), visible=False),
        PipelineStage(key="final", name="Final", template=template("Refine this draft:\n{draft}\nQ: {question}")),
    ],
)

QUERY = Query(
    text="How do I practice this daily?",
    history=[Turn(role="user", text="What is the plait?"), Turn(role="assistant", text="A point behind you.")],
)


class TestEventOrdering:
    async def test_happy_path_sequence(self, cfg: Settings, sink: ListSink) -> None:
        backend = FakeBackend([
            [reasoning("thinking"), content("first "), content("draft")],
            [content("final "), content("answer")],
        ])

        outcome = await PipelineOrchestrator(backend, cfg).run(TWO_STAGES, QUERY, sink, evidence="book text")

        assert sink.types == [
            "stage_started", "reasoning_delta", "reasoning_delta", "reasoning_delta", "stage_completed",
            "stage_started", "content_delta", "content_delta", "stage_completed",
            "pipeline_completed",
        ]
        assert outcome.status == RunStatus.COMPLETED
        assert outcome.final_text == "final answer"
        assert sink.events[-1].final_text == "final answer"
        assert [p.frozen for p in outcome.passes] == [True, True]

    async def test_stage_started_fields(self, cfg: Settings, sink: ListSink) -> None:
        await PipelineOrchestrator(FakeBackend(), cfg).run(TWO_STAGES, QUERY, sink)

        started = sink.of_type("stage_started")
        assert started == [
            StageStarted(pipeline="two-stage", stage=1, name="Draft", total_stages=2, visible=False),
            StageStarted(pipeline="two-stage", stage=2, name="Final", total_stages=2, visible=True),
        ]

    async def test_stage_summary_is_preview(self, sink: ListSink) -> None:
        cfg = Settings(_env_file=None, stage_summary_chars=5)
        backend = FakeBackend([[content("a long first stage")], [content("ok")]])

        await PipelineOrchestrator(backend, cfg).run(TWO_STAGES, QUERY, sink)

        assert [e.summary for e in sink.of_type("stage_completed")] == ["a lon...", "ok"]

    async def test_deltas_carry_their_stage(self, cfg: Settings, sink: ListSink) -> None:
        await PipelineOrchestrator(FakeBackend(), cfg).run(DEEP_EXPERIMENT, QUERY, sink)

        stages = [e.stage for e in sink.events if e.type in {"reasoning_delta", "content_delta"}]
        assert stages == [1, 2, 3]
        assert sink.events[-1].final_text == "answer 3"


class TestRelay:
    async def test_intermediate_text_relayed_as_reasoning(self, cfg: Settings, sink: ListSink) -> None:
        backend = FakeBackend([[reasoning("hmm"), content("draft")], [content("")]])

        await PipelineOrchestrator(backend, cfg).run(TWO_STAGES, QUERY, sink)

        first_stage = [e for e in sink.events if isinstance(e, ReasoningDelta)]
        assert [(e.text, e.origin) for e in first_stage] == [("hmm", "model"), ("draft", "intermediate")]
        assert not any(isinstance(e, ContentDelta) for e in sink.events)

    async def test_empty_deltas_are_dropped(self, cfg: Settings, sink: ListSink) -> None:
        backend = FakeBackend([[content("x")], [content(""), content("y"), reasoning("")]])

        await PipelineOrchestrator(backend, cfg).run(TWO_STAGES, QUERY, sink)

        assert [e.text for e in sink.of_type("content_delta")] == ["y"]


class TestStageChaining:
    async def test_later_stage_sees_earlier_text(self, cfg: Settings, sink: ListSink) -> None:
        backend = FakeBackend([[content("DRAFT-OUTPUT")], [content("done")]])

        await PipelineOrchestrator(backend, cfg).run(TWO_STAGES, QUERY, sink, evidence="book text")

        first, second = backend.calls
        assert first["instruction"] == "Evidence: book text"
        assert "DRAFT-OUTPUT" in second["instruction"]
        assert "{draft}" not in second["instruction"]
        assert "Q: How do I practice this daily?" in second["instruction"]

    async def test_history_only_in_first_stage(self, cfg: Settings, sink: ListSink) -> None:
        backend = FakeBackend()

        await PipelineOrchestrator(backend, cfg).run(TWO_STAGES, QUERY, sink)

        first, second = backend.calls
        assert [m["role"] for m in first["messages"]] == ["user", "assistant", "user"]
        assert first["messages"][-1]["content"] == QUERY.text
        assert second["messages"] == [{"role": "user", "content": f"Original Question: {QUERY.text}"}]

    async def test_stage_max_tokens_forwarded(self, cfg: Settings, sink: ListSink) -> None:
        variant = PipelineVariant(
            name="short",
            stages=[PipelineStage(key="only", name="Only", template=template("{question}"), max_tokens=256)],
        )
        backend = FakeBackend()

        await PipelineOrchestrator(backend, cfg).run(variant, QUERY, sink)

        assert backend.calls[0]["max_tokens"] == 256

    def test_build_messages_without_history(self) -> None:
        assert build_messages(Query(text="hi"), first_stage=True) == [{"role": "user", "content": "hi"}]


class TestFailures:
    async def test_backend_error_emits_single_pipeline_error(self, cfg: Settings, sink: ListSink) -> None:
        backend = FakeBackend([[content("partial"), backend_failure(503)]])

        outcome = await PipelineOrchestrator(backend, cfg).run(TWO_STAGES, QUERY, sink)

        assert sink.types == ["stage_started", "reasoning_delta", "pipeline_error"]
        error = sink.events[-1]
        assert error.stage == 1
        assert "503" in error.message
        assert len(backend.calls) == 1
        assert outcome.status == RunStatus.FAILED
        assert outcome.failed_stage == 1
        assert "pipeline_completed" not in sink.types

    async def test_failure_in_second_stage_keeps_first_pass(self, cfg: Settings, sink: ListSink) -> None:
        backend = FakeBackend([[content("draft")], [backend_failure(500)]])

        outcome = await PipelineOrchestrator(backend, cfg).run(TWO_STAGES, QUERY, sink)

        assert sink.types[-2:] == ["stage_started", "pipeline_error"]
        assert sink.events[-1].stage == 2
        assert [p.key for p in outcome.passes] == ["draft"]

    async def test_terminal_events_name_their_pipeline(self, cfg: Settings, sink: ListSink) -> None:
        backend = FakeBackend([[content("draft")], [backend_failure(500)]])

        await PipelineOrchestrator(backend, cfg).run(TWO_STAGES, QUERY, sink)

        assert [e.pipeline for e in sink.of_type("stage_completed")] == ["two-stage"]
        assert sink.of_type("pipeline_error")[0].pipeline == "two-stage"

    async def test_unexpected_exception_is_reported_not_raised(self, cfg: Settings, sink: ListSink) -> None:
        backend = FakeBackend([[KeyError("choices")]])

        outcome = await PipelineOrchestrator(backend, cfg).run(TWO_STAGES, QUERY, sink)

        assert sink.types == ["stage_started", "pipeline_error"]
        assert outcome.status == RunStatus.FAILED

    async def test_idle_timeout_fails_the_stage(self, sink: ListSink) -> None:
        cfg = Settings(_env_file=None, stage_idle_timeout_seconds=0.05)
        backend = FakeBackend([[content("partial"), HANG]])

        outcome = await PipelineOrchestrator(backend, cfg).run(TWO_STAGES, QUERY, sink)

        assert sink.types[-1] == "pipeline_error"
        assert "no data" in sink.events[-1].message
        assert outcome.failed_stage == 1
        assert backend.closed == 1


class TestCancellation:
    async def test_cancel_mid_stage_emits_nothing_further(self, cfg: Settings, sink: ListSink) -> None:
        backend = FakeBackend([[content("draft")], [content("partial"), HANG]])
        task = asyncio.create_task(PipelineOrchestrator(backend, cfg).run(TWO_STAGES, QUERY, sink))

        async def second_stage_streaming() -> None:
            while len(sink.of_type("content_delta")) < 1:
                await asyncio.sleep(0)

        await asyncio.wait_for(second_stage_streaming(), 1.0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert sink.types[-1] == "content_delta"
        assert "pipeline_error" not in sink.types
        assert "pipeline_completed" not in sink.types
        assert backend.closed == 2


class TestQueueSink:
    async def test_events_until_close(self) -> None:
        sink = QueueSink()
        await sink.emit(ContentDelta(stage=1, text="a"))
        await sink.emit(ContentDelta(stage=1, text="b"))
        await sink.close()

        received = [e.text async for e in sink.events()]

        assert received == ["a", "b"]
