"""
Request flow for one chat turn.

classify → retrieve → intent event → pick variant(s) → orchestrate.

In auto mode a complex question runs the research chain first and its
findings are handed to the persona answer; simple questions go straight
to the persona answer.  Deep mode runs the 3-pass experiment instead.
"""

from __future__ import annotations

from app.core.config import Settings, settings as default_settings
from app.pipeline.context import format_evidence, is_complex_question
from app.pipeline.intent import classify
from app.pipeline.orchestrator import EventSink, PipelineOrchestrator
from app.pipeline.retrieval import RetrievalEngine
from app.pipeline.variants import DEEP_EXPERIMENT, PERSONA_ANSWER, RESEARCH_CHAIN, research_findings
from app.schemas.events import IntentDetected
from app.schemas.intent import Archetype, IntentClassification
from app.schemas.pipeline import PipelineOutcome, Query
from app.schemas.response import ChatMode, ChatRequest
from app.utils.logging import get_logger

logger = get_logger("tufti.pipeline.chat")


class ChatService:
    def __init__(
        self,
        retrieval: RetrievalEngine,
        orchestrator: PipelineOrchestrator,
        cfg: Settings | None = None,
    ):
        self.retrieval = retrieval
        self.orchestrator = orchestrator
        self.cfg = cfg or default_settings

    def _wants_research(self, query: Query, mode: ChatMode, classification: IntentClassification) -> bool:
        if mode == ChatMode.RESEARCH:
            return True
        if classification.is_chat or classification.archetype == Archetype.DIRECT_READ:
            return False
        return is_complex_question(query.text, classification.emotion.intensity, self.cfg)

    async def handle(self, request: ChatRequest, sink: EventSink) -> PipelineOutcome:
        query = Query(
            text=request.query,
            history=request.history,
            memory_summary=request.memory_summary,
            media_refs=request.media_refs,
        )

        classification = classify(query.text, self.cfg)
        retrieval = await self.retrieval.retrieve(query.text, classification, request.top_k)

        await sink.emit(IntentDetected(
            archetype=classification.archetype.value,
            confidence=classification.confidence,
            emotion=classification.emotion.dominant.value,
            retrieval_mode=retrieval.mode.value,
            passages=len(retrieval.passages),
            sources=list(dict.fromkeys(p.source for p in retrieval.passages)),
        ))

        evidence = format_evidence(retrieval, self.cfg)

        if request.mode == ChatMode.DEEP:
            return await self.orchestrator.run(DEEP_EXPERIMENT, query, sink, evidence=evidence)

        findings = ""
        if self._wants_research(query, request.mode, classification):
            logger.info("[CHAT] running research chain before the answer")
            research = await self.orchestrator.run(RESEARCH_CHAIN, query, sink, evidence=evidence)
            if not research.succeeded:
                return research
            findings = research_findings([p.text for p in research.passes])

        return await self.orchestrator.run(
            PERSONA_ANSWER, query, sink, evidence=evidence, findings=findings,
        )
