"""Unit tests for the Retrieval Fusion Engine with in-memory collaborators."""

from __future__ import annotations

from pathlib import Path

import pytest

from app.core.config import Settings
from app.pipeline.intent import classify
from app.pipeline.retrieval import RetrievalEngine, passage_from_match, select_mode
from app.schemas.retrieval import RetrievalMode, SourceCategory
from app.services.corpus import CorpusCache
from tests.fakes import FakeEmbedder, FakeIndex, FakeReranker, match


@pytest.fixture
def engine(fake_embedder, fake_index, corpus, fake_reranker, cfg) -> RetrievalEngine:
    return RetrievalEngine(
        embedder=fake_embedder,
        index=fake_index,
        corpus=corpus,
        reranker=fake_reranker,
        cfg=cfg,
    )


class TestModeSelection:
    @pytest.mark.parametrize(
        ("query", "mode"),
        [
            ("hey", RetrievalMode.NONE),
            ("read page 4", RetrievalMode.DIRECT_READ),
            ("quote the book on importance", RetrievalMode.HYBRID),
            ("How do I practice this daily?", RetrievalMode.SEMANTIC),
            ("tell me about pendulums", RetrievalMode.SEMANTIC),
        ],
    )
    def test_mode_follows_classification(self, query: str, mode: RetrievalMode) -> None:
        assert select_mode(classify(query)) == mode


class TestChatFastPath:
    async def test_no_io_for_greetings(
        self, engine: RetrievalEngine, fake_embedder: FakeEmbedder, fake_index: FakeIndex,
    ) -> None:
        result = await engine.retrieve("hello", classify("hello"))

        assert result.is_empty
        assert result.mode == RetrievalMode.NONE
        assert fake_embedder.calls == 0
        assert fake_index.requested == []


class TestDirectRead:
    async def test_single_passage(self, engine: RetrievalEngine, fake_embedder: FakeEmbedder) -> None:
        result = await engine.retrieve("read page 2", classify("read page 2"))

        assert result.mode == RetrievalMode.DIRECT_READ
        assert len(result.passages) == 1
        assert result.passages[0].is_direct_read
        assert result.passages[0].score == 1.0
        assert fake_embedder.calls == 0

    async def test_page_past_end_stays_direct_read(self, engine: RetrievalEngine, fake_embedder: FakeEmbedder) -> None:
        result = await engine.retrieve("read page 900", classify("read page 900"))

        assert result.mode == RetrievalMode.DIRECT_READ
        assert len(result.passages) == 1
        assert result.passages[0].is_direct_read
        assert result.passages[0].score == 1.0
        assert fake_embedder.calls == 0

    async def test_unreadable_document_falls_back_to_semantic(
        self, fake_embedder: FakeEmbedder, fake_index: FakeIndex, tmp_path: Path, cfg: Settings,
    ) -> None:
        engine = RetrievalEngine(fake_embedder, fake_index, CorpusCache(tmp_path), cfg=cfg)

        result = await engine.retrieve("read page 2", classify("read page 2"))

        assert result.mode == RetrievalMode.SEMANTIC
        assert not any(p.is_direct_read for p in result.passages)
        assert fake_embedder.calls == 1


class TestSemanticSearch:
    async def test_overfetch_floor_and_rerank(
        self, engine: RetrievalEngine, fake_index: FakeIndex, fake_reranker: FakeReranker,
    ) -> None:
        passages = await engine.semantic_search("pendulum importance", top_k=3)

        assert fake_index.requested == [9]
        assert fake_reranker.calls == 1
        assert len(passages) == 3
        assert all(p.is_reranked for p in passages)
        # fake re-ranker reverses the four above-floor candidates
        assert passages[0].text.startswith("Daily exercise")
        assert passages[0].semantic_score == pytest.approx(0.60)
        assert all("Unrelated noise" not in p.text for p in passages)

    async def test_rerank_failure_keeps_similarity_order(
        self, fake_embedder: FakeEmbedder, fake_index: FakeIndex, corpus: CorpusCache, cfg: Settings,
    ) -> None:
        engine = RetrievalEngine(fake_embedder, fake_index, corpus, FakeReranker(fail=True), cfg)

        passages = await engine.semantic_search("pendulum", top_k=2)

        assert [p.score for p in passages] == [pytest.approx(0.82), pytest.approx(0.78)]
        assert not any(p.is_reranked for p in passages)

    async def test_rerank_disabled(
        self, fake_embedder: FakeEmbedder, fake_index: FakeIndex, fake_reranker: FakeReranker, corpus: CorpusCache,
    ) -> None:
        cfg = Settings(_env_file=None, rerank_enabled=False)
        engine = RetrievalEngine(fake_embedder, fake_index, corpus, fake_reranker, cfg)

        await engine.semantic_search("pendulum", top_k=2)

        assert fake_reranker.calls == 0

    async def test_embedding_failure_degrades_to_empty(
        self, fake_index: FakeIndex, corpus: CorpusCache, cfg: Settings,
    ) -> None:
        engine = RetrievalEngine(FakeEmbedder(fail=True), fake_index, corpus, cfg=cfg)

        assert await engine.semantic_search("pendulum", top_k=3) == []
        assert fake_index.requested == []

    async def test_index_failure_degrades_to_empty(
        self, fake_embedder: FakeEmbedder, corpus: CorpusCache, cfg: Settings,
    ) -> None:
        engine = RetrievalEngine(fake_embedder, FakeIndex(fail=True), corpus, cfg=cfg)

        result = await engine.retrieve("tell me about pendulums", classify("tell me about pendulums"))

        assert result.is_empty
        assert result.mode == RetrievalMode.SEMANTIC


class TestWeightedSemantic:
    async def test_application_favors_secondary(self, corpus: CorpusCache, cfg: Settings) -> None:
        index = FakeIndex([
            match(1, "Book passage on applying intention at work.", 0.7, "book"),
            match(2, "Course passage on applying intention at work.", 0.7, "course"),
        ])
        engine = RetrievalEngine(FakeEmbedder(), index, corpus, cfg=cfg)
        classification = classify("How should I apply this to my job situation?")

        result = await engine.retrieve("How should I apply this to my job situation?", classification, top_k=2)

        assert classification.archetype.value == "application"
        assert [p.category for p in result.passages] == [SourceCategory.SECONDARY, SourceCategory.PRIMARY]
        assert index.requested == [2 * 2 * 3]

    async def test_top_k_defaults_from_settings(self, engine: RetrievalEngine, fake_index: FakeIndex) -> None:
        result = await engine.retrieve("tell me about pendulums", classify("tell me about pendulums"))

        assert len(result.passages) <= engine.cfg.retrieval_top_k
        assert fake_index.requested == [engine.cfg.retrieval_top_k * 2 * 3]


class TestHybrid:
    async def test_verbatim_uses_keyword_heavy_fusion(self, corpus: CorpusCache, cfg: Settings) -> None:
        index = FakeIndex([
            match(1, "Semantic neighbour without the words.", 0.9),
            match(2, "The plait is located behind your shoulder blades.", 0.5),
        ])
        engine = RetrievalEngine(FakeEmbedder(), index, corpus, cfg=cfg)
        query = "quote the plait shoulder blades"

        result = await engine.retrieve(query, classify(query), top_k=2)

        assert result.mode == RetrievalMode.HYBRID
        assert result.passages[0].text.startswith("The plait")
        assert len({p.text for p in result.passages}) == len(result.passages)


class TestPassageFromMatch:
    def test_course_metadata(self) -> None:
        p = passage_from_match(match(7, "text", 0.55, "course"))

        assert p.category == SourceCategory.SECONDARY
        assert p.source == "Reality 2.0"
        assert p.author == "Renee Garcia"

    def test_negative_similarity_clamped(self) -> None:
        p = passage_from_match(match(8, "text", -0.2))

        assert p.score == 0.0
