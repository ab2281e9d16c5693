"""Pytest fixtures and shared test configuration.

Collaborators that would touch the network (LLM backend, embeddings,
vector index, re-ranker) are replaced by the fakes in tests/fakes.py.

Fixtures:
    - cfg: Settings with re-ranking on and a short idle timeout
    - sink: event sink collecting everything emitted
    - corpus_dir / corpus: temp directory holding a fake book
    - fake_index / fake_embedder / fake_reranker: retrieval fakes
"""

from __future__ import annotations

from pathlib import Path

import pytest

from app.core.config import Settings
from app.pipeline.direct_read import DOCUMENTS
from app.services.corpus import CorpusCache
from tests.fakes import FakeEmbedder, FakeIndex, FakeReranker, ListSink, match


@pytest.fixture(autouse=True)
def word_token_count(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep tiktoken's encoding download out of tests."""
    monkeypatch.setattr("app.pipeline.context.count_tokens", lambda text: len(text.split()))


@pytest.fixture
def cfg() -> Settings:
    return Settings(
        _env_file=None,
        rerank_enabled=True,
        stage_idle_timeout_seconds=2.0,
    )


@pytest.fixture
def sink() -> ListSink:
    return ListSink()


@pytest.fixture
def corpus_dir(tmp_path: Path) -> Path:
    """A fake transurfing book: intro, foreword, two chapters, 400 numbered lines."""
    lines = ["Title page", "OceanofPDF.com", "", "", "", "FOREWORD", "Foreword text."]
    lines += ["CHAPTER I", "The space of variations.", "\f", "Chapter one body."]
    lines += [f"line {n}" for n in range(400)]
    lines += ["CHAPTER 2", "Pendulums."]
    default = next(d for d in DOCUMENTS if d.key == "transurfing")
    (tmp_path / default.filename).write_text("\n".join(lines), encoding="utf-8")
    return tmp_path


@pytest.fixture
def corpus(corpus_dir: Path) -> CorpusCache:
    return CorpusCache(corpus_dir)


@pytest.fixture
def fake_embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def fake_index() -> FakeIndex:
    return FakeIndex([
        match(1, "Drop importance and the pendulum loses its grip on you.", 0.82),
        match(2, "Practice the plait every morning: feel it, then set the slide.", 0.78, "course"),
        match(3, "Outer intention works through the space of variations.", 0.64),
        match(4, "Daily exercise: stop, wake up, observe the frame.", 0.60, "course"),
        match(5, "Unrelated noise below the floor.", 0.10),
    ])


@pytest.fixture
def fake_reranker() -> FakeReranker:
    return FakeReranker()
