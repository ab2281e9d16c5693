"""
Retrieval Fusion Engine.

Mode is picked from the classification:
  - chat (fast path)   → no retrieval, no I/O
  - direct-read        → window of lines from a corpus document
  - verbatim           → hybrid search, keyword-heavy
  - everything else    → over-fetched semantic search + source weighting

Every collaborator call (embedding, index query, re-rank, corpus read)
is guarded on its own: a failure degrades that sub-search to an empty
or un-reranked list and never aborts the whole call.
"""

from __future__ import annotations

from typing import Any

from app.core.config import Settings, settings as default_settings
from app.pipeline.direct_read import read_passage
from app.pipeline.fusion import apply_source_preference, clamp01, hybrid_merge, keyword_search
from app.schemas.intent import Archetype, IntentClassification, SourcePreference
from app.schemas.retrieval import Passage, RetrievalMode, RetrievalResult, SourceCategory
from app.services.corpus import CorpusCache
from app.services.embedding import Embedder
from app.services.reranker import Reranker
from app.services.vector_store import IndexMatch
from app.utils.logging import get_logger
from app.utils.timing import Timer

logger = get_logger("tufti.pipeline.retrieval")

_CATEGORY_BY_SOURCE_TYPE = {
    "book": SourceCategory.PRIMARY,
    "course": SourceCategory.SECONDARY,
}


def passage_from_match(match: IndexMatch) -> Passage:
    meta: dict[str, Any] = match.metadata
    similarity = clamp01(match.similarity)
    return Passage(
        text=match.text or meta.get("text", ""),
        source=meta.get("book") or meta.get("source") or "Unknown",
        category=_CATEGORY_BY_SOURCE_TYPE.get(str(meta.get("source_type", "")).lower()),
        author=meta.get("author"),
        score=similarity,
        semantic_score=similarity,
    )


def select_mode(classification: IntentClassification) -> RetrievalMode:
    if classification.is_chat:
        return RetrievalMode.NONE
    if classification.archetype == Archetype.DIRECT_READ:
        return RetrievalMode.DIRECT_READ
    if classification.archetype == Archetype.VERBATIM:
        return RetrievalMode.HYBRID
    return RetrievalMode.SEMANTIC


class RetrievalEngine:
    def __init__(
        self,
        embedder: Embedder,
        index: Any,
        corpus: CorpusCache,
        reranker: Reranker | None = None,
        cfg: Settings | None = None,
    ):
        self.embedder = embedder
        self.index = index
        self.corpus = corpus
        self.reranker = reranker
        self.cfg = cfg or default_settings

    async def retrieve(
        self,
        query: str,
        classification: IntentClassification,
        top_k: int | None = None,
    ) -> RetrievalResult:
        top_k = top_k or self.cfg.retrieval_top_k
        mode = select_mode(classification)

        if mode == RetrievalMode.NONE:
            logger.info("[RETRIEVAL] chat fast path, skipping retrieval")
            return RetrievalResult(classification=classification, mode=mode)

        async with Timer("retrieval") as t:
            if mode == RetrievalMode.DIRECT_READ:
                passage = await read_passage(query, self.corpus, self.cfg)
                if passage is not None:
                    return RetrievalResult(passages=[passage], classification=classification, mode=mode)
                logger.warning("[RETRIEVAL] direct read unavailable, falling back to semantic search")
                mode = RetrievalMode.SEMANTIC

            if mode == RetrievalMode.HYBRID:
                passages = await self.hybrid_search(
                    query,
                    top_k,
                    semantic_weight=self.cfg.verbatim_semantic_weight,
                    keyword_weight=self.cfg.verbatim_keyword_weight,
                )
            else:
                passages = await self.weighted_semantic_search(
                    query, classification.source_preference, top_k,
                )

        logger.info(
            "[RETRIEVAL] mode=%s | %d passage(s) | %.1fms",
            mode.value, len(passages), t.elapsed_ms,
        )
        return RetrievalResult(passages=passages, classification=classification, mode=mode)

    # ── Semantic ────────────────────────────────────────────────────

    async def semantic_search(self, query: str, top_k: int) -> list[Passage]:
        """
        Embed → nearest neighbours (top_k × multiplier) → similarity floor
        → optional cross-encoder re-rank → truncate.
        """
        try:
            vector = await self.embedder.embed(query)
        except Exception as e:
            logger.warning("[RETRIEVAL] embedding failed: %s", e)
            return []

        n_candidates = top_k * self.cfg.semantic_candidate_multiplier
        try:
            matches = await self.index.query(vector, n_candidates)
        except Exception as e:
            logger.warning("[RETRIEVAL] vector index query failed: %s", e)
            return []

        candidates = [
            passage_from_match(m) for m in matches
            if m.similarity > self.cfg.similarity_floor
        ]
        logger.info(
            "[RETRIEVAL] semantic: %d match(es), %d above floor %.2f",
            len(matches), len(candidates), self.cfg.similarity_floor,
        )
        if not candidates:
            return []

        return await self._rerank(query, candidates, top_k)

    async def _rerank(self, query: str, candidates: list[Passage], top_k: int) -> list[Passage]:
        if self.reranker is None or not self.cfg.rerank_enabled:
            return candidates[:top_k]

        try:
            ranked = await self.reranker.rerank(
                query, [p.text for p in candidates], min(top_k, len(candidates)),
            )
        except Exception as e:
            logger.warning("[RETRIEVAL] re-ranking failed, using similarity order: %s", e)
            return candidates[:top_k]

        reranked = [
            candidates[idx].model_copy(update={"score": clamp01(score), "is_reranked": True})
            for idx, score in ranked
            if 0 <= idx < len(candidates)
        ]
        logger.info("[RETRIEVAL] re-ranked %d → %d", len(candidates), len(reranked))
        return reranked

    async def weighted_semantic_search(
        self,
        query: str,
        preference: SourcePreference,
        top_k: int,
    ) -> list[Passage]:
        pool = await self.semantic_search(query, top_k * self.cfg.weighted_overfetch_multiplier)
        return apply_source_preference(pool, preference, top_k)

    # ── Hybrid ──────────────────────────────────────────────────────

    async def hybrid_search(
        self,
        query: str,
        top_k: int,
        *,
        semantic_weight: float | None = None,
        keyword_weight: float | None = None,
    ) -> list[Passage]:
        """Semantic (over-fetched) plus keyword scoring over the same pool, fused."""
        semantic = await self.semantic_search(query, top_k * self.cfg.weighted_overfetch_multiplier)
        keyword = keyword_search(
            query,
            semantic,
            top_k,
            min_word_length=self.cfg.keyword_min_word_length,
            phrase_bonus=self.cfg.keyword_phrase_bonus,
        )
        return hybrid_merge(
            semantic,
            keyword,
            top_k,
            semantic_weight=self.cfg.hybrid_semantic_weight if semantic_weight is None else semantic_weight,
            keyword_weight=self.cfg.hybrid_keyword_weight if keyword_weight is None else keyword_weight,
            keyword_normalizer=self.cfg.keyword_normalizer,
            prefix_chars=self.cfg.dedupe_prefix_chars,
        )
