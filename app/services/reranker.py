"""
Cross-encoder re-ranking with a sentence-transformers CrossEncoder.
"""

from __future__ import annotations

import asyncio
import threading
from typing import Any, Protocol

from app.core.config import settings
from app.utils.logging import get_logger

logger = get_logger("tufti.services.reranker")


class Reranker(Protocol):
    async def rerank(self, query: str, documents: list[str], top_n: int) -> list[tuple[int, float]]:
        """Return (original index, score) pairs, best first."""
        ...


class CrossEncoderReranker:
    def __init__(self, model: str | None = None):
        self.model_name = model or settings.rerank_model
        self._model: Any = None
        self._lock = threading.Lock()

    def _get_model(self) -> Any:
        if self._model is None:
            with self._lock:
                if self._model is None:
                    from sentence_transformers import CrossEncoder

                    self._model = CrossEncoder(self.model_name)
                    logger.info("Loaded cross-encoder %s", self.model_name)
        return self._model

    def _rerank_sync(self, query: str, documents: list[str], top_n: int) -> list[tuple[int, float]]:
        scores = self._get_model().predict([(query, doc) for doc in documents], show_progress_bar=False)
        order = sorted(range(len(documents)), key=lambda i: float(scores[i]), reverse=True)
        return [(i, float(scores[i])) for i in order[:top_n]]

    async def rerank(self, query: str, documents: list[str], top_n: int) -> list[tuple[int, float]]:
        if not documents:
            return []
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._rerank_sync, query, documents, top_n)
