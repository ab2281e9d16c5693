"""
Query embedding.

Two providers behind one async interface:
  - "openai": remote embedding service (text-embedding-3-large, 3072 dims)
  - "sentence-transformers": local SentenceTransformer model
"""

from __future__ import annotations

import asyncio
import threading
from typing import Any, Protocol

from app.core.config import settings
from app.services.llm import get_openai_client
from app.utils.logging import get_logger

logger = get_logger("tufti.services.embedding")


class Embedder(Protocol):
    async def embed(self, text: str) -> list[float]:
        ...


class OpenAIEmbedder:
    def __init__(self, model: str | None = None, dimensions: int | None = None, client: Any = None):
        self.model = model or settings.embedding_model
        self.dimensions = dimensions or settings.embedding_dimensions
        self._client = client

    async def embed(self, text: str) -> list[float]:
        client = self._client or get_openai_client()
        response = await client.embeddings.create(
            model=self.model,
            input=[text],
            dimensions=self.dimensions,
        )
        return list(response.data[0].embedding)


_model_lock = threading.Lock()
_local_models: dict[str, Any] = {}


def _get_local_model(name: str) -> Any:
    """Get or create a cached SentenceTransformer model."""
    if name not in _local_models:
        with _model_lock:
            if name not in _local_models:
                from sentence_transformers import SentenceTransformer

                _local_models[name] = SentenceTransformer(name)
                logger.info("Loaded local embedding model %s", name)
    return _local_models[name]


class LocalEmbedder:
    def __init__(self, model: str | None = None):
        self.model = model or settings.local_embedding_model

    async def embed(self, text: str) -> list[float]:
        loop = asyncio.get_running_loop()

        def _encode() -> list[float]:
            # show_progress_bar=False keeps tqdm off sys.stderr
            return _get_local_model(self.model).encode(text, show_progress_bar=False).tolist()

        return await loop.run_in_executor(None, _encode)


def build_embedder() -> Embedder:
    if settings.embedding_provider == "sentence-transformers":
        return LocalEmbedder()
    return OpenAIEmbedder()
