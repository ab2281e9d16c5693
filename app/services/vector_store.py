"""
ChromaDB similarity index over the mixed knowledge corpus.

Each stored chunk carries ``text``, ``book`` or ``source``, and
``source_type`` ("book" | "course") metadata.  Queries are by
pre-computed embedding so the embedding provider stays swappable.
"""

from __future__ import annotations

import asyncio
import threading
from pathlib import Path
from typing import Any

import chromadb
from pydantic import BaseModel

from app.core.config import settings
from app.utils.logging import get_logger

logger = get_logger("tufti.services.vector_store")


class IndexMatch(BaseModel):
    id: str
    similarity: float
    text: str
    metadata: dict[str, Any] = {}


def _get_persist_directory(persist_directory: str | None = None) -> str:
    """
    Resolve the directory where ChromaDB data is stored.
    Defaults to app/vector_db/chroma_db.
    """
    if persist_directory is not None:
        return persist_directory
    if settings.chromadb_persist_directory:
        return settings.chromadb_persist_directory
    base_dir = Path(__file__).resolve().parents[1]
    return str(base_dir / "vector_db" / "chroma_db")


_chroma_client_lock = threading.Lock()
_thread_local = threading.local()


def _get_chroma_client(persist_directory: str | None = None) -> chromadb.ClientAPI:
    """
    Thread-local ChromaDB client: index queries run in executor threads
    and the SQLite-backed client should not be shared across them.
    """
    path = _get_persist_directory(persist_directory)
    if getattr(_thread_local, "persist_path", None) != path:
        with _chroma_client_lock:
            _thread_local.chroma_client = chromadb.PersistentClient(
                path=path,
                settings=chromadb.Settings(anonymized_telemetry=False),
            )
            _thread_local.persist_path = path
    return _thread_local.chroma_client


class ChromaVectorIndex:
    def __init__(self, collection_name: str | None = None, persist_directory: str | None = None):
        self.collection_name = collection_name or settings.chromadb_collection
        self.persist_directory = persist_directory

    def _query_sync(self, vector: list[float], n_results: int) -> list[IndexMatch]:
        client = _get_chroma_client(self.persist_directory)
        try:
            collection = client.get_collection(name=self.collection_name)
        except Exception as e:
            raise ValueError(f"Collection '{self.collection_name}' does not exist") from e

        results = collection.query(
            query_embeddings=[vector],
            n_results=n_results,
            include=["documents", "metadatas", "distances"],
        )

        ids = results.get("ids") or [[]]
        if not ids[0]:
            return []

        documents = (results.get("documents") or [[]])[0]
        metadatas = (results.get("metadatas") or [[]])[0]
        distances = (results.get("distances") or [[]])[0]

        matches: list[IndexMatch] = []
        for idx, match_id in enumerate(ids[0]):
            meta = dict(metadatas[idx] or {}) if idx < len(metadatas) else {}
            text = (documents[idx] if idx < len(documents) else None) or meta.get("text", "")
            # Cosine-space distance → similarity
            distance = float(distances[idx]) if idx < len(distances) else 1.0
            matches.append(IndexMatch(
                id=str(match_id),
                similarity=1.0 - distance,
                text=text,
                metadata=meta,
            ))
        return matches

    async def query(self, vector: list[float], n_results: int) -> list[IndexMatch]:
        """Nearest neighbours, best first.  Runs the sync client in an executor."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._query_sync, vector, n_results)


def init_vector_index(persist_directory: str | None = None) -> bool:
    """
    Verify the ChromaDB store opens.  Call this during app startup.
    """
    try:
        client = _get_chroma_client(persist_directory)
        _ = client.list_collections()
        logger.info("[OK] ChromaDB connection initialized")
        return True
    except Exception as e:
        logger.warning("[FAIL] ChromaDB connection failed: %s", e)
        return False
