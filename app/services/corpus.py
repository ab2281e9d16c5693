"""
Read-through cache over the raw corpus text files used by direct reads.

One instance is created at startup and injected into the retrieval
engine.  Files are read lazily on first access (or eagerly by
``preload``) and kept until ``invalidate`` drops them.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

from app.core.config import settings
from app.utils.logging import get_logger

logger = get_logger("tufti.services.corpus")


def _default_corpus_directory() -> Path:
    if settings.corpus_directory:
        return Path(settings.corpus_directory)
    return Path(__file__).resolve().parents[2] / "data" / "books"


class CorpusCache:
    def __init__(self, directory: str | Path | None = None):
        self.directory = Path(directory) if directory is not None else _default_corpus_directory()
        self._lines: dict[str, list[str]] = {}
        self._lock = asyncio.Lock()

    def _read_sync(self, filename: str) -> list[str]:
        path = self.directory / filename
        return path.read_text(encoding="utf-8").split("\n")

    async def get_lines(self, filename: str) -> list[str]:
        """Lines of ``filename``; raises OSError when the file can't be read."""
        cached = self._lines.get(filename)
        if cached is not None:
            return cached

        async with self._lock:
            if filename not in self._lines:
                self._lines[filename] = await asyncio.to_thread(self._read_sync, filename)
                logger.info("[CORPUS] loaded %s (%d lines)", filename, len(self._lines[filename]))
        return self._lines[filename]

    async def preload(self, filenames: list[str]) -> int:
        """Warm the cache; unreadable files are logged and skipped. Returns count loaded."""
        loaded = 0
        for filename in filenames:
            try:
                await self.get_lines(filename)
                loaded += 1
            except OSError as e:
                logger.warning("[CORPUS] could not load %s: %s", filename, e)
        return loaded

    def invalidate(self, filename: str | None = None) -> None:
        """Drop one cached file, or everything when no name is given."""
        if filename is None:
            self._lines.clear()
        else:
            self._lines.pop(filename, None)

    def __contains__(self, filename: str) -> bool:
        return filename in self._lines
