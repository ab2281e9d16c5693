"""
Wall-clock timing for retrieval calls and streamed pipeline stages.

Usage:
    async with Timer("retrieval") as t:
        passages = await engine.semantic_search(query, 5)
    logger.info("took %.1fms", t.elapsed_ms)

    async with Timer("persona-answer:answer") as t:
        async for delta in stream:
            t.mark("first_delta")
"""

from __future__ import annotations

import logging
import time
from typing import Any

from app.utils.logging import get_logger

_default_logger = get_logger("tufti.timing")


class Timer:
    """Context-manager timer (sync + async) with named first-occurrence marks."""

    def __init__(self, label: str = "", logger: logging.Logger | None = None):
        self.label = label
        self.logger = logger or _default_logger
        self._start: float = 0.0
        self.elapsed_s: float = 0.0
        self.marks: dict[str, float] = {}
        self.failed = False

    @property
    def elapsed_ms(self) -> float:
        return self.elapsed_s * 1000

    def mark(self, name: str) -> None:
        """Record ms since start the first time ``name`` is reached."""
        if name not in self.marks:
            self.marks[name] = (time.perf_counter() - self._start) * 1000

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type: Any, *_: Any) -> None:
        self._stop(failed=exc_type is not None)

    async def __aenter__(self) -> "Timer":
        return self.__enter__()

    async def __aexit__(self, exc_type: Any, *_: Any) -> None:
        self._stop(failed=exc_type is not None)

    def _stop(self, failed: bool = False) -> None:
        self.elapsed_s = time.perf_counter() - self._start
        self.failed = failed
        if not self.label:
            return
        if failed:
            self.logger.warning("%s failed after %.1fms", self.label, self.elapsed_ms)
            return
        if self.marks:
            marks = " ".join(f"{k}={v:.1f}ms" for k, v in self.marks.items())
            self.logger.info("%s completed in %.1fms (%s)", self.label, self.elapsed_ms, marks)
        else:
            self.logger.info("%s completed in %.1fms", self.label, self.elapsed_ms)
