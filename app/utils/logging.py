"""
Logging setup for the ``tufti`` logger tree.

Usage:
    from app.utils.logging import get_logger
    logger = get_logger("tufti.pipeline.intent")
    logger.info("[INTENT] archetype=%s", "action")

The level comes from ``settings.log_level``.  Chatty client libraries
(HTTP, vector store, model downloads) are held at WARNING so stage and
retrieval lines stay readable.
"""

from __future__ import annotations

import logging
import os
import sys

from app.core.config import settings

# Do NOT reconfigure sys.stderr here: tqdm (used by sentence_transformers)
# calls sys.stderr.flush(), which fails on a reconfigured stream on Windows.
if os.name == "nt":
    os.environ.setdefault("PYTHONIOENCODING", "utf-8")

LOG_FORMAT = "%(asctime)s | %(levelname)-7s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

QUIET_LOGGERS: tuple[str, ...] = (
    "httpx",
    "httpcore",
    "openai",
    "chromadb",
    "sentence_transformers",
    "urllib3",
)

_configured = False


def _resolve_level(level: int | str | None) -> int:
    if level is None:
        level = settings.log_level
    if isinstance(level, str):
        value = logging.getLevelName(level.upper())
        return value if isinstance(value, int) else logging.INFO
    return level


def setup_logging(level: int | str | None = None) -> None:
    """Attach one stderr handler to the ``tufti`` logger (idempotent)."""
    global _configured
    if _configured:
        return

    resolved = _resolve_level(level)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(resolved)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))

    root = logging.getLogger("tufti")
    root.setLevel(resolved)
    root.addHandler(handler)
    root.propagate = False

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Logger under the ``tufti`` namespace; configures logging on first use."""
    setup_logging()
    return logging.getLogger(name)
