"""
Direct reading from the primary corpus.

Resolves which document a query names and where in it to start, then
slices a fixed window of lines.  Resolution is pure; only
``read_passage`` touches the corpus cache.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from app.core.config import Settings, settings as default_settings
from app.schemas.retrieval import Passage, SourceCategory
from app.services.corpus import CorpusCache
from app.utils.logging import get_logger
from app.utils.text import clean_corpus_text, int_to_roman, roman_to_int

logger = get_logger("tufti.pipeline.direct_read")


@dataclass(frozen=True)
class CorpusDocument:
    key: str
    filename: str
    title: str
    keywords: tuple[str, ...] = ()


# Order matters: a later keyword match overrides an earlier one
DOCUMENTS: tuple[CorpusDocument, ...] = (
    CorpusDocument(
        key="transurfing",
        filename="Reality_Transurfing_Steps_I-V_-_Vadim_Zeland (1).txt",
        title="Reality Transurfing Steps I-V",
    ),
    CorpusDocument(
        key="tufti",
        filename="Tufti_the_Priestess_Live_Stroll_Through_A_-_Vadim_Zeland (1).txt",
        title="Tufti the Priestess",
        keywords=("tufti",),
    ),
    CorpusDocument(
        key="master",
        filename="Master_of_reality_-_Vadim_Zeland.txt",
        title="Master of Reality",
        keywords=("master",),
    ),
    CorpusDocument(
        key="didntsay",
        filename="What_Tufti_Didnt_Say_-_Vadim_Zeland.txt",
        title="What Tufti Didn't Say",
        keywords=("didn't say", "didnt say"),
    ),
)

DEFAULT_DOCUMENT_KEY = "transurfing"
DOCUMENT_AUTHOR = "Vadim Zeland"

_BEGINNING_MARKERS = ("first page", "beginning", "foreword")
_CHAPTER_RE = re.compile(r"chapter\s*(\d+|[ivxlc]+)\b")
_PAGE_RE = re.compile(r"page\s*(\d+)")


@dataclass(frozen=True)
class ReadTarget:
    document: CorpusDocument
    marker: str  # "default" | "beginning" | "chapter" | "page"
    chapter: str | None = None
    page: int | None = None


def resolve_document(query: str, documents: tuple[CorpusDocument, ...] = DOCUMENTS) -> CorpusDocument:
    lower = query.lower()
    chosen = next(d for d in documents if d.key == DEFAULT_DOCUMENT_KEY)
    for document in documents:
        if any(kw in lower for kw in document.keywords):
            chosen = document
    return chosen


def resolve_target(query: str, documents: tuple[CorpusDocument, ...] = DOCUMENTS) -> ReadTarget:
    """Page overrides chapter, chapter overrides beginning."""
    lower = query.lower()
    document = resolve_document(query, documents)

    page = _PAGE_RE.search(lower)
    if page:
        return ReadTarget(document=document, marker="page", page=int(page.group(1)))

    chapter = _CHAPTER_RE.search(lower)
    if chapter:
        return ReadTarget(document=document, marker="chapter", chapter=chapter.group(1))

    if any(m in lower for m in _BEGINNING_MARKERS):
        return ReadTarget(document=document, marker="beginning")

    return ReadTarget(document=document, marker="default")


def _chapter_labels(token: str) -> list[str]:
    """Both spellings of a chapter number: "4" -> ["4", "IV"], "iv" -> ["IV", "4"]."""
    if token.isdigit():
        labels = [token]
        number = int(token)
        if 0 < number < 400:
            labels.append(int_to_roman(number))
        return labels
    labels = [token.upper()]
    number = roman_to_int(token)
    if number:
        labels.append(str(number))
    return labels


def _find_chapter(lines: list[str], token: str) -> int | None:
    labels = _chapter_labels(token)
    patterns = [re.compile(rf"CHAPTER\s*{re.escape(label)}\b") for label in labels]
    for idx, line in enumerate(lines):
        upper = line.upper()
        if any(p.search(upper) for p in patterns):
            return idx
    return None


def locate_window(lines: list[str], target: ReadTarget, cfg: Settings) -> tuple[int, int]:
    """(start line, number of lines) for a resolved target."""
    if target.marker == "page" and target.page is not None:
        return max(0, (target.page - 1) * cfg.lines_per_page), cfg.page_window_lines

    if target.marker == "chapter" and target.chapter is not None:
        idx = _find_chapter(lines, target.chapter)
        if idx is not None:
            return idx, cfg.chapter_window_lines
        logger.info("[DIRECT-READ] chapter %s not found, reading from start", target.chapter)
        return 0, cfg.default_window_lines

    if target.marker == "beginning":
        idx = next((i for i, line in enumerate(lines) if "FOREWORD" in line.upper()), 0)
        return idx, cfg.beginning_window_lines

    return 0, cfg.default_window_lines


async def read_passage(
    query: str,
    corpus: CorpusCache,
    cfg: Settings | None = None,
) -> Passage | None:
    """
    Read the window a query asks for; a window past the end reads the
    last one.  Returns None only when the document can't be read or
    holds no text after cleanup.
    """
    cfg = cfg or default_settings
    target = resolve_target(query)

    try:
        lines = await corpus.get_lines(target.document.filename)
    except OSError as e:
        logger.warning("[DIRECT-READ] failed to read %s: %s", target.document.filename, e)
        return None

    start, count = locate_window(lines, target, cfg)
    text = clean_corpus_text("\n".join(lines[start:start + count]))
    if not text and start > 0:
        # Past the end of the document: read its final window instead
        start = max(0, len(lines) - count)
        logger.info("[DIRECT-READ] window past end of %s, reading from line %d", target.document.key, start)
        text = clean_corpus_text("\n".join(lines[start:start + count]))
    if not text:
        logger.info("[DIRECT-READ] %s has no readable text", target.document.key)
        return None

    logger.info(
        "[DIRECT-READ] %s | marker=%s | lines %d-%d",
        target.document.title, target.marker, start, start + count,
    )
    return Passage(
        text=text,
        source=target.document.title,
        category=SourceCategory.PRIMARY,
        author=DOCUMENT_AUTHOR,
        score=1.0,
        is_direct_read=True,
    )
