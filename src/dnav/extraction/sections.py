"""Page-level structure: running headers, page numbers, section headings.

PDF text comes back with the same header/footer on every page and with
bare page-number lines. Both are dropped before segmentation. Section
headings are tracked across pages so each unit carries a location hint, and
pages that sit in boilerplate or statement sections are marked low-signal
so the primary extraction pass can skip them.
"""

from __future__ import annotations

import math
import re
from typing import Iterable, Sequence

from .types import PageText
from .vocabulary import DEFAULT_VOCABULARY, Vocabulary

PAGE_NUMBER_RE = re.compile(r"^(?:page\s*)?\d+(?:\s*(?:of|/)\s*\d+)?$", re.I)
_NUMBER_RE = re.compile(r"[-+(]?\$?\d[\d,.]*%?\)?")
_WS_RE = re.compile(r"\s+")

# Lines examined at each end of a page when looking for running headers/footers.
EDGE_LINES = 2


def line_key(line: str) -> str:
    """Comparison key for header/footer lines (page numbers vary, so digits collapse)."""
    return re.sub(r"\d+", "#", _WS_RE.sub(" ", line).strip().lower())


def is_page_number(line: str) -> bool:
    return bool(PAGE_NUMBER_RE.match(line.strip()))


def repeated_lines(pages: Sequence[PageText]) -> frozenset[str]:
    """Keys of edge lines repeated on at least max(2, ceil(0.4 * n)) pages."""
    if len(pages) < 2:
        return frozenset()

    counts: dict[str, int] = {}
    for page in pages:
        lines = [ln.strip() for ln in page.text.splitlines() if ln.strip()]
        edges = {line_key(ln) for ln in lines[:EDGE_LINES] + lines[-EDGE_LINES:]}
        for key in edges:
            if len(key) >= 4:
                counts[key] = counts.get(key, 0) + 1

    threshold = max(2, math.ceil(0.4 * len(pages)))
    return frozenset(key for key, n in counts.items() if n >= threshold)


def looks_table_like(line: str) -> bool:
    stripped = line.strip()
    if not stripped:
        return False
    compact = stripped.replace(" ", "")
    digits = sum(ch.isdigit() for ch in compact)
    return digits / max(len(compact), 1) > 0.22 and len(_NUMBER_RE.findall(stripped)) >= 4


class SectionTracker:
    """Recognizes heading lines and classifies sections as low-signal."""

    def __init__(self, vocabulary: Vocabulary = DEFAULT_VOCABULARY) -> None:
        self._heading_re = re.compile(
            r"^(?:\d+(?:\.\d+)*\.?\s+)?(?:" + "|".join(vocabulary.section_patterns) + r")\s*:?$",
            re.I,
        )
        self._low_signal_re = re.compile("|".join(vocabulary.low_signal_sections), re.I)

    def heading(self, line: str) -> str | None:
        """Return a display label if *line* is a section heading, else None."""
        stripped = line.strip()
        if not stripped or len(stripped) > 80 or stripped[-1] in ".!?,;":
            return None
        if self._heading_re.match(stripped):
            return _label(stripped)
        letters = [ch for ch in stripped if ch.isalpha()]
        if (
            4 <= len(letters)
            and len(stripped) <= 60
            and stripped.upper() == stripped
            and re.fullmatch(r"[A-Z0-9\s&'/-]+", stripped)
        ):
            return _label(stripped)
        return None

    def is_low_signal(self, section: str | None) -> bool:
        return bool(section) and bool(self._low_signal_re.search(section.lower()))


def _label(heading: str) -> str:
    text = _WS_RE.sub(" ", heading.strip().rstrip(":"))
    return text.title() if text.isupper() else text


def page_is_table_dense(text: str, line_ratio: float = 0.5) -> bool:
    lines = [ln for ln in text.splitlines() if ln.strip()]
    if not lines:
        return True
    tabular = sum(looks_table_like(ln) for ln in lines)
    return tabular / len(lines) >= line_ratio


def split_pages(
    pages: Iterable[int], low_signal: Iterable[int]
) -> tuple[list[int], list[int]]:
    """Partition page numbers into (primary, secondary), preserving order."""
    low = set(low_signal)
    ordered = list(pages)
    return [p for p in ordered if p not in low], [p for p in ordered if p in low]
