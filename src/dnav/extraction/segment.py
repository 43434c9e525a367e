"""Page text -> bounded statement units.

Normalization keeps an offset map back into the raw page text, so every
unit's ``excerpt`` is an exact slice of what the caller sent, even after
de-hyphenation and whitespace collapsing.
"""

from __future__ import annotations

import logging
import re
import warnings
from dataclasses import dataclass
from typing import Sequence

from pysbd import Segmenter as SentenceSplitter

from .config import ExtractionConfig
from .sections import SectionTracker, is_page_number, line_key, page_is_table_dense, repeated_lines
from .types import PageSegments, PageText, Segment
from .vocabulary import DEFAULT_VOCABULARY, Vocabulary

logger = logging.getLogger(__name__)

BULLET_RE = re.compile(r"^[-–•*▪◦·]\s+")
CLAUSE_RE = re.compile(r";\s*|:\s+|\s+[-–—]\s+")
SENTENCE_END = ".!?:;"
SOFT_HYPHEN = "\u00ad"

# pysbd patterns raise SyntaxWarning on Python 3.12+.
with warnings.catch_warnings():
    warnings.filterwarnings("ignore", category=SyntaxWarning)
    _SENTENCES = SentenceSplitter(language="en", clean=False)


@dataclass(frozen=True)
class _Normalized:
    text: str
    offsets: tuple[int, ...]  # raw index of each normalized char

    def raw_span(self, start: int, end: int) -> tuple[int, int]:
        return self.offsets[start], self.offsets[end - 1] + 1


def normalize(raw: str) -> _Normalized:
    """Collapse whitespace and undo line-wrap hyphenation, tracking raw offsets.

    Whitespace runs become one space, or one newline if the run crossed a
    line break. ``word-\\nword`` joins when the continuation is lowercase.
    """
    out: list[str] = []
    offsets: list[int] = []
    i, n = 0, len(raw)
    while i < n:
        ch = raw[i]
        if ch == SOFT_HYPHEN:
            i += 1
            continue
        if ch == "-" and out and out[-1].isalpha():
            j = i + 1
            while j < n and raw[j] in " \t":
                j += 1
            if j < n and raw[j] in "\r\n":
                k = j
                while k < n and raw[k].isspace():
                    k += 1
                if k < n and raw[k].islower():
                    i = k
                    continue
        if ch.isspace():
            j = i
            newline = False
            while j < n and raw[j].isspace():
                newline = newline or raw[j] in "\r\n\f\v"
                j += 1
            out.append("\n" if newline else " ")
            offsets.append(i)
            i = j
            continue
        out.append(ch)
        offsets.append(i)
        i += 1
    return _Normalized("".join(out), tuple(offsets))


def _lines(text: str) -> list[tuple[int, int]]:
    """(start, end) of each non-blank line in normalized text, stripped."""
    spans: list[tuple[int, int]] = []
    pos = 0
    for line in text.split("\n"):
        start, end = pos, pos + len(line)
        pos = end + 1
        while start < end and text[start] == " ":
            start += 1
        while end > start and text[end - 1] == " ":
            end -= 1
        if start < end:
            spans.append((start, end))
    return spans


def _sentence_gaps(text: str) -> list[tuple[int, int]]:
    """Whitespace spans between pysbd sentences, as offsets into *text*.

    Sentences are located by forward search, so a sentence pysbd reshaped is
    skipped (no break) rather than misplaced.
    """
    if not text.strip():
        return []
    with warnings.catch_warnings():
        warnings.filterwarnings("ignore", category=SyntaxWarning)
        sentences = _SENTENCES.segment(text)

    gaps: list[tuple[int, int]] = []
    pos = 0
    for sentence in sentences:
        sentence = sentence.strip()
        start = text.find(sentence, pos) if sentence else -1
        if start < 0:
            continue
        end = start + len(sentence)
        gap_end = end
        while gap_end < len(text) and text[gap_end].isspace():
            gap_end += 1
        if gap_end < len(text):
            gaps.append((end, gap_end))
        pos = end
    return gaps


def _breaks(text: str) -> list[tuple[int, int]]:
    """Sentence and clause breaks, sorted and non-overlapping."""
    spans = sorted(_sentence_gaps(text) + [(m.start(), m.end()) for m in CLAUSE_RE.finditer(text)])
    merged: list[tuple[int, int]] = []
    for start, end in spans:
        if merged and start < merged[-1][1]:
            merged[-1] = (merged[-1][0], max(end, merged[-1][1]))
            continue
        merged.append((start, end))
    return merged


def _is_continuation(buffer: str, line: str) -> bool:
    if not buffer or buffer.rstrip()[-1:] in SENTENCE_END:
        return False
    first = line[:1]
    return first.islower() or first.isdigit() or first in "(&%$"


def _comma_cuts(text: str) -> list[int]:
    cuts, depth = [], 0
    for i, ch in enumerate(text):
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth = max(0, depth - 1)
        elif ch == "," and depth == 0:
            cuts.append(i + 1)
    return cuts


def _pack(text: str, cuts: list[int], limit: int) -> list[tuple[int, int]]:
    """Greedily pack [0, len) into spans of at most *limit* chars at the given cut points."""
    spans: list[tuple[int, int]] = []
    start = 0
    last_ok = None
    for cut in cuts + [len(text)]:
        if cut - start <= limit:
            last_ok = cut
            continue
        if last_ok is not None and last_ok > start:
            spans.append((start, last_ok))
            start = last_ok
            last_ok = cut if cut - start <= limit else None
        if last_ok is None:
            spans.append((start, cut))
            start = cut
    if start < len(text):
        spans.append((start, len(text)))
    return spans


def _word_chunks(text: str, limit: int) -> list[tuple[int, int]]:
    spaces = [m.end() for m in re.finditer(r"\s+", text)]
    spans: list[tuple[int, int]] = []
    for start, end in _pack(text, spaces, limit):
        while end - start > limit:
            spans.append((start, start + limit))
            start += limit
        spans.append((start, end))
    return spans


def _strip_span(text: str, start: int, end: int) -> tuple[int, int]:
    while start < end and text[start] in " \n":
        start += 1
    while end > start and text[end - 1] in " \n,":
        end -= 1
    return start, end


class Segmenter:
    """Splits page text into 30-280 char units in a deterministic order."""

    def __init__(
        self,
        config: ExtractionConfig | None = None,
        vocabulary: Vocabulary = DEFAULT_VOCABULARY,
    ) -> None:
        self.config = config or ExtractionConfig()
        self.sections = SectionTracker(vocabulary)

    # -- paragraphs ---------------------------------------------------------

    def _paragraphs(
        self,
        norm: _Normalized,
        repeated: frozenset[str],
        section: str | None,
    ) -> tuple[list[tuple[int, int, str | None]], str | None]:
        text = norm.text
        paragraphs: list[tuple[int, int, str | None]] = []
        current: list[int] | None = None  # [start, end]
        current_section = section

        def close() -> None:
            nonlocal current
            if current is not None:
                paragraphs.append((current[0], current[1], current_section))
                current = None

        for start, end in _lines(text):
            line = text[start:end]
            if is_page_number(line) or line_key(line) in repeated:
                close()
                continue
            heading = self.sections.heading(line)
            if heading:
                close()
                current_section = heading
                continue
            bullet = BULLET_RE.match(line)
            if bullet:
                close()
                current = [start + bullet.end(), end]
                continue
            if current is not None and _is_continuation(text[current[0]:current[1]], line):
                current[1] = end
                continue
            close()
            current = [start, end]
        close()
        return paragraphs, current_section

    # -- units --------------------------------------------------------------

    def _pieces(self, text: str) -> list[tuple[int, int]]:
        limit = self.config.max_unit_chars
        pieces: list[tuple[int, int]] = []
        pos = 0
        bounds = _breaks(text)
        for b_start, b_end in bounds + [(len(text), len(text))]:
            start, end = _strip_span(text, pos, b_start)
            pos = b_end
            if start >= end:
                continue
            if end - start <= limit:
                pieces.append((start, end))
                continue
            body = text[start:end]
            for c_start, c_end in _pack(body, _comma_cuts(body), limit):
                if c_end - c_start <= limit:
                    pieces.append(_strip_span(text, start + c_start, start + c_end))
                    continue
                chunk = body[c_start:c_end]
                for w_start, w_end in _word_chunks(chunk, limit):
                    pieces.append(
                        _strip_span(text, start + c_start + w_start, start + c_start + w_end)
                    )
        return pieces

    def segment_page(
        self,
        raw: str,
        page: int = 1,
        repeated: frozenset[str] = frozenset(),
        section_hint: str | None = None,
    ) -> tuple[list[Segment], str | None]:
        """Segment one page.

        Args:
            raw: Page text exactly as received.
            page: 1-based page number.
            repeated: ``line_key`` values of running headers/footers to drop.
            section_hint: Section in effect at the top of the page.

        Returns:
            (units in page order, section in effect at the end of the page)
        """
        norm = normalize(raw)
        paragraphs, last_section = self._paragraphs(norm, repeated, section_hint)
        units: list[Segment] = []

        for p_start, p_end, section in paragraphs:
            para = norm.text[p_start:p_end].replace("\n", " ")
            context = para[: self.config.max_context_chars]
            for start, end in self._pieces(para):
                text = para[start:end]
                if len(text) < self.config.min_unit_chars:
                    continue
                raw_start, raw_end = norm.raw_span(p_start + start, p_start + end)
                units.append(
                    Segment(
                        page=page,
                        index=len(units),
                        text=text,
                        excerpt=raw[raw_start:raw_end],
                        start=raw_start,
                        end=raw_end,
                        context_text=context,
                        section_hint=section,
                    )
                )

        logger.debug("page %d: %d paragraphs -> %d units", page, len(paragraphs), len(units))
        return units, last_section

    def segment_document(self, pages: Sequence[PageText]) -> list[PageSegments]:
        """Segment every page, carrying section hints across page breaks."""
        repeated = repeated_lines(pages)
        if repeated:
            logger.debug("dropping %d repeated header/footer lines", len(repeated))

        result: list[PageSegments] = []
        section: str | None = None
        for page in sorted(pages, key=lambda p: p.page):
            units, section = self.segment_page(page.text, page.page, repeated, section)
            in_low_section = bool(units) and all(
                self.sections.is_low_signal(u.section_hint) for u in units
            )
            low_signal = in_low_section or page_is_table_dense(
                page.text, self.config.table_page_line_ratio
            )
            result.append(
                PageSegments(
                    page=page.page,
                    segments=tuple(units),
                    low_signal=low_signal,
                    section_hint=section,
                )
            )
        return result
