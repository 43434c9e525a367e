"""Date and period cue detection.

Shared by the gate (does the unit carry a time signal?) and the
canonicalizer (which cue goes in the title, and which bucket keys the
cluster). Cues are returned most-precise first:

    quarter > half > month/day > fiscal year > bare year > relative

Spans already claimed by a more precise cue are not matched again, so
"Q2 2026" yields one quarter cue rather than a quarter plus a bare year.
"""

from __future__ import annotations

import re
from typing import Callable, Iterator

from .types import Precision, TimeCue

_MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}
_ORDINALS = {"first": 1, "1st": 1, "second": 2, "2nd": 2, "third": 3, "3rd": 3, "fourth": 4, "4th": 4}

_MONTH_NAME = (
    r"(jan(?:uary)?|feb(?:ruary)?|mar(?:ch)?|apr(?:il)?|may|june?|july?"
    r"|aug(?:ust)?|sept?(?:ember)?|oct(?:ober)?|nov(?:ember)?|dec(?:ember)?)"
)
_YEAR = r"'?(\d{4}|\d{2})"
_BARE_YEAR = r"(?<![\$\d.,])(20\d{2})(?!\d|%|[.,]\d)"

CONFIDENCE: dict[str, float] = {
    "quarter": 1.0,
    "half": 0.9,
    "month": 0.85,
    "fiscal": 0.75,
    "year": 0.65,
    "relative": 0.5,
}


def _year(token: str) -> int:
    value = int(token)
    return value + 2000 if value < 100 else value


def _quarter(m: re.Match) -> tuple[str, str]:
    q, y = m.group(1), m.group(2)
    return f"{_year(y)}-Q{q}", f"Q{q} {_year(y)}"


def _quarter_year_first(m: re.Match) -> tuple[str, str]:
    y, q = m.group(1), m.group(2)
    return f"{_year(y)}-Q{q}", f"Q{q} {_year(y)}"


def _quarter_words(m: re.Match) -> tuple[str, str]:
    q, y = _ORDINALS[m.group(1).lower()], _year(m.group(2))
    return f"{y}-Q{q}", f"Q{q} {y}"


def _quarter_no_year(m: re.Match) -> tuple[str, str]:
    return f"Q{m.group(1)}", f"Q{m.group(1)}"


def _half(m: re.Match) -> tuple[str, str]:
    h, y = m.group(1), _year(m.group(2))
    return f"{y}-H{h}", f"H{h} {y}"


def _half_words(m: re.Match) -> tuple[str, str]:
    h, y = _ORDINALS[m.group(1).lower()], _year(m.group(2))
    return f"{y}-H{h}", f"H{h} {y}"


def _month(m: re.Match) -> tuple[str, str]:
    month = _MONTHS[m.group(1).lower()[:3]]
    y = _year(m.group(2))
    return f"{y}-{month:02d}", m.group(0).strip()


def _iso_date(m: re.Match) -> tuple[str, str]:
    return f"{m.group(1)}-{m.group(2)}", m.group(0)


def _fiscal(m: re.Match) -> tuple[str, str]:
    y = _year(m.group(1))
    return f"FY{y}", f"FY{y}"


def _bare_year(m: re.Match) -> tuple[str, str]:
    return m.group(1), m.group(1)


def _relative(m: re.Match) -> tuple[str, str]:
    phrase = re.sub(r"\s+", " ", m.group(0).lower()).strip()
    return "rel:" + re.sub(r"[^a-z0-9]+", "-", phrase).strip("-"), phrase


_Builder = Callable[[re.Match], tuple[str, str]]

# (precision, pattern, bucket/label builder), in precedence order.
_PATTERNS: tuple[tuple[Precision, re.Pattern, _Builder], ...] = (
    ("quarter", re.compile(r"\bQ([1-4])\s*(?:FY\s*)?" + _YEAR + r"\b", re.I), _quarter),
    ("quarter", re.compile(r"\b(\d{4})\s*Q([1-4])\b", re.I), _quarter_year_first),
    (
        "quarter",
        re.compile(
            r"\b(first|second|third|fourth|1st|2nd|3rd|4th)\s+quarter\s+(?:of\s+)?(?:fiscal\s+(?:year\s+)?)?(?:FY\s*)?(\d{4})\b",
            re.I,
        ),
        _quarter_words,
    ),
    ("quarter", re.compile(r"\bQ([1-4])\b"), _quarter_no_year),
    ("half", re.compile(r"\bH([12])\s*" + _YEAR + r"\b", re.I), _half),
    ("half", re.compile(r"\b(first|second|1st|2nd)\s+half\s+(?:of\s+)?(\d{4})\b", re.I), _half_words),
    (
        "month",
        re.compile(r"\b" + _MONTH_NAME + r"\.?\s+(?:\d{1,2}(?:st|nd|rd|th)?,?\s+)?(\d{4})\b", re.I),
        _month,
    ),
    ("month", re.compile(r"\b(20\d{2})-(0[1-9]|1[0-2])-\d{2}\b"), _iso_date),
    ("fiscal", re.compile(r"\b(?:FY|fiscal\s+(?:year\s+)?)\s*" + _YEAR + r"\b", re.I), _fiscal),
    ("year", re.compile(_BARE_YEAR), _bare_year),
    (
        "relative",
        re.compile(
            r"\b(?:(?:next|this|coming|following)\s+(?:quarter|year|half|month|fiscal year)"
            r"|later this (?:year|quarter)|(?:by |at )?(?:the )?end of (?:the |this )?(?:year|quarter)"
            r"|year[- ]end|near[- ]term"
            r"|in the coming (?:weeks|months|quarters|years)"
            r"|over the next (?:\w+ )?(?:weeks|months|quarters|years))\b",
            re.I,
        ),
        _relative,
    ),
)


def _iter_cues(text: str) -> Iterator[TimeCue]:
    claimed: list[tuple[int, int]] = []
    for precision, pattern, build in _PATTERNS:
        for m in pattern.finditer(text):
            start, end = m.span()
            if any(start < c_end and c_start < end for c_start, c_end in claimed):
                continue
            claimed.append((start, end))
            bucket, label = build(m)
            yield TimeCue(
                text=m.group(0),
                start=start,
                end=end,
                bucket=bucket,
                label=label,
                precision=precision,
                confidence=CONFIDENCE[precision],
            )


def find_time_cues(text: str) -> list[TimeCue]:
    """Return all time cues in *text*, most precise first, then by position."""
    order = {p: i for i, p in enumerate(CONFIDENCE)}
    return sorted(_iter_cues(text), key=lambda c: (order[c.precision], c.start))


def best_time_cue(text: str) -> TimeCue | None:
    cues = find_time_cues(text)
    return cues[0] if cues else None
