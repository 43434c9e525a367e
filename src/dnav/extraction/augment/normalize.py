"""Coerce raw model objects into validated decision candidates.

Fallbacks are limited to the documented ones: clamped scores, clamped
quote, category "Other", and title/decision/rationale synthesized from the
quote. An object without a quote is dropped, as is one whose page cannot
be resolved or that still fails validation.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Mapping

from pydantic import ValidationError

from ..schema import DecisionCandidate
from ..scoring import truncate_words
from ..vocabulary import CATEGORIES, DEFAULT_VOCABULARY, Vocabulary

logger = logging.getLogger(__name__)

GENERIC_RATIONALE = "Identified by the model as a committed course of action in the source text."
CONSTRAINT_KEYS = ("impact", "cost", "risk", "urgency", "confidence")
DEFAULT_SCORE = 5
TITLE_WORDS = 8

_WS_RE = re.compile(r"\s+")


def _text(value: Any) -> str:
    return _WS_RE.sub(" ", value).strip() if isinstance(value, str) else ""


def _page(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 1 else None
    if isinstance(value, float) and value.is_integer():
        return int(value) if value >= 1 else None
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip()) or None
    return None


def clamp_model_score(value: Any) -> int:
    if isinstance(value, Mapping):
        value = value.get("score")
    if isinstance(value, bool):
        return DEFAULT_SCORE
    try:
        number = float(value)
    except (TypeError, ValueError):
        return DEFAULT_SCORE
    if number != number:  # NaN
        return DEFAULT_SCORE
    return max(1, min(10, int(round(number))))


def normalize_category(value: Any, vocabulary: Vocabulary = DEFAULT_VOCABULARY) -> str:
    text = _text(value)
    if text in CATEGORIES:
        return text
    lowered = text.lower()
    for category in CATEGORIES:
        if category.lower() == lowered:
            return category
    return vocabulary.category_aliases.get(lowered, "Other")


def locate_page(quote: str, pages: Mapping[int, str]) -> int | None:
    """First page whose whitespace-normalized text contains the quote's opening."""
    needle = _WS_RE.sub(" ", quote.rstrip("…")).strip().lower()[:80]
    if not needle:
        return None
    for number in sorted(pages):
        if needle in _WS_RE.sub(" ", pages[number]).lower():
            return number
    return None


def _title_from_quote(quote: str) -> str:
    words = quote.rstrip("…").split()[:TITLE_WORDS]
    return " ".join(words).rstrip(" .,;:")


def normalize_candidate(
    raw: Any,
    pages: Mapping[int, str],
    *,
    fallback_id: str,
    default_strength: str = "soft",
    fallback_page: int | None = None,
    vocabulary: Vocabulary = DEFAULT_VOCABULARY,
) -> DecisionCandidate | None:
    """Return a validated candidate, or None when *raw* must be dropped."""
    if not isinstance(raw, Mapping):
        return None

    evidence = raw.get("evidence") if isinstance(raw.get("evidence"), Mapping) else {}
    quote = _text(evidence.get("quote")) or _text(raw.get("quote"))
    page = _page(evidence.get("page")) or _page(raw.get("page"))

    if not quote:
        logger.debug("dropping model candidate without a quote: %r", raw.get("title"))
        return None

    title = _text(raw.get("title"))
    decision = _text(raw.get("decision"))

    if page is None or (pages and page not in pages):
        page = locate_page(quote, pages) or fallback_page
        if page is None:
            return None

    quote = truncate_words(quote, 280)
    constraints_raw = raw.get("constraints") if isinstance(raw.get("constraints"), Mapping) else {}
    constraints = {}
    for key in CONSTRAINT_KEYS:
        value = constraints_raw.get(key)
        note = _text(value.get("evidence")) if isinstance(value, Mapping) else ""
        constraints[key] = {"score": clamp_model_score(value), "evidence": note}

    strength = _text(raw.get("strength")).lower()
    tags_raw = raw.get("tags") if isinstance(raw.get("tags"), list) else []
    tags = list(dict.fromkeys(t for t in (_text(x).lower() for x in tags_raw) if t))[:8]

    payload = {
        "id": _text(raw.get("id")) or fallback_id,
        "title": truncate_words(title, 120) if title else _title_from_quote(quote),
        "strength": strength if strength in ("hard", "soft") else default_strength,
        "category": normalize_category(raw.get("category"), vocabulary),
        "decision": decision or truncate_words(quote, 160),
        "rationale": _text(raw.get("rationale")) or GENERIC_RATIONALE,
        "constraints": constraints,
        "evidence": {
            "page": page,
            "quote": quote,
            "locationHint": _text(evidence.get("locationHint")) or None,
        },
        "tags": tags,
    }
    try:
        return DecisionCandidate.model_validate(payload)
    except ValidationError as e:
        logger.debug("dropping invalid model candidate %s: %s", payload["id"], e)
        return None
