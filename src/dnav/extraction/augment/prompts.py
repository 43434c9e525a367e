"""Prompt templates for model extraction, refinement and JSON repair."""

from __future__ import annotations

import json
from typing import Any, Sequence

from ..vocabulary import CATEGORIES

SYSTEM_PROMPT = """You extract business decisions from document excerpts.

Rules:
- Use ONLY the supplied text as evidence. Never invent facts, numbers, dates or quotes.
- Every evidence.quote must be copied verbatim from the supplied text (max 280 characters).
- Every evidence.page must be the page the quote came from.
- A decision is a committed or executed choice to act (launch, build, hire, invest, exit, ...).
  Metric recitations, results, risk disclaimers and boilerplate are not decisions.
- Respond with exactly ONE JSON object and nothing else. No markdown, no commentary."""

CANDIDATE_SCHEMA = {
    "id": "string",
    "title": "Verb + object, max 90 chars",
    "strength": "hard | soft",
    "category": " | ".join(CATEGORIES),
    "decision": "one sentence, max 160 chars",
    "rationale": "why this is a decision, one sentence",
    "constraints": {
        key: {"score": "integer 1-10", "evidence": "short reason"}
        for key in ("impact", "cost", "risk", "urgency", "confidence")
    },
    "evidence": {"page": "integer >= 1", "quote": "verbatim text, max 280 chars", "locationHint": "optional"},
    "tags": ["string"],
}

PASS_INSTRUCTIONS = {
    "hard": (
        "Find HARD decisions: explicit commitments or completed actions "
        '("will", "decided to", "launched", "signed", "began"). Set strength to "hard".'
    ),
    "soft": (
        "Find SOFT decisions: plans, targets and intentions that are not yet locked in "
        '("plan to", "expect to", "aim to", "target"). Set strength to "soft".'
    ),
}

EXTRACTION_TEMPLATE = """{instruction}

Return at most {max_per_page} candidates per page. Skip pages with no decisions.

Response schema (repeat this object shape for every candidate):
{{"candidates": [{schema}]}}

Pages:
{pages}"""

REFINEMENT_TEMPLATE = """Below are decision candidates extracted by a heuristic pass.

Improve them:
- Keep real decisions and drop noise (metrics, disclaimers, duplicates).
- Keep at least {min_keep} candidates (roughly 40-80% of the input).
- You may rewrite the decision sentence, title, category and tags.
- You must NOT change evidence quotes or page numbers.
- When two candidates describe the same decision, keep one and list the other ids in mergedFromIds.
- Only use ids that appear in the input.

Response schema:
{{"kept_candidates": [{{"id": "string", "rewrittenDecision": "string", "reasonKeep": "string", "mergedFromIds": ["string"], "title": "optional string", "category": "optional, one of {categories}", "tags": ["optional string"]}}], "drop_ids": ["string"], "notes": "optional string"}}

Candidates:
{candidates}"""

REPAIR_SYSTEM = "You fix malformed JSON. Respond with valid JSON only."

REPAIR_TEMPLATE = """Fix the following to valid JSON only. Preserve the existing structure and fields; do not add or remove data.

{raw}"""


def extraction_prompt(pages: Sequence[dict[str, Any]], mode: str, max_per_page: int) -> str:
    return EXTRACTION_TEMPLATE.format(
        instruction=PASS_INSTRUCTIONS[mode],
        max_per_page=max_per_page,
        schema=json.dumps(CANDIDATE_SCHEMA, ensure_ascii=False),
        pages=json.dumps(list(pages), ensure_ascii=False, indent=1),
    )


def refinement_prompt(candidates: Sequence[dict[str, Any]], min_keep: int) -> str:
    return REFINEMENT_TEMPLATE.format(
        min_keep=min_keep,
        categories=", ".join(CATEGORIES),
        candidates=json.dumps(list(candidates), ensure_ascii=False, indent=1),
    )


def repair_prompt(raw: str, max_chars: int = 20_000) -> str:
    return REPAIR_TEMPLATE.format(raw=raw[:max_chars])
