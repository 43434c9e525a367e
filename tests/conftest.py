"""Shared test fixtures."""
from __future__ import annotations

import asyncio
import json

import pytest

from dnav.extraction.augment.prompts import REPAIR_SYSTEM
from dnav.extraction.canonical import Canonicalizer
from dnav.extraction.gate import Gate
from dnav.extraction.local import raw_candidate
from dnav.extraction.schema import DecisionCandidate
from dnav.extraction.types import CanonicalUnit, PageText, Segment
from dnav.shared.llm import LLMProvider


TESLA_SENTENCE = "Tesla will begin volume production of the new platform in Q2 2026."
REVENUE_SENTENCE = "Revenue grew 12% year-over-year to $25.2B."


class FakeProvider(LLMProvider):
    """Scripted provider keyed by call kind: hard, soft, refine or repair."""

    def __init__(self, replies: dict[str, str] | None = None, delay: float = 0.0):
        self.replies = replies or {}
        self.delay = delay
        self.calls: list[tuple[str, str]] = []

    @property
    def name(self) -> str:
        return "fake"

    @staticmethod
    def kind(prompt: str, system: str | None) -> str:
        if system == REPAIR_SYSTEM:
            return "repair"
        if "Find HARD" in prompt:
            return "hard"
        if "Find SOFT" in prompt:
            return "soft"
        return "refine"

    async def generate(self, prompt, model, system=None, timeout=30, max_tokens=2000, temperature=0.0):
        kind = self.kind(prompt, system)
        self.calls.append((kind, prompt))
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.replies.get(kind, "")


def model_candidate(page: int, quote: str, title: str, strength: str = "hard", **extra) -> dict:
    candidate = {
        "title": title,
        "strength": strength,
        "category": "Operations",
        "decision": quote,
        "rationale": "Stated commitment.",
        "constraints": {k: {"score": 7, "evidence": ""} for k in ("impact", "cost", "risk", "urgency", "confidence")},
        "evidence": {"page": page, "quote": quote},
        "tags": ["capacity"],
    }
    candidate.update(extra)
    return candidate


def candidates_json(*candidates: dict) -> str:
    return json.dumps({"candidates": list(candidates)})


@pytest.fixture
def fake_provider():
    return FakeProvider


@pytest.fixture
def make_candidate():
    return model_candidate


@pytest.fixture
def reply_with():
    return candidates_json


@pytest.fixture
def tesla_pages():
    return [
        PageText(
            page=1,
            text=(
                "Q4 2025 Update\n\n"
                "HIGHLIGHTS\n"
                f"{TESLA_SENTENCE}\n"
                f"{REVENUE_SENTENCE}\n"
            ),
            file_name="tsla-q4.pdf",
        ),
        PageText(
            page=2,
            text=(
                "Q4 2025 Update\n\n"
                "OUTLOOK\n"
                "We will expand Megafactory capacity in 2026.\n"
                "The company plans to expand Megafactory Shanghai capacity in 2026.\n"
                "12,450 18,200 9,330 4,120\n"
            ),
            file_name="tsla-q4.pdf",
        ),
    ]


@pytest.fixture
def request_body():
    return {
        "docName": "tsla-q4.pdf",
        "pages": [
            {"page": 1, "text": f"HIGHLIGHTS\n{TESLA_SENTENCE}\n{REVENUE_SENTENCE}\n"},
        ],
    }


def canonical_unit(text: str, page: int = 1, index: int = 0) -> CanonicalUnit:
    segment = Segment(
        page=page, index=index, text=text, excerpt=text, start=0, end=len(text), context_text=text
    )
    candidate = raw_candidate(segment, Gate().evaluate(text), "doc_test", "report.pdf")
    return CanonicalUnit(candidate=candidate, form=Canonicalizer().canonicalize(text))


@pytest.fixture
def make_unit():
    return canonical_unit


def decision_candidate(
    id: str,
    title: str,
    strength: str = "hard",
    page: int = 1,
    quote: str = "We will open a store.",
    category: str = "Operations",
    confidence: int = 7,
    tags: list[str] | None = None,
) -> DecisionCandidate:
    score = {"score": 5, "evidence": ""}
    return DecisionCandidate.model_validate({
        "id": id,
        "title": title,
        "strength": strength,
        "category": category,
        "decision": quote,
        "rationale": "Commitment language.",
        "constraints": {
            "impact": score,
            "cost": score,
            "risk": score,
            "urgency": score,
            "confidence": {"score": confidence, "evidence": ""},
        },
        "evidence": {"page": page, "quote": quote},
        "tags": tags or [],
    })


@pytest.fixture
def make_decision():
    return decision_candidate
