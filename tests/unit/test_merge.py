"""Tests for the merge resolver."""
import pytest

from dnav.extraction.merge import MergeResolver, normalize_title, preference
from dnav.extraction.schema import DecisionCandidate


def make(
    id: str,
    title: str,
    strength: str = "soft",
    confidence: int = 5,
    category: str = "Other",
    page: int = 1,
    quote: str = "quote text",
    decision: str = "",
    tags: list[str] | None = None,
) -> DecisionCandidate:
    score = {"score": 5, "evidence": ""}
    return DecisionCandidate.model_validate({
        "id": id,
        "title": title,
        "strength": strength,
        "category": category,
        "decision": decision,
        "rationale": "",
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
def resolver():
    return MergeResolver()


def test_normalize_title():
    assert normalize_title("Expand  Megafactory capacity (2026)!") == "expand megafactory capacity 2026"


def test_preference_orders_strength_before_confidence():
    assert preference(make("a", "t", "hard", 1)) > preference(make("b", "t", "soft", 10))


class TestDuplicates:
    def test_same_normalized_title(self, resolver):
        a = make("a", "Expand Megafactory capacity (2026)")
        b = make("b", "expand megafactory capacity 2026")
        assert resolver.is_duplicate(a, b, 0.99)

    def test_similar_titles(self, resolver):
        a = make("a", "Expand Megafactory capacity (2026)")
        b = make("b", "Expand Megafactory Shanghai capacity (2026)")
        assert resolver.similarity(a, b) == pytest.approx(0.8)
        assert resolver.is_duplicate(a, b, 0.65)
        assert not resolver.is_duplicate(a, b, 0.85)

    def test_unrelated(self, resolver):
        a = make("a", "Expand Megafactory capacity (2026)")
        b = make("b", "Hire 500 engineers")
        assert not resolver.is_duplicate(a, b, 0.55)


class TestResolve:
    def test_hard_wins(self, resolver):
        soft = make("s", "Expand capacity", "soft", 9)
        hard = make("h", "Expand capacity now", "hard", 3)
        assert resolver.resolve(soft, hard).id == "h"

    def test_first_wins_tie(self, resolver):
        a = make("a", "Expand capacity")
        b = make("b", "Expand capacity")
        assert resolver.resolve(a, b).id == "a"

    def test_category_falls_back_from_other(self, resolver):
        a = make("a", "Expand capacity", "hard", category="Other")
        b = make("b", "Expand capacity", "soft", category="Operations")
        assert resolver.resolve(a, b).category == "Operations"

    def test_evidence_from_higher_confidence(self, resolver):
        a = make("a", "Expand capacity", "hard", 4, page=1, quote="weak quote")
        b = make("b", "Expand capacity", "soft", 9, page=3, quote="strong quote")
        merged = resolver.resolve(a, b)
        assert merged.id == "a"
        assert merged.evidence.page == 3
        assert merged.evidence.quote == "strong quote"

    def test_tags_unioned_in_order(self, resolver):
        a = make("a", "Expand capacity", tags=["capacity", "capex"])
        b = make("b", "Expand capacity", tags=["capex", "expansion"])
        assert resolver.resolve(a, b).tags == ["capacity", "capex", "expansion"]

    def test_empty_decision_filled(self, resolver):
        a = make("a", "Expand capacity", decision="")
        b = make("b", "Expand capacity", decision="We will expand capacity.")
        assert resolver.resolve(a, b).decision == "We will expand capacity."


def test_merge_into_appends_new(resolver):
    base = [make("a", "Expand Megafactory capacity (2026)")]
    incoming = [make("b", "Expand Megafactory capacity 2026"), make("c", "Hire 500 engineers")]
    merged = resolver.merge_into(base, incoming, 0.55)
    assert [c.id for c in merged] == ["a", "c"]


def test_dedupe(resolver):
    items = [make("a", "Open store"), make("b", "Open store"), make("c", "Close plant")]
    assert [c.id for c in resolver.dedupe(items, 0.65)] == ["a", "c"]
