"""Tests for normalizing model candidates."""
import pytest

from dnav.extraction.augment.normalize import (
    GENERIC_RATIONALE,
    clamp_model_score,
    locate_page,
    normalize_candidate,
    normalize_category,
)

PAGES = {
    1: "Tesla will begin volume production of the new platform in Q2 2026.",
    2: "We will expand Megafactory capacity in 2026.",
}


def normalize(raw, **kwargs):
    kwargs.setdefault("fallback_id", "m-hard-1")
    return normalize_candidate(raw, PAGES, **kwargs)


class TestScores:
    @pytest.mark.parametrize(
        "value,expected",
        [(7, 7), (7.6, 8), (0, 1), (42, 10), ("6", 6), ({"score": 3}, 3), (None, 5), ("high", 5), (True, 5)],
    )
    def test_clamp_model_score(self, value, expected):
        assert clamp_model_score(value) == expected


class TestCategory:
    def test_exact(self):
        assert normalize_category("Finance") == "Finance"

    def test_case_insensitive(self):
        assert normalize_category("operations") == "Operations"

    def test_alias(self):
        assert normalize_category("GTM") == "Sales/Go-to-market"

    def test_unknown_is_other(self):
        assert normalize_category("Astrology") == "Other"
        assert normalize_category(None) == "Other"


def test_locate_page():
    assert locate_page("We will expand  Megafactory capacity", PAGES) == 2
    assert locate_page("not in the document", PAGES) is None


class TestNormalizeCandidate:
    def test_minimal_object_synthesizes_fields(self):
        candidate = normalize({"evidence": {"page": 1, "quote": PAGES[1]}})
        assert candidate.id == "m-hard-1"
        assert candidate.title == "Tesla will begin volume production of the new"
        assert candidate.decision == PAGES[1]
        assert candidate.rationale == GENERIC_RATIONALE
        assert candidate.category == "Other"
        assert candidate.strength == "soft"
        assert candidate.constraints.impact.score == 5

    def test_no_quote_and_no_page_dropped(self):
        assert normalize({"title": "Expand capacity", "decision": "Expand capacity"}) is None

    def test_page_without_quote_dropped(self):
        raw = {"title": "Open plant", "decision": "Management will open a plant in Ohio", "page": 1}
        assert normalize_candidate(raw, {1: "Our outlook is unchanged."}, fallback_id="m-soft-1") is None

    def test_long_quote_truncated_with_ellipsis(self):
        quote = "We will expand capacity " * 20
        candidate = normalize({"evidence": {"page": 2, "quote": quote}})
        assert len(candidate.evidence.quote) <= 280
        assert candidate.evidence.quote.endswith("…")

    def test_unknown_page_located_from_quote(self):
        candidate = normalize({"title": "Expand", "evidence": {"page": 9, "quote": "We will expand Megafactory capacity"}})
        assert candidate.evidence.page == 2

    def test_missing_page_uses_fallback(self):
        candidate = normalize({"title": "Open", "evidence": {"quote": "Open a store"}}, fallback_page=1)
        assert candidate.evidence.page == 1

    def test_missing_page_unlocatable_dropped(self):
        assert normalize({"title": "Open", "evidence": {"quote": "Open a store"}}) is None

    def test_strength_and_scores_clamped(self):
        candidate = normalize({
            "title": "Begin production",
            "strength": "HARD",
            "category": "ops",
            "constraints": {"impact": {"score": 14}, "risk": -2, "urgency": "9"},
            "evidence": {"page": "1", "quote": PAGES[1]},
            "tags": ["Capacity", "capacity", ""],
        })
        assert candidate.strength == "hard"
        assert candidate.category == "Operations"
        assert candidate.constraints.impact.score == 10
        assert candidate.constraints.risk.score == 1
        assert candidate.constraints.urgency.score == 9
        assert candidate.tags == ["capacity"]

    def test_default_strength_from_pass(self):
        candidate = normalize({"evidence": {"page": 1, "quote": PAGES[1]}}, default_strength="hard")
        assert candidate.strength == "hard"

    def test_not_a_mapping_dropped(self):
        assert normalize("Begin production") is None
