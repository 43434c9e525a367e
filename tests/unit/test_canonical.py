"""Tests for the canonicalizer."""
import pytest

from dnav.extraction.canonical import Canonicalizer


@pytest.fixture
def canon():
    return Canonicalizer()


class TestCanonicalize:
    def test_subject_and_modal_removed(self, canon):
        form = canon.canonicalize("Tesla will begin volume production of the new platform in Q2 2026.")
        assert form.title == "Begin volume production of the new platform (Q2 2026)"
        assert form.action_verb == "begin"
        assert form.object_key == "product"
        assert form.time_bucket == "2026-Q2"

    def test_proper_noun_normalized(self, canon):
        form = canon.canonicalize("We will expand Megafactory capacity in 2026.")
        assert form.title == "Expand Megafactory capacity (2026)"
        assert form.object_key == "megafactory"
        assert form.time_bucket == "2026"

    def test_verb_synonym_maps_to_canonical_verb(self, canon):
        form = canon.canonicalize("We will roll out the updated Model Y in Europe in H1 2026.")
        assert form.action_verb == "launch"
        assert form.title.startswith("Launch ")
        assert form.time_bucket == "2026-H1"

    def test_lead_in_clause_removed(self, canon):
        form = canon.canonicalize("In 2026, we plan to build a new cathode plant in Texas.")
        assert form.title == "Build a new cathode plant in Texas (2026)"
        assert form.object_key == "factory"

    def test_earliest_verb_beats_later_commitment(self, canon):
        form = canon.canonicalize("We will hire 500 engineers in the first half of 2026 to support the Cybercab ramp.")
        assert form.action_verb == "hire"
        assert form.title.startswith("Hire 500 engineers")

    def test_earliest_verb_beats_later_schedule_phrase(self, canon):
        form = canon.canonicalize("We will open a new factory in Mexico, with production scheduled to begin in 2027.")
        assert form.action_verb == "open"
        assert form.title.startswith("Open a new factory in Mexico")

    def test_subject_noun_skipped_for_verb_after_commitment(self, canon):
        form = canon.canonicalize("The production ramp will begin in Q3 2026.")
        assert form.action_verb == "begin"

    def test_no_verb_returns_none(self, canon):
        assert canon.canonicalize("The results were strong across every region this year.") is None

    def test_no_time_cue(self, canon):
        form = canon.canonicalize("We will open a flagship store in Shanghai.")
        assert form.time_bucket is None
        assert "(" not in form.title


class TestPieces:
    def test_strip_prefixes_repeats(self, canon):
        assert canon.strip_prefixes("Additionally, the company will open a store.") == "open a store."

    def test_object_key_falls_back_to_tokens(self, canon):
        assert canon.object_key("quarterly newsletter format") == "quarterly-newsletter"

    def test_object_key_general_when_empty(self, canon):
        assert canon.object_key("") == "general"

    def test_long_title_kept_within_limit(self, canon):
        phrase = (
            "the regional distribution network across twelve additional states "
            "in the southern and western parts of the country with new partners"
        )
        title = canon.compose_title("expand", phrase, None)
        assert len(title) <= 90
        assert title.startswith("Expand the regional distribution network")

    def test_unbreakable_title_hard_truncated(self, canon):
        title = canon.compose_title("build", "x" * 200, None)
        assert len(title) <= 90
        assert title.startswith("Build ")
