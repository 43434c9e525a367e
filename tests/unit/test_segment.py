"""Tests for the segmenter."""
import pytest

from dnav.extraction.segment import Segmenter, normalize
from dnav.extraction.types import PageText


@pytest.fixture
def segmenter():
    return Segmenter()


class TestNormalize:
    def test_collapses_whitespace(self):
        assert normalize("a   b\t c").text == "a b c"

    def test_newline_run_kept_as_newline(self):
        assert normalize("line one\n\n  line two").text == "line one\nline two"

    def test_dehyphenates_wrapped_words(self):
        assert normalize("manu-\nfacturing").text == "manufacturing"

    def test_keeps_hyphen_before_capital(self):
        assert normalize("Model-\nY").text == "Model-\nY"

    def test_drops_soft_hyphen(self):
        assert normalize("capa\u00adcity").text == "capacity"

    def test_offsets_point_into_raw(self):
        raw = "We  will\n build"
        norm = normalize(raw)
        start, end = norm.raw_span(0, len(norm.text))
        assert raw[start:end] == raw


class TestSegmentPage:
    def test_sentences_become_units(self, segmenter):
        raw = "We will open a new factory in Texas. We plan to hire 500 engineers next year."
        units, _ = segmenter.segment_page(raw, page=3)
        assert [u.text for u in units] == [
            "We will open a new factory in Texas.",
            "We plan to hire 500 engineers next year.",
        ]
        assert all(u.page == 3 for u in units)
        assert [u.index for u in units] == [0, 1]

    def test_abbreviations_do_not_split(self, segmenter):
        raw = "We will relocate the U.S. headquarters to Austin by the end of 2026."
        units, _ = segmenter.segment_page(raw)
        assert [u.text for u in units] == [raw]

    def test_clause_breaks(self, segmenter):
        raw = "Outlook for 2026: we will double Megafactory output; hiring stays flat for the year."
        units, _ = segmenter.segment_page(raw)
        assert [u.text for u in units] == ["we will double Megafactory output", "hiring stays flat for the year."]

    def test_excerpt_is_exact_raw_slice(self, segmenter):
        raw = "We will build a new\n   manu-\nfacturing plant in Nevada during 2026."
        units, _ = segmenter.segment_page(raw)
        assert len(units) == 1
        unit = units[0]
        assert unit.text == "We will build a new manufacturing plant in Nevada during 2026."
        assert unit.excerpt == raw[unit.start:unit.end]
        assert unit.excerpt.startswith("We will build")
        assert unit.excerpt.endswith("2026.")

    def test_short_fragments_dropped(self, segmenter):
        units, _ = segmenter.segment_page("Too short. Also short.")
        assert units == []

    def test_long_sentence_split_within_limit(self, segmenter):
        clause = "we will expand the production line for the new battery platform in the Texas plant"
        raw = ", ".join([clause] * 6) + "."
        units, _ = segmenter.segment_page(raw)
        assert len(units) > 1
        assert all(30 <= len(u.text) <= 280 for u in units)

    def test_unbroken_run_hard_chunked(self, segmenter):
        raw = "word " * 200
        units, _ = segmenter.segment_page(raw)
        assert units
        assert all(len(u.text) <= 280 for u in units)

    def test_headings_set_section_hint(self, segmenter):
        raw = "OUTLOOK\nWe will expand Megafactory capacity in 2026.\n"
        units, last = segmenter.segment_page(raw)
        assert units[0].section_hint == "Outlook"
        assert last == "Outlook"

    def test_bullets_start_new_units(self, segmenter):
        raw = "- We will launch the new platform in Q2 2026\n- We will close the Fremont paint shop in 2027\n"
        units, _ = segmenter.segment_page(raw)
        assert [u.text for u in units] == [
            "We will launch the new platform in Q2 2026",
            "We will close the Fremont paint shop in 2027",
        ]

    def test_page_numbers_dropped(self, segmenter):
        units, _ = segmenter.segment_page("We will open a new factory in Texas.\n7\n")
        assert [u.text for u in units] == ["We will open a new factory in Texas."]

    def test_deterministic(self, segmenter):
        raw = "We will open a new factory in Texas. We plan to hire 500 engineers next year."
        assert segmenter.segment_page(raw) == segmenter.segment_page(raw)


class TestSegmentDocument:
    def test_repeated_headers_removed(self, segmenter):
        pages = [
            PageText(page=1, text="ACME Q4 Update\nWe will open a new factory in Texas.\n"),
            PageText(page=2, text="ACME Q4 Update\nWe plan to hire 500 engineers next year.\n"),
        ]
        result = segmenter.segment_document(pages)
        texts = [u.text for ps in result for u in ps.segments]
        assert "ACME Q4 Update" not in " ".join(texts)
        assert [ps.page for ps in result] == [1, 2]

    def test_section_carries_across_pages(self, segmenter):
        pages = [
            PageText(page=1, text="OUTLOOK\nWe will expand Megafactory capacity in 2026.\n"),
            PageText(page=2, text="We plan to hire 500 engineers over the next year.\n"),
        ]
        result = segmenter.segment_document(pages)
        assert result[1].segments[0].section_hint == "Outlook"

    def test_low_signal_sections_flagged(self, segmenter):
        pages = [
            PageText(page=1, text="We will open a new factory in Texas during 2026.\n"),
            PageText(
                page=2,
                text="FORWARD-LOOKING STATEMENTS\nStatements about plans could cause actual results to differ.\n",
            ),
        ]
        result = segmenter.segment_document(pages)
        assert not result[0].low_signal
        assert result[1].low_signal

    def test_table_dense_page_flagged(self, segmenter):
        pages = [PageText(page=1, text="Revenue 25,167 24,927 21,301 -1%\nMargin 18.4% 19.8% 17.9% 16.3%\n")]
        assert segmenter.segment_document(pages)[0].low_signal
