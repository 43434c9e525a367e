"""Tests for page structure helpers."""
from dnav.extraction.sections import (
    SectionTracker,
    is_page_number,
    line_key,
    page_is_table_dense,
    repeated_lines,
    split_pages,
)
from dnav.extraction.types import PageText


def test_is_page_number():
    assert is_page_number("12")
    assert is_page_number("Page 3 of 10")
    assert not is_page_number("12 new stores")


def test_line_key_collapses_digits():
    assert line_key("Q4 2025  Update") == line_key("Q1 2026 Update")


class TestRepeatedLines:
    def test_running_header_detected(self):
        pages = [PageText(page=i, text=f"ACME Annual Report\nBody text {i}\n") for i in range(1, 4)]
        assert line_key("ACME Annual Report") in repeated_lines(pages)

    def test_single_page_has_no_repeats(self):
        assert repeated_lines([PageText(page=1, text="ACME Annual Report\n")]) == frozenset()


class TestSectionTracker:
    def test_known_heading(self):
        assert SectionTracker().heading("Outlook") == "Outlook"

    def test_all_caps_heading_is_title_cased(self):
        assert SectionTracker().heading("CAPITAL ALLOCATION") == "Capital Allocation"

    def test_sentence_is_not_a_heading(self):
        assert SectionTracker().heading("We will open a new plant.") is None

    def test_low_signal_sections(self):
        tracker = SectionTracker()
        assert tracker.is_low_signal("Forward-Looking Statements")
        assert tracker.is_low_signal("Reconciliation of GAAP to Non-GAAP")
        assert not tracker.is_low_signal("Outlook")
        assert not tracker.is_low_signal(None)


def test_page_is_table_dense():
    table = "Revenue 25,167 24,927 21,301 -1%\nMargin 18.4% 19.8% 17.9% 16.3%\n"
    assert page_is_table_dense(table)
    assert not page_is_table_dense("We will open a plant in Texas.\n")


def test_split_pages_preserves_order():
    assert split_pages([1, 2, 3, 4], [2, 4]) == ([1, 3], [2, 4])
