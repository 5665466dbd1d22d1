"""
Unit tests for field resolution heuristics (appraisal_ingest.fields).

Covers the first-non-empty-candidate policy over flat records, nested
trees and free text, plus numbered-section splitting and adjustment-line
scanning.
"""

from __future__ import annotations

import pytest

from appraisal_ingest.fields import (
    AdjustmentLine,
    as_list,
    count_present,
    find_child,
    find_region,
    match_battery,
    resolve_field,
    resolve_numeric,
    resolve_path,
    resolve_record,
    scalar_text,
    scan_adjustment_lines,
    split_numbered_sections,
    walk_path,
)
from appraisal_ingest.vocabulary import LabelPattern


class TestScalarText:
    """Tests for scalar_text()."""

    def test_strips_strings(self):
        assert scalar_text("  Springfield ") == "Springfield"

    def test_blank_is_none(self):
        assert scalar_text("   ") is None

    def test_integral_float_has_no_fraction(self):
        assert scalar_text(1850.0) == "1850"

    def test_bool(self):
        assert scalar_text(True) == "true"

    def test_containers_are_none(self):
        assert scalar_text(["a"]) is None
        assert scalar_text({"City": "X"}) is None

    def test_text_node_unwrapped(self):
        assert scalar_text({"@unit": "sqft", "#text": "1850"}) == "1850"


class TestResolveField:
    """Tests for resolve_field() and friends on flat records."""

    def test_first_candidate_wins(self):
        row = {"address": "1 Main St", "street_address": "2 Oak Ave"}
        assert resolve_field(row, ["address", "street_address"]) == "1 Main St"

    def test_skips_empty_candidates(self):
        row = {"address": "  ", "street_address": "2 Oak Ave"}
        assert resolve_field(row, ["address", "street_address"]) == "2 Oak Ave"

    def test_case_insensitive_keys(self):
        assert resolve_field({"ZipCode": "62704"}, ["zipcode"]) == "62704"

    def test_missing_is_none(self):
        assert resolve_field({"city": "X"}, ["address"]) is None

    def test_non_mapping_is_none(self):
        assert resolve_field("not a record", ["address"]) is None

    def test_numeric_values_rendered(self):
        assert resolve_field({"beds": 3}, ["beds"]) == "3"

    def test_resolve_numeric_strips_currency(self):
        assert resolve_numeric({"price": "$410,000"}, ["sale_price", "price"]) == 410000.0

    def test_resolve_numeric_garbage_is_none(self):
        assert resolve_numeric({"price": "call agent"}, ["price"]) is None

    def test_resolve_record(self):
        row = {"addr": "1 Main St", "town": "Springfield"}
        synonyms = {"address": ["address", "addr"], "city": ["city", "town"], "state": ["state"]}
        assert resolve_record(row, synonyms) == {
            "address": "1 Main St",
            "city": "Springfield",
            "state": None,
        }

    def test_count_present(self):
        row = {"address": "x", "city": "", "state": "IL"}
        assert count_present(row, ["address", "city", "state", "zip"]) == 2


class TestTreePaths:
    """Tests for walk_path() / resolve_path() / find_child()."""

    TREE = {
        "PropertyAddress": {"StreetAddress": "1 Main St", "City": "Springfield"},
        "RoomCount": [{"Bedrooms": "3"}, {"Bedrooms": "4"}],
        "@FormType": "URAR",
        "Comparables": {"Comparable": [{"City": "A"}, {"City": "B"}]},
    }

    def test_path(self):
        assert resolve_path(self.TREE, ["PropertyAddress/StreetAddress"]) == "1 Main St"

    def test_attribute_key(self):
        assert resolve_path(self.TREE, ["FormType", "@FormType"]) == "URAR"

    def test_lists_entered_through_first_item(self):
        assert resolve_path(self.TREE, ["RoomCount/Bedrooms"]) == "3"

    def test_missing_path(self):
        assert walk_path(self.TREE, "PropertyAddress/County") is None
        assert resolve_path(self.TREE, ["Nope/Nothing"]) is None

    def test_path_through_scalar(self):
        assert walk_path(self.TREE, "@FormType/Child") is None

    def test_find_child_returns_containers_only(self):
        comps = find_child(self.TREE, ["@FormType", "Comparables/Comparable"])
        assert [c["City"] for c in comps] == ["A", "B"]

    def test_as_list(self):
        assert as_list(None) == []
        assert as_list({"a": 1}) == [{"a": 1}]
        assert as_list([1, 2]) == [1, 2]


class TestTextScanning:
    """Tests for match_battery(), split_numbered_sections() and find_region()."""

    def test_battery_order(self):
        battery = [
            LabelPattern(pattern=r"Property\s*Address:\s*([^\n]+)"),
            LabelPattern(pattern=r"Address:\s*([^\n]+)"),
        ]
        text = "Address: 9 Wrong Way\nProperty Address: 1 Main St"
        assert match_battery(text, battery) == "1 Main St"

    def test_battery_falls_through(self):
        battery = [LabelPattern(pattern=r"Missing:\s*(\S+)"), LabelPattern(pattern=r"City:\s*(\S+)")]
        assert match_battery("City: Springfield", battery) == "Springfield"

    def test_battery_trims_at_next_label(self):
        battery = [LabelPattern(pattern=r"City:\s*([^\n]+)")]
        assert match_battery("City: Springfield  State: IL", battery) == "Springfield"

    def test_battery_no_match(self):
        assert match_battery("nothing here", [LabelPattern(pattern=r"City:\s*(\S+)")]) is None

    def test_split_sections(self):
        headers = [
            LabelPattern(pattern=r"Comparable\s*Sale\s*#\s*\d+", group=0),
            LabelPattern(pattern=r"\bComp\s*\d+", group=0),
        ]
        text = "Subject\nComp 1\nA\nComp 2\nB"
        sections = split_numbered_sections(text, headers)
        assert sections == ["Comp 1\nA\n", "Comp 2\nB"]

    def test_split_sections_none(self):
        assert split_numbered_sections("no headers", [LabelPattern(pattern=r"Comp\s*\d+", group=0)]) == []

    def test_find_region(self):
        pattern = LabelPattern(pattern=r"Adjustments([\s\S]*?)(?=Summary|\Z)", trim=False)
        assert find_region("x Adjustments\nGLA: 1\nSummary", [pattern]) == ["\nGLA: 1\n"]


class TestScanAdjustmentLines:
    """Tests for scan_adjustment_lines()."""

    LINE = LabelPattern(pattern=r"^\s*([A-Za-z][A-Za-z \t]*?)\s*[-:]\s*(-?\$?-?[\d,]+)", trim=False)
    MARKER = LabelPattern(pattern=r"^\s*Comp(?:arable)?\s*#?\s*(\d+)\s*:?\s*$", trim=False)

    def test_lines_with_markers(self):
        text = "Comp 1\nGLA: $3,000\nCondition: -5,000\nComp 2\nLocation - $1,500"
        lines = scan_adjustment_lines(text, self.LINE, self.MARKER)
        assert lines == [
            AdjustmentLine(1, "GLA", 3000.0),
            AdjustmentLine(1, "Condition", -5000.0),
            AdjustmentLine(2, "Location", 1500.0),
        ]

    def test_first_comparable_id(self):
        lines = scan_adjustment_lines("View: 2,000", self.LINE, first_comparable_id=4)
        assert lines == [AdjustmentLine(4, "View", 2000.0)]

    def test_non_matching_lines_ignored(self):
        assert scan_adjustment_lines("just prose\n\n", self.LINE, self.MARKER) == []

    @pytest.mark.parametrize("text", ["Net total", "GLA:"])
    def test_lines_without_amount(self, text):
        assert scan_adjustment_lines(text, self.LINE) == []
