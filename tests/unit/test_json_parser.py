"""
Unit tests for the JSON parser (appraisal_ingest.parsers.jsondoc).

Covers array classification, envelope extraction, the nested address
flattening and the generic fallback.
"""

from __future__ import annotations

import json

import pytest

from appraisal_ingest.parsers.jsondoc import MATCH_THRESHOLD, JsonParser


def _property(n: int) -> dict:
    return {
        "address": f"{n} Main St",
        "city": "Springfield",
        "state": "IL",
        "zipCode": "62704",
        "propertyType": "Single Family",
        "yearBuilt": 1990 + n,
        "bedrooms": 3,
    }


@pytest.fixture
def parser() -> JsonParser:
    return JsonParser()


class TestCanParse:
    """Tests for JsonParser.can_parse()."""

    @pytest.mark.parametrize("content", ['{"a": 1}', "[]", b'[{"address": "1 Main St"}]', '  \n{"x": null}'])
    def test_objects_and_arrays(self, parser, content):
        assert parser.can_parse(content)

    @pytest.mark.parametrize("content", ["", "42", '"text"', "{not json", "address,city\n1,2"])
    def test_rejects_everything_else(self, parser, content):
        assert not parser.can_parse(content)


class TestClassifiers:
    """Score-based classifiers."""

    def test_property_score(self, parser):
        assert parser.property_score(_property(1)) >= MATCH_THRESHOLD
        assert parser.property_score({"address": "1 Main St", "city": "X"}) < MATCH_THRESHOLD

    def test_comparable_score(self, parser):
        comp = {"address": "1 Main St", "city": "X", "salePrice": 100}
        assert parser.comparable_score(comp) == 1.0
        assert parser.comparable_score({"address": "1 Main St", "salePrice": 100}) == 0.0

    def test_report_score(self, parser):
        report = {"formType": "URAR", "effectiveDate": "2024-03-15", "marketValue": 1}
        assert parser.report_score(report) >= MATCH_THRESHOLD

    def test_classify_order(self, parser):
        assert parser.classify(_property(1)) == "property"
        assert parser.classify({"address": "1 Main St", "state": "IL", "saleDate": "2024-01-01"}) == "comparable"
        assert parser.classify({"status": "Draft", "purpose": "Refi", "reportType": "X"}) == "report"
        assert parser.classify({"foo": "bar"}) is None

    def test_flatten_nested_address(self, parser):
        flat = parser.flatten({"address": {"street": "1 Main St", "zip": "62704"}, "city": "Top"})
        assert flat["address"] == "1 Main St"
        assert flat["zipCode"] == "62704"
        assert flat["city"] == "Top"

    def test_looks_like_appraisal_data(self, parser):
        assert parser.looks_like_appraisal_data({"subject": {"a": 1}, "comps": [{}]})
        assert not parser.looks_like_appraisal_data({"subject": {"a": 1}})


class TestArrays:
    """Top-level JSON arrays."""

    @pytest.mark.asyncio
    async def test_five_properties(self, parser):
        result = await parser.parse(json.dumps([_property(n) for n in range(5)]))
        assert len(result.of_type("property")) == 5
        assert result.of_type("comparable") == []
        assert result.length == 5

    @pytest.mark.asyncio
    async def test_comparable_array(self, parser):
        comps = [
            {"address": "1 Oak St", "city": "A", "salePrice": "$100,000", "saleDate": "2024-01-02"},
            {"address": "2 Oak St", "city": "B", "salePrice": 200000},
        ]
        result = await parser.parse(json.dumps(comps))
        assert [c.sale_price for c in result.of_type("comparable")] == [100000.0, 200000.0]

    @pytest.mark.asyncio
    async def test_item_without_address_warns(self, parser):
        items = [_property(1), {"city": "X", "yearBuilt": 1990, "state": "IL", "zipCode": "1"}]
        result = await parser.parse(json.dumps(items))
        assert len(result.of_type("property")) == 1
        assert result.warnings == ["Property at index 1: Missing address, skipping property"]

    @pytest.mark.asyncio
    async def test_empty_array(self, parser):
        result = await parser.parse("[]")
        assert result.entities == []
        assert result.warnings == ["Empty JSON array"]

    @pytest.mark.asyncio
    async def test_unknown_array_generic(self, parser):
        result = await parser.parse(json.dumps([{"location": "5 Elm St", "price": 1}, {"note": "x"}]))
        assert result.warnings[0] == "Unknown JSON array structure, attempting generic extraction"
        assert [c.address for c in result.of_type("comparable")] == ["5 Elm St"]


class TestObjects:
    """Single JSON objects and envelopes."""

    @pytest.mark.asyncio
    async def test_envelope(self, parser):
        doc = {
            "subject": {"address": {"street": "742 Evergreen Terrace", "city": "Springfield"}},
            "appraisal": {"formType": "URAR", "marketValue": "$425,000"},
            "comps": [
                {"address": "1 Oak St", "salePrice": 1, "adjustments": [{"type": "GLA", "amount": 3000}]},
                {"address": "2 Oak St", "adjustments": [{"name": "View", "value": "-1,500"}]},
            ],
            "adjustments": [{"compId": 2, "adjustmentType": "Age", "amount": 500}],
            "sketches": [{"title": "Main level", "area": 1850}],
        }
        result = await parser.parse(json.dumps(doc))
        assert result.warnings is None
        assert result.of_type("property")[0].city == "Springfield"
        report = result.of_type("report")[0]
        assert report.report_type == "JSON Import"
        assert report.market_value == 425000.0
        adjustments = {(a.comparable_id, a.adjustment_type, a.amount) for a in result.of_type("adjustment")}
        assert adjustments == {(1, "GLA", 3000.0), (2, "View", -1500.0), (2, "Age", 500.0)}
        assert result.of_type("sketch")[0].square_footage == 1850

    @pytest.mark.asyncio
    async def test_empty_sections_are_not_an_envelope(self, parser):
        result = await parser.parse(json.dumps({"property": {"address": "1 Main St"}, "comparables": []}))
        assert result.entities == []
        assert result.warnings == [
            "Unknown JSON structure, attempting generic extraction",
            "Could not extract any meaningful data from the JSON structure",
        ]

    @pytest.mark.asyncio
    async def test_envelope_without_report(self, parser):
        doc = {"property": {"address": "1 Main St"}, "comparables": [{"address": "2 Oak St"}]}
        result = await parser.parse(json.dumps(doc))
        assert result.warnings == ["No report data found in JSON"]
        assert [e.type for e in result.entities] == ["property", "comparable"]

    @pytest.mark.asyncio
    async def test_single_property_object(self, parser):
        result = await parser.parse(json.dumps(_property(7)))
        assert [e.type for e in result.entities] == ["property"]

    @pytest.mark.asyncio
    async def test_unknown_object(self, parser):
        result = await parser.parse('{"foo": "bar"}')
        assert result.entities == []
        assert result.warnings == [
            "Unknown JSON structure, attempting generic extraction",
            "Could not extract any meaningful data from the JSON structure",
        ]


class TestDecodeErrors:
    """Structural failures produce exactly one error."""

    @pytest.mark.asyncio
    async def test_invalid_json(self, parser):
        result = await parser.parse("{broken")
        assert result.entities == []
        assert len(result.errors) == 1
        assert result.errors[0].startswith("Error parsing JSON")

    @pytest.mark.asyncio
    async def test_scalar_json(self, parser):
        result = await parser.parse("42")
        assert len(result.errors) == 1

    @pytest.mark.asyncio
    async def test_nesting_too_deep(self, parser):
        content = "[" * 200_000 + "]" * 200_000
        assert not parser.can_parse(content)
        result = await parser.parse(content)
        assert result.entities == []
        assert len(result.errors) == 1
        assert result.errors[0].startswith("Error parsing JSON")
