"""
Unit tests for parser selection (appraisal_ingest.registry) and the
top-level convenience API.
"""

from __future__ import annotations

import json

import pytest

import appraisal_ingest
from appraisal_ingest.config import IngestConfig
from appraisal_ingest.exceptions import UnsupportedFormatError
from appraisal_ingest.registry import ParserRegistry, default_registry

MISMO_SNIPPET = "<MISMO_AppraisalReport><Form><FormType>URAR</FormType></Form></MISMO_AppraisalReport>"
CSV_SNIPPET = "address,city,state,zip\n1 Main St,Springfield,IL,62704\n"


@pytest.fixture
def registry() -> ParserRegistry:
    return ParserRegistry.from_config()


# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------
class TestSelection:
    """Content sniffing first, extension table second."""

    def test_default_order(self, registry):
        assert [p.name for p in registry.parsers] == ["pdf", "mismo_xml", "json", "csv", "workfile"]

    def test_content_beats_extension(self, registry):
        assert registry.get_parser_for_file("export.xyz", MISMO_SNIPPET).name == "mismo_xml"
        assert registry.get_parser_for_file("data.csv", '[{"address": "1 Main St"}]').name == "json"

    def test_pdf_bytes(self, registry):
        assert registry.get_parser_for_file("scan.bin", b"%PDF-1.4\n...").name == "pdf"

    def test_csv_content(self, registry):
        assert registry.get_parser_for_file("upload", CSV_SNIPPET).name == "csv"

    def test_extension_fallback(self, registry):
        assert registry.get_parser_for_file("data.csv", "").name == "csv"
        assert registry.get_parser_for_file("REPORT.XML", "nothing here").name == "mismo_xml"

    def test_nothing_matches(self, registry):
        assert registry.get_parser_for_file("notes.txt", "hello world") is None
        assert registry.get_parser_for_file("noext", "") is None

    def test_deeply_nested_json_falls_back_to_extension(self, registry):
        content = "[" * 200_000 + "]" * 200_000
        assert registry.get_parser_for_file("x.json", content).name == "json"
        assert registry.get_parser_for_file("x.bin", content) is None

    def test_get_by_name(self, registry):
        assert registry.get("workfile").format_name == "Work File"
        assert registry.get("docx") is None


class TestConfiguredRegistry:
    """Order and extension table come from IngestConfig."""

    def test_custom_order(self):
        config = IngestConfig(
            registry={"parser_order": ["workfile", "csv"], "extension_map": {"csv": "csv"}}
        )
        registry = ParserRegistry.from_config(config)
        content = "ZAPFILE\naddress,city,state,zip\n1 Main St,Springfield,IL,62704\n"
        assert registry.get_parser_for_file("a.zap", content).name == "workfile"
        # json is not registered, and .json has no fallback
        assert registry.get_parser_for_file("a.json", "") is None
        assert registry.get_parser_for_file("a.CSV", "").name == "csv"

    def test_default_registry_is_cached(self):
        assert default_registry() is default_registry()


# ---------------------------------------------------------------------------
# Convenience API
# ---------------------------------------------------------------------------
class TestParseContent:
    """appraisal_ingest.parse_content / parse_path."""

    @pytest.mark.asyncio
    async def test_unsupported_format(self):
        with pytest.raises(UnsupportedFormatError, match="notes.txt"):
            await appraisal_ingest.parse_content("notes.txt", "hello world")

    @pytest.mark.asyncio
    async def test_parse_content_json(self):
        payload = json.dumps([{"address": "1 Oak St", "city": "A", "salePrice": 100}])
        result = await appraisal_ingest.parse_content("comps.json", payload)
        assert [e.type for e in result.entities] == ["comparable"]

    @pytest.mark.asyncio
    async def test_parse_path_strips_bom(self, tmp_path):
        path = tmp_path / "comps.json"
        payload = json.dumps([{"address": "1 Oak St", "city": "A", "salePrice": 100}])
        path.write_bytes(b"\xef\xbb\xbf" + payload.encode("utf-8"))
        result = await appraisal_ingest.parse_path(path)
        assert result.of_type("comparable")[0].sale_price == 100.0

    @pytest.mark.asyncio
    async def test_parse_path_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            await appraisal_ingest.parse_path(tmp_path / "nope.csv")

    def test_get_parser_for_file_with_registry(self, registry):
        parser = appraisal_ingest.get_parser_for_file("x.xml", MISMO_SNIPPET, registry=registry)
        assert parser is registry.get("mismo_xml")
