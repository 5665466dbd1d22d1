"""
Work file parser for proprietary appraisal-software exports.

Detection is literal-token sniffing (ZAPFILE, ACI-XML/ACIFORM, ALAMODE,
FORMDATA/APPRAISAL). The detected variant is reported as a warning so the
appraiser knows how the file was read:

- formxml: tag-based extraction. The subject is read from the document with
  comparable and adjustment blocks removed, comparables from
  <Comparable>/<Sale> blocks, the report from FormType/Form/ReportType and
  adjustments from <Adjustments> blocks (<Adjustment> items or
  "label: amount" lines).
- zap, aci, alamode, unknown: no dedicated reader exists. They go through
  the generic extractor, which tries every field name as an XML tag, as a
  "name: value" pair and as a line-leading label, splits comparables on
  "Comparable N" / "Comp N" / "Sale N" headers, and scans an "Adjustments"
  block for "label: amount" lines.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping, Sequence

from appraisal_ingest.builders import (
    build_adjustment,
    build_comparable,
    build_property,
    build_report,
)
from appraisal_ingest.fields import (
    AdjustmentLine,
    find_region,
    scan_adjustment_lines,
    split_numbered_sections,
)
from appraisal_ingest.parsers.base import BaseParser, Content, ExtractionContext
from appraisal_ingest.transforms.numbers import parse_int
from appraisal_ingest.transforms.text import decode_text, strip_tags, trim_at_next_label

logger = logging.getLogger(__name__)

WORKFILE_REPORT_TYPE = "Work File"

# Variants in detection order
VARIANTS: tuple[str, ...] = ("zap", "aci", "alamode", "formxml")


def _name_pattern(name: str) -> str:
    """Regex for a field name; inner spaces match optional whitespace."""
    return r"\s*".join(re.escape(part) for part in name.split())


def find_tag(text: str, names: Iterable[str]) -> str | None:
    """First non-empty ``<Name ...>value</Name>`` for the given tag names."""
    for name in names:
        tag = re.escape(name)
        match = re.search(rf"<{tag}(?:\s[^>]*)?>([\s\S]*?)</{tag}>", text)
        if match:
            value = strip_tags(match.group(1))
            if value:
                return value
    return None


def find_field_value(text: str, names: Iterable[str]) -> str | None:
    """Find a field value written as an XML tag, a key/value pair or a label.

    Each name is tried in all three styles before moving to the next name.
    """
    for name in names:
        value = find_tag(text, [name])
        if value:
            return value
        pattern = _name_pattern(name)
        pair = re.search(
            rf"(?<![A-Za-z]){pattern}(?![A-Za-z])[ \t]*[:=][ \t]*[\"']?([^\n\r]*?)[\"']?[ \t]*$",
            text,
            re.IGNORECASE | re.MULTILINE,
        )
        if pair:
            value = trim_at_next_label(pair.group(1)).rstrip(",;").strip()
            if value:
                return value
        label = re.search(
            rf"^[ \t]*{pattern}[ \t]+(\S[^\n\r]*)$", text, re.IGNORECASE | re.MULTILINE
        )
        if label:
            value = label.group(1).strip()
            if value:
                return value
    return None


def resolve_tags(text: str, synonyms: Mapping[str, Sequence[str]]) -> dict[str, str | None]:
    return {field: find_tag(text, names) for field, names in synonyms.items()}


def resolve_generic(text: str, synonyms: Mapping[str, Sequence[str]]) -> dict[str, str | None]:
    return {field: find_field_value(text, names) for field, names in synonyms.items()}


class WorkFileParser(BaseParser):
    """Parser for ZAP / ACI / a la mode / FormXML work files."""

    name = "workfile"
    format_name = "Work File"

    def can_parse(self, content: Content) -> bool:
        text = decode_text(content)
        return any(token in text for token in self.vocabulary.term_list("sniff"))

    def decode(self, content: Content) -> str:
        return decode_text(content)

    def detect_variant(self, text: str) -> str:
        for variant in VARIANTS:
            if any(token in text for token in self.vocabulary.term_list(variant)):
                return variant
        return "unknown"

    def extract(self, text: str, ctx: ExtractionContext) -> None:
        variant = self.detect_variant(text)
        logger.debug("Work file variant: %s", variant)
        if variant == "unknown":
            ctx.warn("Could not identify specific work file format. Using generic extraction.")
        else:
            ctx.warn(f"Detected {variant} format. Extracting data.")

        if variant == "formxml":
            self._extract_formxml(text, ctx)
        else:
            # ZAP, ACI and a la mode files have no dedicated reader yet
            self._extract_generic(text, ctx)

    # -----------------------------------------------------------------
    # FormXML
    # -----------------------------------------------------------------

    def _extract_formxml(self, text: str, ctx: ExtractionContext) -> None:
        vocab = self.vocabulary
        blocks: list[str] = []
        subject_text = text
        for pattern in vocab.section("formxml_comparable_blocks"):
            blocks = [m.group(1) for m in pattern.regex.finditer(text)]
            if blocks:
                subject_text = pattern.regex.sub("", subject_text)
                break
        for name in vocab.term_list("formxml_adjustment_blocks"):
            tag = re.escape(name)
            subject_text = re.sub(rf"<{tag}>[\s\S]*?</{tag}>", "", subject_text)

        # Subject
        address_block = find_tag(subject_text, vocab.term_list("formxml_address_block"))
        if address_block is None:
            ctx.warn("Could not extract property data from Form XML")
        else:
            fields = resolve_tags(subject_text, vocab.fields("formxml_property"))
            fields["address"] = fields["address"] or address_block
            ctx.build(build_property, fields, label="Subject property")

        # Comparables
        for number, block in enumerate(blocks, start=1):
            ctx.build(
                build_comparable,
                resolve_tags(block, vocab.fields("formxml_comparable")),
                label=f"Comparable {number}",
            )
        if not ctx.count("comparable"):
            ctx.warn("No comparable properties found in Form XML")

        # Report
        report = resolve_tags(subject_text, vocab.fields("formxml_report"))
        if report["form_type"] is None:
            ctx.warn("Could not extract report data from Form XML")
        else:
            ctx.build(build_report, report, report_type=WORKFILE_REPORT_TYPE)

        self._extract_formxml_adjustments(text, ctx)

    def _extract_formxml_adjustments(self, text: str, ctx: ExtractionContext) -> None:
        vocab = self.vocabulary
        sections: list[str] = []
        for name in vocab.term_list("formxml_adjustment_blocks"):
            tag = re.escape(name)
            sections = re.findall(rf"<{tag}>([\s\S]*?)</{tag}>", text)
            if sections:
                break

        items_pattern = vocab.section("formxml_adjustment_items")[0]
        for ordinal, section in enumerate(sections, start=1):
            comparable_id = parse_int(
                find_tag(section, vocab.term_list("formxml_adjustment_comparable"))
            )
            if comparable_id is None:
                comparable_id = ordinal
            items = [m.group(1) for m in items_pattern.regex.finditer(section)]
            if items:
                for item in items:
                    fields = resolve_tags(item, vocab.fields("formxml_adjustment"))
                    fields["comparable_id"] = str(comparable_id)
                    ctx.build(build_adjustment, fields, label=f"Adjustment block {ordinal}")
            else:
                lines = scan_adjustment_lines(
                    strip_tags_per_line(section),
                    vocab.section("adjustment_line")[0],
                    vocab.section("comparable_marker")[0],
                    first_comparable_id=comparable_id,
                )
                self._build_lines(lines, ctx)

    # -----------------------------------------------------------------
    # Generic
    # -----------------------------------------------------------------

    def _extract_generic(self, text: str, ctx: ExtractionContext) -> None:
        vocab = self.vocabulary
        adjustment_patterns = vocab.section("generic_adjustments")
        body = text
        for pattern in adjustment_patterns:
            body = pattern.regex.sub("", body)

        sections = split_numbered_sections(body, vocab.section("generic_comparable_headers"))
        subject_text = body[: body.index(sections[0])] if sections else body

        fields = resolve_generic(subject_text, vocab.fields("generic_property"))
        if fields["address"] is None:
            ctx.warn("Could not find property address in work file")
        else:
            ctx.build(build_property, fields, label="Subject property")

        report = resolve_generic(subject_text, vocab.fields("generic_report"))
        if report["form_type"] is not None:
            ctx.build(build_report, report, report_type=WORKFILE_REPORT_TYPE)

        for number, section in enumerate(sections, start=1):
            ctx.build(
                build_comparable,
                resolve_generic(section, vocab.fields("generic_comparable")),
                label=f"Comparable section {number}",
            )

        marker = vocab.section("comparable_marker")[0]
        for region in find_region(text, adjustment_patterns):
            lines = scan_adjustment_lines(region, vocab.section("adjustment_line")[0], marker)
            self._build_lines(lines, ctx)

    def _build_lines(self, lines: list[AdjustmentLine], ctx: ExtractionContext) -> None:
        for line in lines:
            ctx.build(
                build_adjustment,
                {
                    "comparable_id": line.comparable_id,
                    "adjustment_type": line.label,
                    "amount": line.amount,
                    "description": f"{line.label} adjustment",
                },
                label="Adjustment",
            )


def strip_tags_per_line(text: str) -> str:
    """Remove markup from each line while keeping the line structure."""
    return "\n".join(strip_tags(line) for line in text.splitlines())
