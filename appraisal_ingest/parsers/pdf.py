"""
PDF parser for appraisal reports.

Text is extracted page by page with pypdf and joined into a single blob;
page and column layout is discarded. Every canonical field is then resolved
with an ordered battery of label regexes from vocabularies/pdf.yaml
("Property Address:" before "Address:"), which makes this an approximation
rather than a layout-aware reader.

- Subject: resolved from the text before the first comparable section,
  falling back to the whole text when that region has no address.
- Comparables: "Comparable Sale # N" sections (else "Comp N"), each
  re-scanned with the comparable battery.
- Report: only emitted when a form type is found.
- Adjustments: "label - $amount" lines inside the Adjustments region, plus
  "+ $n label - $n" table rows elsewhere in the text.

When pypdf cannot read the document, or it has no text layer, the raw
content is scanned as text instead and a warning says so.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass

from pypdf import PdfReader

from appraisal_ingest.builders import (
    build_adjustment,
    build_comparable,
    build_property,
    build_report,
)
from appraisal_ingest.fields import (
    AdjustmentLine,
    find_region,
    match_fields,
    scan_adjustment_lines,
    split_numbered_sections,
)
from appraisal_ingest.parsers.base import BaseParser, Content, ExtractionContext

logger = logging.getLogger(__name__)

PDF_SIGNATURE = "%PDF-"
PDF_REPORT_TYPE = "PDF"


@dataclass
class PdfText:
    """Text recovered from a PDF.

    Attributes:
        text: Page texts joined by newlines (or the raw content in degraded mode).
        page_count: Pages pypdf reported, 0 in degraded mode.
        degraded_reason: Why the raw content was scanned instead, if it was.
    """

    text: str
    page_count: int = 0
    degraded_reason: str | None = None


def extract_pdf_text(data: bytes, fallback_text: str | None = None) -> PdfText:
    """Extract text with pypdf.

    When pypdf fails or finds no text layer, ``fallback_text`` is scanned
    instead, or the raw bytes decoded as latin-1 when no text was supplied.
    """
    raw_text = fallback_text if fallback_text is not None else data.decode("latin-1")
    try:
        reader = PdfReader(io.BytesIO(data))
        pages = [page.extract_text() or "" for page in reader.pages]
    except Exception as e:
        logger.warning("pypdf could not read document: %s", e)
        return PdfText(
            text=raw_text,
            degraded_reason=f"PDF text extraction failed ({e}); scanning raw content",
        )

    text = "\n".join(pages)
    if not text.strip():
        logger.warning("PDF has no extractable text layer (%d pages)", len(pages))
        return PdfText(
            text=raw_text,
            page_count=len(pages),
            degraded_reason="PDF has no extractable text layer; scanning raw content",
        )
    return PdfText(text=text, page_count=len(pages))


class PdfParser(BaseParser):
    """Parser for PDF appraisal reports."""

    name = "pdf"
    format_name = "PDF"

    def can_parse(self, content: Content) -> bool:
        if isinstance(content, (bytes, bytearray)):
            return bytes(content[:5]) == PDF_SIGNATURE.encode("ascii")
        return content.startswith(PDF_SIGNATURE)

    def decode(self, content: Content) -> PdfText:
        if isinstance(content, str):
            # pypdf needs bytes; the caller's text is kept for degraded mode
            return extract_pdf_text(
                content.encode("latin-1", errors="replace"), fallback_text=content
            )
        return extract_pdf_text(bytes(content))

    def extract(self, document: PdfText, ctx: ExtractionContext) -> None:
        if document.degraded_reason:
            ctx.warn(document.degraded_reason)
        text = document.text
        vocab = self.vocabulary

        sections = split_numbered_sections(text, vocab.section("comparable_headers"))
        subject_text = text[: text.index(sections[0])] if sections else text

        # Subject
        fields = match_fields(subject_text, vocab.battery("property"))
        if fields["address"] is None and subject_text != text:
            fields = match_fields(text, vocab.battery("property"))
        if fields["address"] is None:
            ctx.warn("Could not extract property data from PDF")
        else:
            ctx.build(build_property, fields, label="Subject property")

        # Comparables
        for number, section in enumerate(sections, start=1):
            ctx.build(
                build_comparable,
                match_fields(section, vocab.battery("comparable")),
                label=f"Comparable section {number}",
            )
        if not ctx.count("comparable"):
            ctx.warn("No comparable properties found in PDF")

        # Report
        report_fields = match_fields(text, vocab.battery("report"))
        if report_fields["form_type"] is None:
            ctx.warn("Could not extract report data from PDF")
        else:
            ctx.build(build_report, report_fields, report_type=PDF_REPORT_TYPE)

        # Adjustments
        for line in self.scan_adjustments(text):
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

    def scan_adjustments(self, text: str) -> list[AdjustmentLine]:
        """Collect adjustment lines from the Adjustments region and table rows."""
        vocab = self.vocabulary
        region_patterns = vocab.section("adjustments_region")
        marker = vocab.section("comparable_marker")[0]

        lines: list[AdjustmentLine] = []
        for region in find_region(text, region_patterns):
            lines.extend(
                scan_adjustment_lines(region, vocab.section("adjustment_line")[0], marker)
            )

        # Table rows outside the region belong to the next comparable
        outside = text
        for pattern in region_patterns:
            outside = pattern.regex.sub("", outside)
        rows = find_region(outside, vocab.section("adjustment_table"))
        if rows:
            next_id = max((line.comparable_id for line in lines), default=0) + 1
            lines.extend(
                scan_adjustment_lines(
                    "\n".join(rows),
                    vocab.section("adjustment_table_line")[0],
                    first_comparable_id=next_id,
                )
            )
        return lines
