"""
CSV parser for appraisal data extracts.

Detection is a coarse bag-of-words check on the header row. Parsing uses
pandas (all-string dtype, no NA inference) so values reach the builders
exactly as written. Headers are normalized to snake_case and the table is
classified by its columns:

- comparables: address columns plus a header containing a comparable term
  (comp/comparable/sale_price/sale_date/comp_address). Every row is a
  comparable.
- property: address columns plus a header containing a subject term
  (subject/property_type/year_built/lot_size). Row 0 is the subject, a
  "CSV Import" report follows, and every remaining row is treated as a
  comparable.
- generic: neither. If any row carries an address-like column all rows
  become comparables, otherwise nothing is extracted.

Malformed lines (too many fields) are skipped with a warning. Rows lacking
an address are skipped with a per-row warning.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass, field
from typing import Any, Literal

import pandas as pd
from pandas.errors import EmptyDataError, ParserError

from appraisal_ingest.builders import build_comparable, build_property, build_report
from appraisal_ingest.exceptions import DocumentDecodeError
from appraisal_ingest.fields import has_any_field, resolve_record
from appraisal_ingest.parsers.base import BaseParser, Content, ExtractionContext
from appraisal_ingest.transforms.headers import normalize_headers
from appraisal_ingest.transforms.text import decode_text

logger = logging.getLogger(__name__)

# Minimum number of sniff terms the header row must contain
SNIFF_MIN_MATCHES = 3

# Report emitted alongside a property-classified table
CSV_IMPORT_REPORT = {
    "report_type": "CSV Import",
    "form_type": "Data Import",
    "status": "Completed",
}

TableLayout = Literal["comparables", "property", "generic"]


@dataclass
class CsvTable:
    """Decoded CSV content plus the lines pandas had to skip."""

    frame: pd.DataFrame
    skipped: list[str] = field(default_factory=list)


def _sniff_delimiter(text: str) -> str:
    header = text.lstrip().split("\n", 1)[0]
    return "\t" if header.count("\t") > header.count(",") else ","


class CsvParser(BaseParser):
    """Parser for comma- or tab-separated appraisal extracts."""

    name = "csv"
    format_name = "CSV"

    def can_parse(self, content: Content) -> bool:
        lines = [line for line in decode_text(content).splitlines() if line.strip()]
        if len(lines) < 2:
            return False
        header = lines[0].lower()
        if "," not in header and "\t" not in header:
            return False
        hits = sum(1 for term in self.vocabulary.term_list("sniff") if term in header)
        return hits >= SNIFF_MIN_MATCHES

    def decode(self, content: Content) -> CsvTable:
        text = decode_text(content)
        if not text.strip():
            return CsvTable(frame=pd.DataFrame())

        skipped: list[str] = []

        def _skip_bad_line(bad_line: list[str]) -> None:
            skipped.append(",".join(bad_line))
            return None

        # The header row is read as data so it fixes the table width. With
        # header inference pandas turns the surplus leading fields of a long
        # first row into an index and shifts every column.
        try:
            raw = pd.read_csv(
                io.StringIO(text),
                sep=_sniff_delimiter(text),
                header=None,
                dtype=str,
                keep_default_na=False,
                skipinitialspace=True,
                skip_blank_lines=True,
                engine="python",
                on_bad_lines=_skip_bad_line,
            )
        except EmptyDataError:
            return CsvTable(frame=pd.DataFrame())
        except ParserError as e:
            raise DocumentDecodeError(f"Error parsing CSV: {e}") from e

        raw = raw.fillna("")
        frame = raw.iloc[1:].reset_index(drop=True)
        frame.columns = [str(c) for c in raw.iloc[0]]
        return CsvTable(frame=frame, skipped=skipped)

    def classify(self, headers: list[str]) -> TableLayout:
        """Classify a table by its normalized headers."""
        vocab = self.vocabulary

        def _contains(terms: list[str]) -> bool:
            return any(term in h for term in terms for h in headers)

        has_address = all(
            _contains([term]) for term in vocab.term_list("address_columns")
        )
        if not has_address:
            return "generic"
        if _contains(vocab.term_list("comparable_substrings")):
            return "comparables"
        if _contains(vocab.term_list("property_substrings")):
            return "property"
        return "generic"

    def extract(self, table: CsvTable, ctx: ExtractionContext) -> None:
        for line in table.skipped:
            ctx.warn(f"CSV parsing error: skipped malformed line '{line}'")

        frame = normalize_headers(table.frame)
        if frame.empty:
            ctx.warn("No data rows found in CSV")
            return

        rows: list[dict[str, Any]] = frame.to_dict(orient="records")
        layout = self.classify(list(frame.columns))
        logger.debug("CSV table classified as %s (%d rows)", layout, len(rows))

        if layout == "comparables":
            self._extract_comparables(rows, ctx)
        elif layout == "property":
            self._extract_property_table(rows, ctx)
        else:
            ctx.warn(
                "Could not determine data type from CSV headers. Using generic extraction."
            )
            self._extract_generic(rows, ctx)

    # -----------------------------------------------------------------
    # Table layouts
    # -----------------------------------------------------------------

    def _extract_comparables(
        self, rows: list[dict[str, Any]], ctx: ExtractionContext, first_row: int = 1
    ) -> None:
        synonyms = self.vocabulary.fields("comparable")
        for row_number, row in enumerate(rows, start=first_row):
            ctx.build(
                build_comparable,
                resolve_record(row, synonyms),
                label=f"Row {row_number}",
            )

    def _extract_property_table(
        self, rows: list[dict[str, Any]], ctx: ExtractionContext
    ) -> None:
        subject = ctx.build(
            build_property,
            resolve_record(rows[0], self.vocabulary.fields("property")),
            label="Row 1",
        )
        if subject is None:
            return
        ctx.build(build_report, CSV_IMPORT_REPORT)
        # Every later row is read as a comparable, even in multi-subject tables
        self._extract_comparables(rows[1:], ctx, first_row=2)

    def _extract_generic(
        self, rows: list[dict[str, Any]], ctx: ExtractionContext
    ) -> None:
        address_like = self.vocabulary.term_list("address_like")
        if any(has_any_field(row, address_like) for row in rows):
            self._extract_comparables(rows, ctx)
        else:
            ctx.warn("Could not identify address information in CSV")
