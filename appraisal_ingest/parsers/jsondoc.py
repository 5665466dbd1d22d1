"""
JSON parser for appraisal exports.

Any content that decodes to a JSON object or array is accepted; the work is
in classifying what the JSON describes.

- Arrays: the first element is scored against the property, comparable and
  report classifiers, and the whole array is extracted under the first
  classifier that reaches MATCH_THRESHOLD. Otherwise each item goes through
  generic extraction.
- Objects: an "envelope" ({"property": ..., "comparables": [...],
  "report": ...}) is extracted section by section. Sections are independent
  and a missing one only adds a warning. A bare property or report object is
  extracted directly; anything else goes through generic extraction.

Classifier scores are ratios against named minimums, so a score of 1.0
means "just enough evidence".
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Literal

from appraisal_ingest.builders import (
    build_adjustment,
    build_comparable,
    build_photo,
    build_property,
    build_report,
    build_sketch,
)
from appraisal_ingest.exceptions import DocumentDecodeError
from appraisal_ingest.fields import (
    as_list,
    count_present,
    has_any_field,
    resolve_field,
    resolve_record,
    walk_path,
)
from appraisal_ingest.parsers.base import BaseParser, Content, ExtractionContext
from appraisal_ingest.transforms.text import decode_text

logger = logging.getLogger(__name__)

# Property: >= 3 core address/type fields and >= 1 physical detail
PROPERTY_CORE_MIN = 3
PROPERTY_DETAIL_MIN = 1
# Report: >= 3 report-indicative fields
REPORT_FIELD_MIN = 3
# Score at or above which a classifier claims the object
MATCH_THRESHOLD = 1.0

# Fallback report type when the JSON does not name one
JSON_REPORT_TYPE = "JSON Import"

RecordKind = Literal["property", "comparable", "report"]


class JsonParser(BaseParser):
    """Parser for JSON appraisal exports."""

    name = "json"
    format_name = "JSON"

    def can_parse(self, content: Content) -> bool:
        text = decode_text(content).strip()
        if not text or text[0] not in "{[":
            return False
        try:
            return isinstance(json.loads(text), (dict, list))
        except (ValueError, RecursionError):
            return False

    def decode(self, content: Content) -> dict[str, Any] | list[Any]:
        try:
            document = json.loads(decode_text(content))
        except (ValueError, RecursionError) as e:
            raise DocumentDecodeError(f"Error parsing JSON: {e}") from e
        if not isinstance(document, (dict, list)):
            raise DocumentDecodeError(
                f"Error parsing JSON: expected an object or array, got {type(document).__name__}"
            )
        return document

    def extract(self, document: dict[str, Any] | list[Any], ctx: ExtractionContext) -> None:
        if isinstance(document, list):
            self._extract_array(document, ctx)
        else:
            self._extract_object(document, ctx)

    # -----------------------------------------------------------------
    # Classifiers
    # -----------------------------------------------------------------

    def flatten(self, obj: Any) -> Any:
        """Lift a nested ``address`` object into top-level keys."""
        if not isinstance(obj, Mapping):
            return obj
        nested = walk_path(obj, "address")
        if not isinstance(nested, Mapping):
            return obj
        flat = dict(obj)
        flat.pop("address", None)
        for key, names in self.vocabulary.fields("nested_address").items():
            value = resolve_field(nested, names)
            if value is not None and (key == "address" or key not in flat):
                flat[key] = value
        return flat

    def property_score(self, obj: Any) -> float:
        terms = self.vocabulary.term_list
        core = count_present(obj, terms("property_core")) / PROPERTY_CORE_MIN
        detail = count_present(obj, terms("property_detail")) / PROPERTY_DETAIL_MIN
        return min(core, detail)

    def comparable_score(self, obj: Any) -> float:
        terms = self.vocabulary.term_list
        evidence = (
            has_any_field(obj, terms("comparable_sale")),
            has_any_field(obj, ["address"]),
            has_any_field(obj, terms("comparable_locality")),
        )
        return 1.0 if all(evidence) else 0.0

    def report_score(self, obj: Any) -> float:
        return count_present(obj, self.vocabulary.term_list("report_fields")) / REPORT_FIELD_MIN

    def classify(self, obj: Any) -> RecordKind | None:
        """Return the first record kind whose score reaches MATCH_THRESHOLD."""
        obj = self.flatten(obj)
        if self.property_score(obj) >= MATCH_THRESHOLD:
            return "property"
        if self.comparable_score(obj) >= MATCH_THRESHOLD:
            return "comparable"
        if self.report_score(obj) >= MATCH_THRESHOLD:
            return "report"
        return None

    def looks_like_appraisal_data(self, obj: Any) -> bool:
        terms = self.vocabulary.term_list
        return (
            self._section(obj, terms("envelope_property")) is not None
            and self._section(obj, terms("envelope_secondary")) is not None
        )

    @staticmethod
    def _section(obj: Any, names: list[str]) -> Any:
        for name in names:
            value = walk_path(obj, name)
            if value:
                return value
        return None

    # -----------------------------------------------------------------
    # Record builders
    # -----------------------------------------------------------------

    def _build(
        self, kind: str, obj: Any, ctx: ExtractionContext, label: str, **kwargs: Any
    ) -> None:
        builders = {
            "property": build_property,
            "comparable": build_comparable,
            "report": build_report,
            "adjustment": build_adjustment,
            "photo": build_photo,
            "sketch": build_sketch,
        }
        if not isinstance(obj, Mapping):
            ctx.warn(f"{label}: expected an object, got {type(obj).__name__}")
            return
        fields = resolve_record(self.flatten(obj), self.vocabulary.fields(kind))
        if kind == "report":
            kwargs.setdefault("report_type", JSON_REPORT_TYPE)
        ctx.build(builders[kind], fields, label=label, **kwargs)

    def _extract_array(self, items: list[Any], ctx: ExtractionContext) -> None:
        if not items:
            ctx.warn("Empty JSON array")
            return
        kind = self.classify(items[0])
        logger.debug("JSON array of %d items classified as %s", len(items), kind)
        if kind is None:
            ctx.warn("Unknown JSON array structure, attempting generic extraction")
            self._extract_generic(items, ctx)
            return
        for index, item in enumerate(items):
            self._build(kind, item, ctx, label=f"{kind.capitalize()} at index {index}")

    def _extract_object(self, obj: dict[str, Any], ctx: ExtractionContext) -> None:
        if self.looks_like_appraisal_data(obj):
            self._extract_envelope(obj, ctx)
            return
        flat = self.flatten(obj)
        if self.property_score(flat) >= MATCH_THRESHOLD:
            self._build("property", obj, ctx, label="Property")
        elif self.report_score(flat) >= MATCH_THRESHOLD:
            self._build("report", obj, ctx, label="Report")
        else:
            ctx.warn("Unknown JSON structure, attempting generic extraction")
            self._extract_generic([obj], ctx)

    def _extract_envelope(self, obj: dict[str, Any], ctx: ExtractionContext) -> None:
        terms = self.vocabulary.term_list

        subject = self._section(obj, terms("envelope_property"))
        if isinstance(subject, Mapping):
            self._build("property", subject, ctx, label="Property")
        else:
            ctx.warn("No property data found in JSON")

        report = self._section(obj, terms("envelope_report"))
        if isinstance(report, Mapping):
            self._build("report", report, ctx, label="Report")
        else:
            ctx.warn("No report data found in JSON")

        comparables = as_list(self._section(obj, terms("envelope_comparables")))
        if not comparables:
            ctx.warn("No comparables data found in JSON")
        nested_adjustments: list[tuple[int, Any]] = []
        for index, comp in enumerate(comparables):
            self._build("comparable", comp, ctx, label=f"Comparable at index {index}")
            if isinstance(comp, Mapping):
                for adj in as_list(walk_path(comp, "adjustments")):
                    nested_adjustments.append((index + 1, adj))

        top_level = as_list(self._section(obj, terms("envelope_adjustments")))
        for index, adj in enumerate(top_level):
            self._build(
                "adjustment", adj, ctx, label=f"Adjustment at index {index}", ordinal=index + 1
            )
        for index, (ordinal, adj) in enumerate(nested_adjustments):
            self._build(
                "adjustment",
                adj,
                ctx,
                label=f"Comparable {ordinal} adjustment {index}",
                ordinal=ordinal,
            )

        for index, photo in enumerate(as_list(self._section(obj, terms("envelope_photos")))):
            self._build("photo", photo, ctx, label=f"Photo at index {index}")
        for index, sketch in enumerate(as_list(self._section(obj, terms("envelope_sketches")))):
            self._build("sketch", sketch, ctx, label=f"Sketch at index {index}")

    def _extract_generic(self, items: list[Any], ctx: ExtractionContext) -> None:
        terms = self.vocabulary.term_list
        before = len(ctx.entities)
        for index, item in enumerate(items):
            item = self.flatten(item)
            if has_any_field(item, terms("generic_address")):
                kind = "comparable" if has_any_field(item, terms("generic_sale")) else "property"
                self._build(kind, item, ctx, label=f"Item at index {index}")
            elif has_any_field(item, terms("generic_report")):
                self._build("report", item, ctx, label=f"Item at index {index}")
        if len(ctx.entities) == before:
            ctx.warn("Could not extract any meaningful data from the JSON structure")
