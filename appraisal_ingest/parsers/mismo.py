"""
MISMO XML parser.

The XML is parsed with ElementTree and converted into a plain attributed
tree: attributes become "@name" keys, repeated child elements become lists,
leaf elements become their text and namespace prefixes are dropped. A
bounded depth-first search then finds the report root under any of its
known spellings (MISMO_AppraisalReport, AppraisalReport, ...), tolerating
documents that wrap it in envelopes.

Subject, report, comparables, adjustments, photos and sketches are each
resolved with path-aware synonym tables (vocabularies/mismo_xml.yaml), the
same first-match-wins policy used for flat records.
"""

from __future__ import annotations

import logging
import re
import xml.etree.ElementTree as ET
from collections.abc import Mapping
from typing import Any

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
    TEXT_KEY,
    as_list,
    find_child,
    resolve_tree,
    scalar_text,
)
from appraisal_ingest.parsers.base import BaseParser, Content, ExtractionContext
from appraisal_ingest.transforms.text import decode_text

logger = logging.getLogger(__name__)

MISMO_REPORT_TYPE = "MISMO XML"

_NAMESPACE_RE = re.compile(r"^\{[^}]*\}")
# Prefixed element names and non-xmlns prefixed attribute names
_TAG_PREFIX_RE = re.compile(r"(</?)[A-Za-z_][\w.-]*:")
_ATTR_PREFIX_RE = re.compile(r"(\s)(?!xmlns\b)[A-Za-z_][\w.-]*:(?=[A-Za-z_][\w.-]*\s*=)")


def _local_name(tag: str) -> str:
    return _NAMESPACE_RE.sub("", tag)


def element_to_tree(element: ET.Element) -> Any:
    """Convert an element into nested dicts, lists and strings.

    Elements without attributes or children become their stripped text.
    """
    node: dict[str, Any] = {}
    for name, value in element.attrib.items():
        node["@" + _local_name(name)] = value
    for child in element:
        key = _local_name(child.tag)
        value = element_to_tree(child)
        if key not in node:
            node[key] = value
        elif isinstance(node[key], list):
            node[key].append(value)
        else:
            node[key] = [node[key], value]
    text = (element.text or "").strip()
    if not node:
        return text
    if text:
        node[TEXT_KEY] = text
    return node


def parse_xml_tree(text: str) -> dict[str, Any]:
    """Parse XML text into ``{root_name: tree}``.

    Undeclared namespace prefixes (common in hand-edited MISMO exports) are
    stripped and the parse is retried once.

    Raises:
        DocumentDecodeError: If the text is not well-formed XML.
    """
    try:
        root = ET.fromstring(text)
    except ET.ParseError as e:
        if "unbound prefix" not in str(e):
            raise DocumentDecodeError(f"Error parsing MISMO XML: {e}") from e
        logger.debug("Retrying XML parse without namespace prefixes: %s", e)
        stripped = _ATTR_PREFIX_RE.sub(r"\1", _TAG_PREFIX_RE.sub(r"\1", text))
        try:
            root = ET.fromstring(stripped)
        except ET.ParseError as retry_error:
            raise DocumentDecodeError(
                f"Error parsing MISMO XML: {retry_error}"
            ) from retry_error
    try:
        return {_local_name(root.tag): element_to_tree(root)}
    except RecursionError as e:
        raise DocumentDecodeError("Error parsing MISMO XML: nesting too deep") from e


def find_root(tree: Any, names: list[str], max_depth: int) -> Mapping[str, Any] | None:
    """Depth-first search for the first node stored under one of ``names``.

    Nodes deeper than ``max_depth`` levels are not visited.
    """
    stack: list[tuple[Any, int]] = [(tree, 0)]
    while stack:
        node, depth = stack.pop()
        if isinstance(node, list):
            stack.extend((item, depth) for item in reversed(node))
            continue
        if not isinstance(node, Mapping):
            continue
        for name in names:
            for candidate in as_list(node.get(name)):
                if isinstance(candidate, Mapping):
                    return candidate
        if depth < max_depth:
            stack.extend(
                (child, depth + 1)
                for key, child in reversed(list(node.items()))
                if not key.startswith("@") and key != TEXT_KEY
            )
    return None


class MismoXmlParser(BaseParser):
    """Parser for MISMO-schema appraisal XML."""

    name = "mismo_xml"
    format_name = "MISMO XML"

    def can_parse(self, content: Content) -> bool:
        text = decode_text(content)
        terms = self.vocabulary.term_list
        if any(prefix in text for prefix in terms("sniff_prefixes")):
            return True
        return (
            "<" in text
            and any(ns in text for ns in terms("sniff_namespace"))
            and any(doc in text for doc in terms("sniff_document"))
        )

    def decode(self, content: Content) -> dict[str, Any]:
        return parse_xml_tree(decode_text(content).strip())

    def extract(self, tree: dict[str, Any], ctx: ExtractionContext) -> None:
        terms = self.vocabulary.term_list
        doc = find_root(tree, terms("root"), self.config.limits.max_tree_depth)
        if doc is None:
            ctx.warn("Could not find MISMO document structure")
            return

        self._extract_subject(doc, ctx)
        self._extract_report(doc, ctx)
        self._extract_comparables(doc, ctx)

        ordinal = 0
        for container in as_list(find_child(doc, terms("adjustments"))):
            ordinal = self._extract_adjustments(container, ctx, ordinal)

        synonyms = self.vocabulary.fields
        for index, photo in enumerate(as_list(find_child(doc, terms("photos")))):
            ctx.build(build_photo, resolve_tree(photo, synonyms("photo")), label=f"Photo {index + 1}")
        for index, sketch in enumerate(as_list(find_child(doc, terms("sketches")))):
            ctx.build(build_sketch, resolve_tree(sketch, synonyms("sketch")), label=f"Sketch {index + 1}")

    # -----------------------------------------------------------------
    # Sections
    # -----------------------------------------------------------------

    def _extract_subject(self, doc: Mapping[str, Any], ctx: ExtractionContext) -> None:
        subject = find_child(doc, self.vocabulary.term_list("subject"))
        if isinstance(subject, list):
            subject = subject[0]
        if not isinstance(subject, Mapping):
            ctx.warn("No subject property data found")
            return
        ctx.build(
            build_property,
            resolve_tree(subject, self.vocabulary.fields("property")),
            label="Subject property",
        )

    def _extract_report(self, doc: Mapping[str, Any], ctx: ExtractionContext) -> None:
        synonyms = self.vocabulary.fields
        report_node = find_child(doc, self.vocabulary.term_list("report"))
        if isinstance(report_node, list):
            report_node = report_node[0]

        fields = resolve_tree(doc, synonyms("report_document"))
        if isinstance(report_node, Mapping):
            local = resolve_tree(report_node, synonyms("report"))
            fields.update({k: v for k, v in local.items() if v is not None})
        elif not any(fields.values()):
            ctx.warn("No appraisal report data found")
            return
        ctx.build(build_report, fields, report_type=MISMO_REPORT_TYPE)

    def _extract_comparables(self, doc: Mapping[str, Any], ctx: ExtractionContext) -> None:
        comparables = as_list(find_child(doc, self.vocabulary.term_list("comparables")))
        synonyms = self.vocabulary.fields("comparable")
        for number, comp in enumerate(comparables, start=1):
            if not isinstance(comp, Mapping):
                ctx.warn(f"Comparable {number}: Missing address, skipping comparable")
                continue
            entity = ctx.build(build_comparable, resolve_tree(comp, synonyms), label=f"Comparable {number}")
            if entity is None:
                continue
            for container in as_list(find_child(comp, self.vocabulary.term_list("adjustments"))):
                self._extract_adjustments(container, ctx, 0, comparable_id=number)
        if not ctx.count("comparable"):
            ctx.warn("No comparable properties found")

    def _extract_adjustments(
        self,
        container: Any,
        ctx: ExtractionContext,
        ordinal: int,
        comparable_id: int | None = None,
    ) -> int:
        """Extract each child of an Adjustments element; returns the last ordinal.

        The child element name is the adjustment type unless the child is a
        generic wrapper (``<Adjustment>``) or names its own type.
        """
        if not isinstance(container, Mapping):
            return ordinal
        synonyms = self.vocabulary.fields("adjustment")
        wrappers = {w.lower() for w in self.vocabulary.term_list("adjustment_wrappers")}
        for key, value in container.items():
            if key.startswith("@") or key == TEXT_KEY:
                continue
            for item in as_list(value):
                ordinal += 1
                if isinstance(item, Mapping):
                    fields = resolve_tree(item, synonyms)
                else:
                    fields = {"amount": scalar_text(item)}
                if not fields.get("adjustment_type") and key.lower() not in wrappers:
                    fields["adjustment_type"] = key
                if comparable_id is not None and not fields.get("comparable_id"):
                    fields["comparable_id"] = str(comparable_id)
                ctx.build(
                    build_adjustment,
                    fields,
                    label=f"Adjustment {ordinal}",
                    ordinal=ordinal,
                )
        return ordinal
