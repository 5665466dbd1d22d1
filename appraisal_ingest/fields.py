"""
Field resolution heuristics shared by every parser.

One policy maps arbitrary source field names onto canonical fields: try an
ordered list of candidate names (most specific synonym first, most generic
last) and take the first non-empty scalar value. The same policy is applied
to three source shapes:

- flat records (CSV rows, JSON objects): resolve_field / resolve_record
- nested trees (MISMO XML): resolve_path, with "A/B" paths and "@attr" keys
- unstructured text (PDF, work files): match_battery over regex batteries

Resolution never raises. A field that does not resolve is ``None`` and the
entity builders decide whether that is acceptable.
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from appraisal_ingest.transforms.numbers import parse_int, parse_number
from appraisal_ingest.transforms.text import trim_at_next_label
from appraisal_ingest.vocabulary import LabelPattern

# Key under which a tree node stores its own text when it also has children
TEXT_KEY = "#text"


def scalar_text(value: Any) -> str | None:
    """Render a scalar as trimmed text; containers and blanks become ``None``."""
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return None
        return repr(int(value)) if value.is_integer() else repr(value)
    if isinstance(value, (int, str)):
        text = str(value).strip()
        return text or None
    if isinstance(value, Mapping) and TEXT_KEY in value:
        return scalar_text(value[TEXT_KEY])
    return None


def _get_key(record: Mapping[str, Any], name: str) -> Any:
    """Exact key lookup first, then a case-insensitive, trimmed scan."""
    if name in record:
        return record[name]
    wanted = name.strip().lower()
    for key, value in record.items():
        if str(key).strip().lower() == wanted:
            return value
    return None


def resolve_field(record: Any, candidates: Iterable[str]) -> str | None:
    """Return the first non-empty candidate value in ``record``.

    Args:
        record: A mapping (anything else resolves to ``None``).
        candidates: Source field names in priority order.

    Returns:
        The trimmed value as a string, or ``None``.
    """
    if not isinstance(record, Mapping):
        return None
    for name in candidates:
        text = scalar_text(_get_key(record, name))
        if text is not None:
            return text
    return None


def resolve_numeric(record: Any, candidates: Iterable[str]) -> float | None:
    """``resolve_field`` followed by currency/comma stripping and float parsing."""
    return parse_number(resolve_field(record, candidates))


def resolve_record(
    record: Any, synonyms: Mapping[str, Sequence[str]]
) -> dict[str, str | None]:
    """Resolve every canonical field of a synonym table against one record."""
    return {field: resolve_field(record, names) for field, names in synonyms.items()}


def has_any_field(record: Any, candidates: Iterable[str]) -> bool:
    return resolve_field(record, candidates) is not None


def count_present(record: Any, candidates: Iterable[str]) -> int:
    """Number of candidate names that resolve to a non-empty value."""
    return sum(1 for name in candidates if resolve_field(record, [name]) is not None)


# ---------------------------------------------------------------------------
# Nested trees
# ---------------------------------------------------------------------------

def as_list(value: Any) -> list[Any]:
    """Wrap a single child as a one-element list; ``None`` becomes ``[]``."""
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def walk_path(node: Any, path: str) -> Any:
    """Follow a ``/``-separated path of case-insensitive keys.

    Repeated elements (lists) are entered through their first item.
    """
    current = node
    for part in path.split("/"):
        if isinstance(current, list):
            current = current[0] if current else None
        if not isinstance(current, Mapping):
            return None
        current = _get_key(current, part)
    return current


def resolve_path(node: Any, candidates: Iterable[str]) -> str | None:
    """Tree version of ``resolve_field``: candidates may be paths or ``@attr``."""
    for path in candidates:
        value = walk_path(node, path)
        if isinstance(value, list):
            value = value[0] if value else None
        text = scalar_text(value)
        if text is not None:
            return text
    return None


def resolve_tree(
    node: Any, synonyms: Mapping[str, Sequence[str]]
) -> dict[str, str | None]:
    return {field: resolve_path(node, paths) for field, paths in synonyms.items()}


def find_child(node: Any, candidates: Iterable[str]) -> Any:
    """Return the first candidate child (dict or list) present under ``node``."""
    for path in candidates:
        value = walk_path(node, path)
        if isinstance(value, (Mapping, list)) and value:
            return value
    return None


# ---------------------------------------------------------------------------
# Unstructured text
# ---------------------------------------------------------------------------

def match_battery(text: str, battery: Sequence[LabelPattern]) -> str | None:
    """Evaluate a regex battery in order; the first non-empty capture wins."""
    for label in battery:
        match = label.regex.search(text)
        if not match:
            continue
        value = match.group(label.group) or ""
        value = trim_at_next_label(value) if label.trim else value.strip()
        if value:
            return value
    return None


def match_fields(
    text: str, batteries: Mapping[str, Sequence[LabelPattern]]
) -> dict[str, str | None]:
    """Apply ``match_battery`` for every canonical field of a battery table."""
    return {field: match_battery(text, battery) for field, battery in batteries.items()}


def split_numbered_sections(
    text: str, headers: Sequence[LabelPattern]
) -> list[str]:
    """Split text into "header N ... up to the next header" sections.

    Header patterns are tried in order; the first one that occurs at all
    defines the sections. Returns ``[]`` when no header matches.
    """
    for header in headers:
        starts = [m.start() for m in header.regex.finditer(text)]
        if starts:
            bounds = starts[1:] + [len(text)]
            return [text[start:end] for start, end in zip(starts, bounds)]
    return []


def find_region(text: str, patterns: Sequence[LabelPattern]) -> list[str]:
    """All non-overlapping matches of every pattern, in pattern order."""
    regions: list[str] = []
    for pattern in patterns:
        regions.extend(m.group(pattern.group) for m in pattern.regex.finditer(text))
    return regions


@dataclass(frozen=True)
class AdjustmentLine:
    """A ``label : amount`` line found in an adjustments block."""

    comparable_id: int
    label: str
    amount: float


def scan_adjustment_lines(
    text: str,
    line_pattern: LabelPattern,
    comparable_marker: LabelPattern | None = None,
    first_comparable_id: int = 1,
) -> list[AdjustmentLine]:
    """Scan ``text`` line by line for adjustment amounts.

    Args:
        text: The adjustments block.
        line_pattern: Regex with the label in group 1 and the amount in group 2.
        comparable_marker: Optional regex whose group 1 is a comparable number;
            a matching line switches the comparable id for following lines.
        first_comparable_id: Id assigned before any marker line is seen.
    """
    found: list[AdjustmentLine] = []
    comparable_id = first_comparable_id
    for line in text.splitlines():
        if comparable_marker is not None:
            marker = comparable_marker.regex.search(line)
            if marker:
                comparable_id = parse_int(marker.group(comparable_marker.group)) or comparable_id
                continue
        match = line_pattern.regex.search(line)
        if not match:
            continue
        label = re.sub(r"\s+", " ", match.group(1)).strip()
        amount = parse_number(match.group(2))
        if label and amount is not None:
            found.append(AdjustmentLine(comparable_id, label, amount))
    return found
