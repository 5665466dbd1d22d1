"""
Text helpers shared by the text-scanning parsers.

- decode_text(): bytes or str content -> str (UTF-8, BOM tolerant).
- strip_tags(): remove markup from a captured value.
- trim_at_next_label(): cut a captured value at the next "Label:" run, so
  "123 Main St  City: Springfield" yields "123 Main St" when a page's
  columns were flattened onto one line.
"""

from __future__ import annotations

import re

_TAG_RE = re.compile(r"<[^>]+>")
_WHITESPACE_RE = re.compile(r"\s+")

# Either a wide gap (or tab) followed by a short label and a colon, or a
# single capitalized word directly followed by a colon.
_NEXT_LABEL_RE = re.compile(
    r"(?:[ ]{2,}|\t)[A-Za-z][^:\n]{0,40}:|\s+[A-Z][A-Za-z]*\s*:"
)


def decode_text(content: str | bytes) -> str:
    """Decode content to text, dropping a leading byte-order mark."""
    if isinstance(content, (bytes, bytearray)):
        return bytes(content).decode("utf-8-sig", errors="replace")
    return content.lstrip("\ufeff")


def strip_tags(value: str) -> str:
    """Remove XML/HTML tags and collapse the remaining whitespace."""
    return _WHITESPACE_RE.sub(" ", _TAG_RE.sub(" ", value)).strip()


def trim_at_next_label(value: str) -> str:
    """Cut ``value`` where another ``Label:`` begins on the same line."""
    match = _NEXT_LABEL_RE.search(value)
    if match:
        value = value[: match.start()]
    return value.strip()
