"""
Number and date coercion for appraisal-ingest.

Source documents write numbers the way people type them:
- Currency symbols and thousand separators (e.g., "$425,000")
- Trailing units (e.g., "1,850 sq ft", "2.5 baths")
- Surrounding whitespace, or nothing at all

The numeric parsers strip ``$``, commas and whitespace, then read the leading
numeric run. Anything that does not start with a number becomes ``None``;
coercion never raises.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime
from typing import Any

import pandas as pd

# Characters removed before numeric parsing
_NUMERIC_NOISE_RE = re.compile(r"[$,\s]")

# Leading signed decimal, optionally with an exponent
_LEADING_NUMBER_RE = re.compile(r"^[-+]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][-+]?\d+)?")


def parse_number(value: Any) -> float | None:
    """Parse a loosely formatted numeric value.

    Args:
        value: A string such as "$425,000" or "1,850 sq ft", or a number.

    Returns:
        The float value, or ``None`` when no leading number is present.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
        return None if math.isnan(number) or math.isinf(number) else number
    cleaned = _NUMERIC_NOISE_RE.sub("", str(value))
    match = _LEADING_NUMBER_RE.match(cleaned)
    if not match:
        return None
    number = float(match.group(0))
    return None if math.isinf(number) else number


def parse_int(value: Any) -> int | None:
    """Parse a value as an integer, truncating any fractional part."""
    number = parse_number(value)
    if number is None:
        return None
    return int(number)


def parse_date(value: Any) -> date | None:
    """Parse a date in any format pandas understands.

    Handles ISO ("2024-03-15"), US ("03/15/2024", "3/15/24") and long-form
    ("March 15, 2024") dates. Unparseable values become ``None``.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    parsed = pd.to_datetime(text, errors="coerce")
    if pd.isna(parsed):
        return None
    return parsed.date()
