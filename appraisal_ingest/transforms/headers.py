"""
Header normalization for tabular sources.

CSV exports from appraisal software label the same column many ways
("Sale Price", "sale-price", "SALE_PRICE"). All headers are lower-cased and
every non-alphanumeric character is replaced with an underscore, so the
synonym tables only need to list snake_case spellings.
"""

from __future__ import annotations

import logging
import re

import pandas as pd

logger = logging.getLogger(__name__)

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]")


def normalize_header(name: object) -> str:
    """Normalize one header: ``" Sale Price "`` -> ``"sale_price"``."""
    return _NON_ALNUM_RE.sub("_", str(name).strip().lower())


def normalize_headers(df: pd.DataFrame) -> pd.DataFrame:
    """Return a copy of ``df`` with snake_case column names.

    When two source columns normalize to the same name, the first one wins
    and the later duplicates are dropped.
    """
    df = df.copy()
    df.columns = [normalize_header(c) for c in df.columns]
    duplicated = df.columns.duplicated()
    if duplicated.any():
        logger.debug(
            "Dropping duplicate normalized headers: %s",
            list(df.columns[duplicated]),
        )
        df = df.loc[:, ~duplicated]
    return df
