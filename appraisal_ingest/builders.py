"""
Entity builders: resolved raw fields -> canonical entities.

Parsers resolve source values into a plain ``{canonical_field: str | None}``
mapping and hand it to one of the builders below. The builders are the only
place where values are coerced (ints, floats, dates) and where defaults are
applied, so a missing city is ``"Unknown"`` and a missing property type is
the configured default no matter which format the record came from.

Builders raise MissingFieldError for absent required fields; callers running
inside an ExtractionContext get that converted into a warning.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from appraisal_ingest.config import DefaultsConfig
from appraisal_ingest.entities import (
    Adjustment,
    Comparable,
    Photo,
    Property,
    Report,
    Sketch,
)
from appraisal_ingest.exceptions import MissingFieldError
from appraisal_ingest.fields import scalar_text
from appraisal_ingest.transforms.numbers import parse_date, parse_int, parse_number

Fields = Mapping[str, Any]


def _text(fields: Fields, name: str) -> str | None:
    return scalar_text(fields.get(name))


def _require(fields: Fields, name: str, entity_type: str) -> str:
    value = _text(fields, name)
    if value is None:
        raise MissingFieldError(name, entity_type)
    return value


def _location(fields: Fields, defaults: DefaultsConfig, entity_type: str) -> dict[str, Any]:
    """Address and characteristics shared by properties and comparables."""
    return {
        "address": _require(fields, "address", entity_type),
        "city": _text(fields, "city"),
        "state": _text(fields, "state"),
        "zip_code": _text(fields, "zip_code"),
        "property_type": _text(fields, "property_type") or defaults.property_type,
        "year_built": parse_int(fields.get("year_built")),
        "lot_size": _text(fields, "lot_size"),
        "bedrooms": parse_int(fields.get("bedrooms")),
        "bathrooms": parse_number(fields.get("bathrooms")),
        "gross_living_area": parse_number(fields.get("gross_living_area")),
    }


def build_property(fields: Fields, defaults: DefaultsConfig) -> Property:
    return Property(
        **_location(fields, defaults, "property"),
        county=_text(fields, "county"),
        legal_description=_text(fields, "legal_description"),
        tax_parcel_id=_text(fields, "tax_parcel_id"),
        stories=parse_int(fields.get("stories")),
        basement=_text(fields, "basement"),
        garage=_text(fields, "garage"),
    )


def build_comparable(fields: Fields, defaults: DefaultsConfig) -> Comparable:
    return Comparable(
        **_location(fields, defaults, "comparable"),
        comp_type=_text(fields, "comp_type") or defaults.comp_type,
        sale_price=parse_number(fields.get("sale_price")),
        sale_date=parse_date(fields.get("sale_date")),
        condition=_text(fields, "condition"),
        quality=_text(fields, "quality"),
    )


def build_report(
    fields: Fields, defaults: DefaultsConfig, report_type: str = "Import"
) -> Report:
    """Build a report; ``report_type`` is used when the source names none."""
    return Report(
        report_type=_text(fields, "report_type") or report_type,
        form_type=_text(fields, "form_type") or defaults.form_type,
        status=_text(fields, "status") or defaults.report_status,
        purpose=_text(fields, "purpose"),
        effective_date=parse_date(fields.get("effective_date")),
        report_date=parse_date(fields.get("report_date")),
        market_value=parse_number(fields.get("market_value")),
    )


def build_adjustment(
    fields: Fields, defaults: DefaultsConfig, ordinal: int = 1
) -> Adjustment:
    """Build an adjustment; ``ordinal`` is the comparable id when none resolves.

    Both the adjustment type and a numeric amount are required.
    """
    adjustment_type = _require(fields, "adjustment_type", "adjustment")
    amount = parse_number(fields.get("amount"))
    if amount is None:
        raise MissingFieldError("amount", "adjustment")
    comparable_id = parse_int(fields.get("comparable_id"))
    return Adjustment(
        comparable_id=comparable_id if comparable_id is not None else ordinal,
        adjustment_type=adjustment_type,
        amount=amount,
        description=_text(fields, "description"),
    )


def build_photo(fields: Fields, defaults: DefaultsConfig) -> Photo:
    return Photo(
        url=_require(fields, "url", "photo"),
        caption=_text(fields, "caption"),
        photo_type=_text(fields, "photo_type") or defaults.photo_type,
        date_taken=parse_date(fields.get("date_taken")),
    )


def build_sketch(fields: Fields, defaults: DefaultsConfig) -> Sketch:
    return Sketch(
        title=_text(fields, "title") or "Sketch",
        url=_text(fields, "url"),
        sketch_type=_text(fields, "sketch_type") or defaults.sketch_type,
        square_footage=parse_int(fields.get("square_footage")),
        scale=_text(fields, "scale"),
        description=_text(fields, "description"),
    )
