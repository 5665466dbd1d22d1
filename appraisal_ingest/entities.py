"""
Canonical entity model for appraisal-ingest.

Every parser converges on the six record types defined here. Each model
carries a literal ``type`` tag so a list of mixed entities can be validated
and serialized as a discriminated union (``DataEntity``).

Field names are snake_case in Python; ``model_dump(by_alias=True)`` emits the
camelCase wire names (``zipCode``, ``grossLivingArea``, ...) expected by the
downstream persistence and UI collaborators. Both spellings are accepted on
input.

Address invariants:
- ``address`` is required and must be non-empty after trimming.
- ``city``, ``state`` and ``zip_code`` are never empty: blank or missing
  values become the literal ``"Unknown"``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from pydantic.alias_generators import to_camel

UNKNOWN = "Unknown"


class _Entity(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class _Located(_Entity):
    """Shared address and physical characteristics of a property or comparable."""

    address: str
    city: str = UNKNOWN
    state: str = UNKNOWN
    zip_code: str = UNKNOWN
    property_type: str = "Single Family"
    year_built: int | None = None
    lot_size: str | None = None
    bedrooms: int | None = None
    bathrooms: float | None = None
    gross_living_area: float | None = None

    @field_validator("address")
    @classmethod
    def _address_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("address must be a non-empty string")
        return value

    @field_validator("city", "state", "zip_code", mode="before")
    @classmethod
    def _unknown_when_blank(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return UNKNOWN
        return str(value).strip()


class Property(_Located):
    """The subject property of an appraisal."""

    type: Literal["property"] = "property"
    county: str | None = None
    legal_description: str | None = None
    tax_parcel_id: str | None = None
    stories: int | None = None
    basement: str | None = None
    garage: str | None = None


class Comparable(_Located):
    """A comparable sale used in the sales comparison approach."""

    type: Literal["comparable"] = "comparable"
    comp_type: str = "Sale"
    sale_price: float | None = None
    sale_date: date | None = None
    condition: str | None = None
    quality: str | None = None


class Report(_Entity):
    """Report-level metadata: form, purpose, dates and concluded value."""

    type: Literal["report"] = "report"
    report_type: str
    form_type: str = UNKNOWN
    status: str = "Completed"
    purpose: str | None = None
    effective_date: date | None = None
    report_date: date | None = None
    market_value: float | None = None


class Adjustment(_Entity):
    """A line adjustment applied to one comparable (by 1-based ordinal)."""

    type: Literal["adjustment"] = "adjustment"
    comparable_id: int
    adjustment_type: str
    amount: float
    description: str | None = None


class Photo(_Entity):
    type: Literal["photo"] = "photo"
    url: str
    caption: str | None = None
    photo_type: str = "subject_front"
    date_taken: date | None = None


class Sketch(_Entity):
    type: Literal["sketch"] = "sketch"
    title: str = "Sketch"
    url: str | None = None
    sketch_type: str = "floor_plan"
    square_footage: int | None = None
    scale: str | None = None
    description: str | None = None


DataEntity = Annotated[
    Union[Property, Report, Comparable, Adjustment, Photo, Sketch],
    Field(discriminator="type"),
]

_ENTITY_LIST = TypeAdapter(list[DataEntity])


def entities_from_dicts(records: list[dict[str, Any]]) -> list[DataEntity]:
    """Validate serialized entities (either field spelling) back into models."""
    return _ENTITY_LIST.validate_python(records)


@dataclass
class ParsingResult:
    """Aggregate returned by every parser.

    Attributes:
        entities: Extracted entities in document order.
        warnings: Non-fatal extraction notes, or ``None`` when there are none.
        errors: Decode failures, or ``None`` when there are none.

    ``length`` is derived from ``entities`` so it can never disagree with it.
    Empty warning/error lists are normalized to ``None``.
    """

    entities: list[DataEntity] = field(default_factory=list)
    warnings: list[str] | None = None
    errors: list[str] | None = None

    def __post_init__(self) -> None:
        self.entities = list(self.entities)
        self.warnings = list(self.warnings) if self.warnings else None
        self.errors = list(self.errors) if self.errors else None

    @property
    def length(self) -> int:
        return len(self.entities)

    def of_type(self, entity_type: str) -> list[DataEntity]:
        """Return the entities whose ``type`` tag equals ``entity_type``."""
        return [e for e in self.entities if e.type == entity_type]

    def to_dict(self) -> dict[str, Any]:
        """Render the wire shape ``{entities, length, warnings?, errors?}``."""
        out: dict[str, Any] = {
            "entities": [
                e.model_dump(mode="json", by_alias=True) for e in self.entities
            ],
            "length": self.length,
        }
        if self.warnings:
            out["warnings"] = list(self.warnings)
        if self.errors:
            out["errors"] = list(self.errors)
        return out
