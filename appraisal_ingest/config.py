"""
Configuration models and YAML I/O for appraisal-ingest.

The configuration is optional: every model has defaults that reproduce the
stock behaviour, so ``IngestConfig()`` is a valid configuration. A YAML file
is only needed to reorder parsers, remap extensions, change the fallback
values written into entities, or point at a custom vocabulary directory.

Key models:
- IngestConfig: Top-level config (registry + defaults + limits).
- RegistryConfig: Parser priority order and the extension fallback table.
- DefaultsConfig: Literal values used when a field does not resolve.
- LimitsConfig: Bounds for recursive tree walks.

Key functions:
- load_config(path) -> IngestConfig: Load and validate from YAML.
- save_config(config, path): Serialize to YAML.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from appraisal_ingest.exceptions import ConfigValidationError

logger = logging.getLogger(__name__)

# Names under which the built-in parsers register themselves
KNOWN_PARSERS: tuple[str, ...] = ("pdf", "mismo_xml", "json", "csv", "workfile")

DEFAULT_PARSER_ORDER: list[str] = ["pdf", "mismo_xml", "json", "csv", "workfile"]

DEFAULT_EXTENSION_MAP: dict[str, str] = {
    ".pdf": "pdf",
    ".xml": "mismo_xml",
    ".csv": "csv",
    ".tsv": "csv",
    ".json": "json",
    ".zap": "workfile",
    ".aci": "workfile",
    ".apr": "workfile",
    ".alf": "workfile",
}


class RegistryConfig(BaseModel):
    """Parser dispatch settings."""

    parser_order: list[str] = Field(
        default_factory=lambda: list(DEFAULT_PARSER_ORDER),
        description="Parsers in content-sniffing priority order (first match wins)",
    )
    extension_map: dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_EXTENSION_MAP),
        description="Fallback table from file extension to parser name",
    )

    @field_validator("parser_order")
    @classmethod
    def _check_parser_order(cls, value: list[str]) -> list[str]:
        unknown = [name for name in value if name not in KNOWN_PARSERS]
        if unknown:
            raise ValueError(
                f"Unknown parser(s) in parser_order: {unknown}. "
                f"Known parsers: {list(KNOWN_PARSERS)}"
            )
        if len(set(value)) != len(value):
            raise ValueError(f"parser_order contains duplicates: {value}")
        return value

    @field_validator("extension_map")
    @classmethod
    def _normalize_extensions(cls, value: dict[str, str]) -> dict[str, str]:
        normalized: dict[str, str] = {}
        for ext, parser_name in value.items():
            if parser_name not in KNOWN_PARSERS:
                raise ValueError(
                    f"Extension '{ext}' maps to unknown parser '{parser_name}'"
                )
            key = ext.strip().lower()
            if not key.startswith("."):
                key = "." + key
            normalized[key] = parser_name
        return normalized


class DefaultsConfig(BaseModel):
    """Fallback values written into entities when a field does not resolve."""

    property_type: str = "Single Family"
    comp_type: str = "Sale"
    report_status: str = "Completed"
    form_type: str = "Unknown"
    photo_type: str = "subject_front"
    sketch_type: str = "floor_plan"


class LimitsConfig(BaseModel):
    """Bounds applied to recursive document walks."""

    max_tree_depth: int = Field(
        32, ge=1, description="Maximum depth searched for the MISMO root element"
    )


class IngestConfig(BaseModel):
    """Top-level configuration for appraisal-ingest."""

    registry: RegistryConfig = Field(default_factory=RegistryConfig)
    defaults: DefaultsConfig = Field(default_factory=DefaultsConfig)
    limits: LimitsConfig = Field(default_factory=LimitsConfig)
    vocabulary_dir: str | None = Field(
        None,
        description="Directory holding vocabulary YAML files (defaults to the bundled set)",
    )

    @model_validator(mode="after")
    def _check_extension_targets_enabled(self) -> IngestConfig:
        """Every extension fallback must point at a parser that is registered."""
        enabled = set(self.registry.parser_order)
        orphans = {
            ext: name
            for ext, name in self.registry.extension_map.items()
            if name not in enabled
        }
        if orphans:
            raise ValueError(
                f"extension_map references parsers missing from parser_order: {orphans}"
            )
        return self


def load_config(path: str | Path) -> IngestConfig:
    """Load and validate an ingest YAML file into an IngestConfig model.

    Raises:
        FileNotFoundError: If the config file does not exist.
        ConfigValidationError: If the file is empty.
        pydantic.ValidationError: If the YAML content fails schema validation.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)
    if raw is None:
        raise ConfigValidationError(f"Config file is empty: {path}")
    if not isinstance(raw, dict):
        raise ConfigValidationError(
            f"Config file must contain a mapping, got {type(raw).__name__}: {path}"
        )
    logger.info("Loaded config from %s", path)
    return IngestConfig.model_validate(raw)


def save_config(config: IngestConfig, path: str | Path) -> None:
    """Serialize an IngestConfig to YAML.

    Writes a human-readable YAML file with a header comment.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    data = config.model_dump(mode="json")
    with open(path, "w", encoding="utf-8") as f:
        f.write("# appraisal-ingest configuration\n")
        f.write(
            "# Edit this file to reorder parsers, remap extensions or change defaults.\n\n"
        )
        yaml.dump(
            data,
            f,
            allow_unicode=True,
            default_flow_style=False,
            sort_keys=False,
        )
    logger.info("Saved config to %s", path)
