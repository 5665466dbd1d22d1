"""
Vocabulary loader for appraisal-ingest.

Field-name heuristics are data, not control flow. Each parser has one YAML
file in appraisal_ingest/vocabularies/ holding:
- terms: named word lists used for sniffing and classification
- synonyms: entity -> canonical field -> ordered candidate source names
- patterns: entity -> canonical field -> ordered regex battery
- sections: named header regexes used to split text into sections

Candidate lists and batteries are evaluated in declared order with the first
match winning, so supporting a new label phrasing means adding one line of
YAML, not a new branch in a parser.

A pattern entry is either a bare regex string or a mapping with ``pattern``,
``group`` (capture group index, default 1), ``ignore_case`` (default true)
and ``trim`` (cut the capture at the next "Label:" run, default true).
"""

from __future__ import annotations

import functools
import logging
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from appraisal_ingest.exceptions import VocabularyError

logger = logging.getLogger(__name__)

# Directory containing the bundled vocabulary YAML files
_VOCABULARY_DIR = Path(__file__).parent / "vocabularies"


class LabelPattern(BaseModel):
    """One regex in a battery, plus the capture group holding the value."""

    model_config = ConfigDict(frozen=True)

    pattern: str
    group: int = Field(1, ge=0)
    ignore_case: bool = True
    trim: bool = True

    @model_validator(mode="before")
    @classmethod
    def _from_bare_string(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"pattern": data}
        return data

    @field_validator("pattern")
    @classmethod
    def _check_compiles(cls, value: str) -> str:
        try:
            re.compile(value)
        except re.error as e:
            raise ValueError(f"Invalid regex {value!r}: {e}") from e
        return value

    @model_validator(mode="after")
    def _check_group_exists(self) -> LabelPattern:
        if self.group > self.regex.groups:
            raise ValueError(
                f"Pattern {self.pattern!r} has {self.regex.groups} groups, "
                f"group {self.group} requested"
            )
        return self

    @property
    def regex(self) -> re.Pattern[str]:
        flags = re.IGNORECASE if self.ignore_case else 0
        return re.compile(self.pattern, flags)


class Vocabulary(BaseModel):
    """A complete per-format vocabulary loaded from YAML."""

    model_config = ConfigDict(frozen=True)

    format_name: str
    description: str = ""
    terms: dict[str, list[str]] = Field(default_factory=dict)
    synonyms: dict[str, dict[str, list[str]]] = Field(default_factory=dict)
    patterns: dict[str, dict[str, list[LabelPattern]]] = Field(default_factory=dict)
    sections: dict[str, list[LabelPattern]] = Field(default_factory=dict)

    def term_list(self, name: str) -> list[str]:
        """Named word list, e.g. ``term_list("sniff")``."""
        return self._lookup(self.terms, "terms", name)

    def fields(self, entity: str) -> dict[str, list[str]]:
        """Synonym table for one entity: canonical field -> candidates."""
        return self._lookup(self.synonyms, "synonyms", entity)

    def battery(self, entity: str) -> dict[str, list[LabelPattern]]:
        """Regex batteries for one entity: canonical field -> patterns."""
        return self._lookup(self.patterns, "patterns", entity)

    def section(self, name: str) -> list[LabelPattern]:
        """Section-header patterns, tried in order."""
        return self._lookup(self.sections, "sections", name)

    def _lookup(self, table: dict[str, Any], kind: str, key: str) -> Any:
        try:
            return table[key]
        except KeyError:
            raise VocabularyError(
                f"Vocabulary '{self.format_name}' has no {kind} entry '{key}'"
            ) from None


def load_vocabulary_file(path: Path) -> Vocabulary:
    """Load and validate a single vocabulary YAML file."""
    if not path.exists():
        raise VocabularyError(f"Vocabulary file not found: {path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise VocabularyError(f"Invalid YAML in {path}: {e}") from e
    if not isinstance(raw, dict):
        raise VocabularyError(f"Vocabulary file must contain a mapping: {path}")
    try:
        vocabulary = Vocabulary.model_validate(raw)
    except ValidationError as e:
        raise VocabularyError(f"Invalid vocabulary {path}: {e}") from e
    logger.debug("Loaded vocabulary: %s from %s", vocabulary.format_name, path)
    return vocabulary


@functools.lru_cache(maxsize=None)
def _load_cached(format_name: str, vocabulary_dir: str) -> Vocabulary:
    vocabulary = load_vocabulary_file(Path(vocabulary_dir) / f"{format_name}.yaml")
    if vocabulary.format_name != format_name:
        raise VocabularyError(
            f"{format_name}.yaml declares format_name '{vocabulary.format_name}'"
        )
    return vocabulary


def load_vocabulary(
    format_name: str, vocabulary_dir: str | Path | None = None
) -> Vocabulary:
    """Load the vocabulary for one parser.

    Args:
        format_name: Parser name, which is also the YAML file stem.
        vocabulary_dir: Directory to read from. Defaults to the bundled
            vocabularies/ directory.

    Returns:
        The validated (and cached) Vocabulary.

    Raises:
        VocabularyError: If the file is missing or fails validation.
    """
    directory = Path(vocabulary_dir) if vocabulary_dir else _VOCABULARY_DIR
    return _load_cached(format_name, str(directory.resolve()))


def load_all_vocabularies(vocabulary_dir: Path | None = None) -> dict[str, Vocabulary]:
    """Load every vocabulary YAML file in a directory, keyed by format name."""
    vocabulary_dir = vocabulary_dir or _VOCABULARY_DIR
    vocabularies: dict[str, Vocabulary] = {}
    for yaml_path in sorted(vocabulary_dir.glob("*.yaml")):
        vocabulary = load_vocabulary_file(yaml_path)
        vocabularies[vocabulary.format_name] = vocabulary
    logger.info("Loaded %d vocabularies", len(vocabularies))
    return vocabularies
