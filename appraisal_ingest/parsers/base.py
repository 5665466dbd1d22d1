"""
Base parser ABC for appraisal-ingest.

All format-specific parsers implement this interface. The contract is:
1. can_parse(content) is a cheap, side-effect-free classification.
2. parse(content) never raises for low-confidence or partially malformed
   content. It returns a ParsingResult with warnings instead; only content
   that cannot be decoded as the format at all yields an ``errors`` entry.

parse() is a template method: decode() turns raw content into the parser's
document shape (DataFrame, JSON value, text, tree), then extract() walks that
document and feeds resolved field mappings into an ExtractionContext.

parse() is async so a non-blocking extraction step can be added later
without changing callers. Parsers hold no mutable state between calls.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, ClassVar

from pydantic import ValidationError

from appraisal_ingest.config import DefaultsConfig, IngestConfig
from appraisal_ingest.entities import DataEntity, ParsingResult
from appraisal_ingest.exceptions import DocumentDecodeError, MissingFieldError
from appraisal_ingest.vocabulary import Vocabulary, load_vocabulary

logger = logging.getLogger(__name__)

Content = str | bytes


@dataclass
class ExtractionContext:
    """Accumulates entities, warnings and errors during one parse() call."""

    defaults: DefaultsConfig
    entities: list[DataEntity] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    def warn(self, message: str) -> None:
        logger.debug("Extraction warning: %s", message)
        self.warnings.append(message)

    def error(self, message: str) -> None:
        logger.debug("Extraction error: %s", message)
        self.errors.append(message)

    def build(
        self,
        builder: Callable[..., DataEntity],
        fields: Mapping[str, Any],
        label: str | None = None,
        **kwargs: Any,
    ) -> DataEntity | None:
        """Run an entity builder and keep its entity.

        A missing required field or a validation failure becomes one warning
        (prefixed with ``label`` when given) and ``None`` is returned.
        """
        prefix = f"{label}: " if label else ""
        try:
            entity = builder(fields, self.defaults, **kwargs)
        except MissingFieldError as e:
            self.warn(f"{prefix}{e}")
            return None
        except ValidationError as e:
            first = e.errors()[0]
            where = ".".join(str(p) for p in first["loc"])
            self.warn(f"{prefix}Invalid {e.title} ({where}: {first['msg']})")
            return None
        self.entities.append(entity)
        return entity

    def count(self, entity_type: str) -> int:
        return sum(1 for e in self.entities if e.type == entity_type)

    def result(self) -> ParsingResult:
        return ParsingResult(
            entities=self.entities, warnings=self.warnings, errors=self.errors
        )


class BaseParser(ABC):
    """Abstract base class for appraisal document parsers.

    Subclasses set ``name`` (registry key and vocabulary file stem) and
    ``format_name`` (human-readable), and implement can_parse(), decode()
    and extract().
    """

    name: ClassVar[str]
    format_name: ClassVar[str]

    def __init__(
        self,
        config: IngestConfig | None = None,
        vocabulary: Vocabulary | None = None,
    ) -> None:
        self.config = config or IngestConfig()
        self.vocabulary = vocabulary or load_vocabulary(
            self.name, self.config.vocabulary_dir
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"

    @abstractmethod
    def can_parse(self, content: Content) -> bool:
        """Cheap structural check: does this content look like our format?"""

    @abstractmethod
    def decode(self, content: Content) -> Any:
        """Decode raw content into the parser's document representation.

        Raises:
            DocumentDecodeError: If the content is not decodable at all.
        """

    @abstractmethod
    def extract(self, document: Any, ctx: ExtractionContext) -> None:
        """Walk a decoded document and add entities/warnings to ``ctx``."""

    async def parse(self, content: Content) -> ParsingResult:
        """Parse content into canonical entities."""
        ctx = ExtractionContext(defaults=self.config.defaults)
        try:
            document = self.decode(content)
        except DocumentDecodeError as e:
            logger.warning("%s decode failed: %s", self.format_name, e)
            ctx.error(str(e))
            return ctx.result()

        self.extract(document, ctx)
        result = ctx.result()
        logger.info(
            "Parsed %s content: %d entities, %d warnings",
            self.format_name,
            result.length,
            len(result.warnings or []),
        )
        return result
