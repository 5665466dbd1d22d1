"""
Parser registry for appraisal-ingest.

Selects the parser for an uploaded document. Content sniffing always wins
over the file extension: parsers are asked ``can_parse(content)`` in
priority order and the first one that accepts the content is used. Only
when no parser recognizes the content is the extension table consulted,
so ``export.xyz`` holding MISMO XML still reaches the MISMO parser and an
empty ``data.csv`` still reaches the CSV parser.

Design: Strategy Pattern
- Each parser is a BaseParser strategy registered under its ``name``.
- The priority order and the extension table come from RegistryConfig, so
  they can be changed in YAML without code changes.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import PurePath

from appraisal_ingest.config import IngestConfig
from appraisal_ingest.parsers import (
    BaseParser,
    CsvParser,
    JsonParser,
    MismoXmlParser,
    PdfParser,
    WorkFileParser,
)
from appraisal_ingest.parsers.base import Content

logger = logging.getLogger(__name__)

# Maps parser name (as used in RegistryConfig) to parser class
PARSER_CLASSES: dict[str, type[BaseParser]] = {
    cls.name: cls
    for cls in (PdfParser, MismoXmlParser, JsonParser, CsvParser, WorkFileParser)
}


class ParserRegistry:
    """Ordered, read-only collection of parsers."""

    def __init__(
        self,
        parsers: Iterable[BaseParser],
        extension_map: dict[str, str] | None = None,
    ) -> None:
        self._parsers: tuple[BaseParser, ...] = tuple(parsers)
        self._by_name = {p.name: p for p in self._parsers}
        self._extension_map = dict(extension_map or {})

    @classmethod
    def from_config(cls, config: IngestConfig | None = None) -> ParserRegistry:
        """Instantiate the configured parsers in their configured order."""
        config = config or IngestConfig()
        parsers = [PARSER_CLASSES[name](config) for name in config.registry.parser_order]
        logger.debug(
            "Registry built with parsers: %s",
            ", ".join(p.name for p in parsers),
        )
        return cls(parsers, config.registry.extension_map)

    @property
    def parsers(self) -> tuple[BaseParser, ...]:
        return self._parsers

    def get(self, name: str) -> BaseParser | None:
        return self._by_name.get(name)

    def get_parser_for_file(self, filename: str, content: Content) -> BaseParser | None:
        """Pick a parser by content sniffing, then by file extension.

        Returns:
            The selected parser, or ``None`` when neither the content nor the
            extension is recognized.
        """
        for parser in self._parsers:
            if parser.can_parse(content):
                logger.info("Selected %s for %s (content match)", parser.name, filename)
                return parser

        extension = PurePath(filename).suffix.lower()
        name = self._extension_map.get(extension)
        if name is not None and name in self._by_name:
            logger.info("Selected %s for %s (extension %s)", name, filename, extension)
            return self._by_name[name]

        logger.info("No parser found for %s", filename)
        return None


_DEFAULT_REGISTRY: ParserRegistry | None = None


def default_registry() -> ParserRegistry:
    """Lazily built registry with the stock configuration."""
    global _DEFAULT_REGISTRY
    if _DEFAULT_REGISTRY is None:
        _DEFAULT_REGISTRY = ParserRegistry.from_config()
    return _DEFAULT_REGISTRY
