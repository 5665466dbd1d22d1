"""
appraisal-ingest: parse uploaded appraisal documents into canonical entities.

Public API surface:

- ``get_parser_for_file(filename, content)`` -- pick the parser for a
  document (content sniffing first, file extension second).
- ``parse_content(filename, content)`` -- select a parser and run it.
  Raises UnsupportedFormatError when nothing recognizes the document.
- ``parse_path(path)`` -- read a file from disk and parse it.

All three accept an optional ``registry`` built with
``ParserRegistry.from_config(load_config("ingest.yaml"))`` to change parser
order, extension fallbacks or default values.

Example::

    import asyncio
    import appraisal_ingest

    result = asyncio.run(appraisal_ingest.parse_path("uploads/comps.csv"))
    for entity in result.of_type("comparable"):
        print(entity.address, entity.sale_price)
"""

from __future__ import annotations

import logging
from pathlib import Path

from appraisal_ingest.config import IngestConfig, load_config, save_config
from appraisal_ingest.entities import ParsingResult
from appraisal_ingest.exceptions import UnsupportedFormatError
from appraisal_ingest.parsers.base import BaseParser, Content
from appraisal_ingest.registry import ParserRegistry, default_registry

__all__ = [
    "get_parser_for_file",
    "parse_content",
    "parse_path",
    "ParserRegistry",
    "ParsingResult",
    "IngestConfig",
    "load_config",
    "save_config",
]

logger = logging.getLogger(__name__)

_PDF_SIGNATURE = b"%PDF-"


def get_parser_for_file(
    filename: str,
    content: Content,
    registry: ParserRegistry | None = None,
) -> BaseParser | None:
    """Return the parser for a document, or ``None`` when none applies."""
    registry = registry or default_registry()
    return registry.get_parser_for_file(filename, content)


async def parse_content(
    filename: str,
    content: Content,
    registry: ParserRegistry | None = None,
) -> ParsingResult:
    """Select a parser for ``(filename, content)`` and parse the content.

    Raises:
        UnsupportedFormatError: If no parser recognizes the document.
    """
    parser = get_parser_for_file(filename, content, registry)
    if parser is None:
        raise UnsupportedFormatError(f"Unsupported file format: {filename}")
    return await parser.parse(content)


async def parse_path(
    path: str | Path,
    registry: ParserRegistry | None = None,
) -> ParsingResult:
    """Read ``path`` and parse it.

    PDFs (by extension or signature) are passed on as bytes; everything
    else is decoded as UTF-8 text with an optional byte-order mark.

    Raises:
        FileNotFoundError: If the file does not exist.
        UnsupportedFormatError: If no parser recognizes the document.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {path}")
    data = path.read_bytes()
    content: Content
    if path.suffix.lower() == ".pdf" or data.startswith(_PDF_SIGNATURE):
        content = data
    else:
        content = data.decode("utf-8-sig", errors="replace")
    logger.info("parse_path() -- %s (%d bytes)", path, len(data))
    return await parse_content(path.name, content, registry)
