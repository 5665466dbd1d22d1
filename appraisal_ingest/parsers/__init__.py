"""
Parsers sub-package for appraisal-ingest.

Contains format-specific parsers that convert uploaded appraisal documents
into canonical entities.

Design: Strategy Pattern
- base.py defines the BaseParser ABC and the ExtractionContext accumulator.
- pdf.py implements PdfParser (pypdf text extraction + regex batteries).
- mismo.py implements MismoXmlParser (MISMO XML tree navigation).
- jsondoc.py implements JsonParser (envelope/array classification).
- tabular.py implements CsvParser (pandas, header classification).
- workfile.py implements WorkFileParser (FormXML + generic extraction).

The ParserRegistry (registry.py) selects the parser at runtime.
"""

from appraisal_ingest.parsers.base import BaseParser, ExtractionContext
from appraisal_ingest.parsers.jsondoc import JsonParser
from appraisal_ingest.parsers.mismo import MismoXmlParser
from appraisal_ingest.parsers.pdf import PdfParser
from appraisal_ingest.parsers.tabular import CsvParser
from appraisal_ingest.parsers.workfile import WorkFileParser

__all__ = [
    "BaseParser",
    "ExtractionContext",
    "CsvParser",
    "JsonParser",
    "MismoXmlParser",
    "PdfParser",
    "WorkFileParser",
]
