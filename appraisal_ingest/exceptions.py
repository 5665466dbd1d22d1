"""
Custom exception hierarchy for appraisal-ingest.

Most extraction problems never surface as exceptions: parsers accumulate
warnings and errors on the ``ParsingResult`` and keep scanning. The classes
below cover the few conditions that do cross an API boundary:

- UnsupportedFormatError: no parser claims the upload (convenience API only;
  the registry itself reports absence with ``None``).
- DocumentDecodeError: content cannot be decoded as the claimed format at
  all. Parsers convert it into a single ``errors`` entry.
- MissingFieldError: a record lacks a required field. Builders raise it and
  the extraction context turns it into a per-record warning.
- ConfigValidationError / VocabularyError: bad YAML configuration or
  vocabulary tables.
"""


class AppraisalIngestError(Exception):
    """Base exception for all appraisal-ingest errors."""


class UnsupportedFormatError(AppraisalIngestError):
    """Raised when no registered parser accepts the file.

    Neither content sniffing nor the extension table produced a match.
    """


class DocumentDecodeError(AppraisalIngestError):
    """Raised when content cannot be decoded as the parser's format.

    For example syntactically invalid JSON or unparseable XML.
    """


class MissingFieldError(AppraisalIngestError):
    """Raised by entity builders when a required field did not resolve."""

    def __init__(self, field: str, entity_type: str) -> None:
        self.field = field
        self.entity_type = entity_type
        super().__init__(f"Missing {field}, skipping {entity_type}")


class ConfigValidationError(AppraisalIngestError):
    """Raised when an ingest configuration file fails validation.

    This can happen if:
    - The YAML file is empty.
    - The parser order or extension map names an unknown parser.
    """


class VocabularyError(AppraisalIngestError):
    """Raised when a vocabulary YAML file is missing or malformed."""
