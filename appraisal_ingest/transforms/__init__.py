"""
Transforms sub-package for appraisal-ingest.

Small, independently testable value normalizers shared by every parser:
  - numbers.py: Currency/comma stripping and numeric/date coercion.
  - headers.py: Snake-case normalization of tabular column headers.
  - text.py: Content decoding, tag stripping and label-run trimming.

Parsers never coerce values themselves; they hand raw strings to the
entity builders, which call into these helpers so that null and default
behaviour is identical regardless of source format.
"""
