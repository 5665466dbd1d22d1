"""
Shared test fixtures and path constants for appraisal-ingest tests.

All fixture file paths are defined here as module-level constants for
easy discovery and modification. If fixture files move or new ones are
added, update this file.
"""

from pathlib import Path

import pytest

from appraisal_ingest.config import IngestConfig

# ---------------------------------------------------------------------------
# Fixture file paths -- edit here if files move or new ones are added
# ---------------------------------------------------------------------------
FIXTURES_DIR = Path(__file__).resolve().parent / "fixtures"

COMPARABLES_CSV = FIXTURES_DIR / "comparables.csv"
SUBJECT_CSV = FIXTURES_DIR / "subject_property.csv"
ENVELOPE_JSON = FIXTURES_DIR / "appraisal_envelope.json"
MISMO_XML = FIXTURES_DIR / "mismo_report.xml"
FORMXML_WORKFILE = FIXTURES_DIR / "formxml_export.aci"
ZAP_WORKFILE = FIXTURES_DIR / "subject.zap"

ALL_FIXTURES = [
    COMPARABLES_CSV,
    SUBJECT_CSV,
    ENVELOPE_JSON,
    MISMO_XML,
    FORMXML_WORKFILE,
    ZAP_WORKFILE,
]


# ---------------------------------------------------------------------------
# Shared fixtures
# ---------------------------------------------------------------------------
@pytest.fixture
def config() -> IngestConfig:
    """Stock configuration (bundled vocabularies, default registry)."""
    return IngestConfig()


# ---------------------------------------------------------------------------
# Pytest markers
# ---------------------------------------------------------------------------
def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "integration: mark test as integration test (runs against fixture files)",
    )
