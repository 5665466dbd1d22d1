"""
Parse appraisal documents from the command line and log what was found.

For each input file the script selects a parser (content first, extension
second), runs it, and logs the entity counts plus every warning and error.
With ``--json`` the full ParsingResult of each file is printed as JSON.

Usage:
    python scripts/run_ingest.py tests/fixtures/comparables.csv
    python scripts/run_ingest.py --json tests/fixtures/*.xml
    python scripts/run_ingest.py --config ingest.yaml uploads/*
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from collections import Counter
from pathlib import Path

import appraisal_ingest
from appraisal_ingest.exceptions import UnsupportedFormatError

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
    datefmt="%H:%M:%S",
)
log = logging.getLogger("run_ingest")


def _usage() -> None:
    print("Usage: python scripts/run_ingest.py [--json] [--config PATH] FILE [FILE ...]")


async def ingest_file(
    path: Path, registry: appraisal_ingest.ParserRegistry, dump_json: bool
) -> bool:
    """Parse one file and log a summary. Returns False on failure."""
    try:
        result = await appraisal_ingest.parse_path(path, registry)
    except (FileNotFoundError, UnsupportedFormatError) as e:
        log.error("%s: %s", path, e)
        return False

    counts = Counter(entity.type for entity in result.entities)
    summary = ", ".join(f"{n} {t}" for t, n in sorted(counts.items())) or "no entities"
    log.info("%s: %s", path.name, summary)
    for warning in result.warnings or []:
        log.warning("  %s", warning)
    for error in result.errors or []:
        log.error("  %s", error)

    if dump_json:
        print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    return not result.errors


def main() -> None:
    args = sys.argv[1:]
    dump_json = "--json" in args
    args = [a for a in args if a != "--json"]

    config = None
    if "--config" in args:
        idx = args.index("--config")
        if idx + 1 >= len(args):
            _usage()
            sys.exit(2)
        config = appraisal_ingest.load_config(args[idx + 1])
        del args[idx : idx + 2]

    if not args:
        _usage()
        sys.exit(2)

    registry = appraisal_ingest.ParserRegistry.from_config(config)
    ok = 0
    for arg in args:
        if asyncio.run(ingest_file(Path(arg), registry, dump_json)):
            ok += 1

    log.info("Done: %d/%d file(s) parsed without errors", ok, len(args))
    if ok != len(args):
        sys.exit(1)


if __name__ == "__main__":
    main()
