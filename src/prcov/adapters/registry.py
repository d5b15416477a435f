"""Adapter registry: pick the coverage adapter for an artifact by its name.

The two supported shapes are tried in a fixed order. lcov comes first so
that a name such as ``lcov.json`` is read as a tracefile, not as Istanbul
JSON.
"""

from __future__ import annotations

import logging
from pathlib import Path

from prcov.adapters.coverage.base import (
    CoverageAdapter,
    CoverageFileNotFoundError,
    FileCoverage,
    UnsupportedFormatError,
)
from prcov.adapters.coverage.istanbul import IstanbulAdapter
from prcov.adapters.coverage.lcov import LcovAdapter

logger = logging.getLogger(__name__)

_ADAPTERS: tuple[type[CoverageAdapter], ...] = (LcovAdapter, IstanbulAdapter)


def get_coverage_adapter(coverage_file: str | Path) -> CoverageAdapter:
    """Return the adapter whose naming convention matches *coverage_file*.

    Raises:
        UnsupportedFormatError: If no adapter recognizes the name.
    """
    path = Path(coverage_file)
    for adapter_cls in _ADAPTERS:
        adapter = adapter_cls()
        if adapter.detect(path):
            return adapter
    raise UnsupportedFormatError(
        f"Unsupported coverage file format: {path.name}. "
        "Please use LCOV (.info) or Istanbul/Jest JSON (.json)."
    )


def parse_coverage_file(
    coverage_file: str | Path, *, root: str | Path | None = None
) -> list[FileCoverage]:
    """Parse a coverage artifact into canonical per-file hit data.

    Args:
        coverage_file: Path to an lcov tracefile or Istanbul JSON report.
        root: Project root stripped from reported paths (default: cwd).

    Returns:
        One FileCoverage per source file in the artifact.

    Raises:
        CoverageFileNotFoundError: If the path does not exist.
        UnsupportedFormatError: If the format cannot be detected from the name.
        MalformedArtifactError: If the content does not parse.
    """
    path = Path(coverage_file)
    if not path.exists():
        raise CoverageFileNotFoundError(f"Coverage file not found: {path}")

    adapter = get_coverage_adapter(path)
    logger.info("Parsing %s coverage from %s", adapter.name, path)
    return adapter.parse_coverage_file(path, root=root)
