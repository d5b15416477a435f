"""Coverage adapters that normalize coverage artifacts into per-line hits."""

from prcov.adapters.coverage.base import (
    CoverageAdapter,
    CoverageError,
    CoverageFileNotFoundError,
    FileCoverage,
    LineHit,
    MalformedArtifactError,
    UnsupportedFormatError,
)
from prcov.adapters.coverage.istanbul import IstanbulAdapter
from prcov.adapters.coverage.lcov import LcovAdapter

__all__ = [
    "CoverageAdapter",
    "CoverageError",
    "CoverageFileNotFoundError",
    "FileCoverage",
    "IstanbulAdapter",
    "LcovAdapter",
    "LineHit",
    "MalformedArtifactError",
    "UnsupportedFormatError",
]
