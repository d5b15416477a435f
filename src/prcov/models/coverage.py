"""Diff coverage result models."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping

_FULL_COVERAGE = 100.0


def coverage_percentage(covered: int, total: int) -> float:
    """Return ``covered / total * 100``, or 100.0 when there is nothing to cover."""
    if total == 0:
        return _FULL_COVERAGE
    return covered / total * 100


@dataclass(frozen=True)
class FileResult:
    """Coverage of the changed, instrumented lines of one file."""

    file_path: str
    """Normalized repository-relative path."""

    total_lines: int
    """Changed lines that have instrumentation data."""

    covered_lines: int
    """Changed instrumented lines executed at least once."""

    coverage_percent: float
    """Percentage (0.0 to 100.0)."""


@dataclass(frozen=True)
class AggregateResult:
    """Coverage of the changed lines across the whole pull request."""

    total_lines: int
    """Sum of ``total_lines`` over all file results."""

    covered_lines: int
    """Sum of ``covered_lines`` over all file results."""

    coverage_percent: float
    """Percentage (0.0 to 100.0); exactly 100.0 when ``total_lines`` is 0."""

    file_results: Mapping[str, FileResult] = field(
        default_factory=lambda: MappingProxyType({})
    )
    """Per-file results keyed by normalized path; files without instrumented
    changed lines are absent."""

    @classmethod
    def from_file_results(cls, file_results: Mapping[str, FileResult]) -> AggregateResult:
        """Sum per-file results into an aggregate."""
        total = sum(result.total_lines for result in file_results.values())
        covered = sum(result.covered_lines for result in file_results.values())
        return cls(
            total_lines=total,
            covered_lines=covered,
            coverage_percent=coverage_percentage(covered, total),
            file_results=MappingProxyType(dict(file_results)),
        )
