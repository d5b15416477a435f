"""Report sink interface shared by all reporters."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Mapping

    from prcov.adapters.coverage.base import FileCoverage
    from prcov.models.coverage import AggregateResult

# Thresholds for the high/medium/low colouring of a percentage
COVERAGE_HIGH = 80.0
COVERAGE_MEDIUM = 50.0


def coverage_level(percent: float) -> str:
    """Classify a coverage percentage as 'high', 'medium' or 'low'."""
    if percent >= COVERAGE_HIGH:
        return "high"
    if percent >= COVERAGE_MEDIUM:
        return "medium"
    return "low"


@dataclass(frozen=True)
class ReportContext:
    """Everything a reporter needs besides the aggregate result itself."""

    minimum_coverage: float
    """Threshold the result was compared against."""

    meets_threshold: bool
    """Whether the aggregate coverage reached the threshold."""

    changed_lines: Mapping[str, frozenset[int]] = field(default_factory=dict)
    """Changed-line set the result was computed from."""

    coverage: tuple[FileCoverage, ...] = ()
    """Per-line hit data, for reporters that show line-level detail."""

    project_root: Path = field(default_factory=Path.cwd)
    """Directory changed files are read from."""

    pr_number: int | None = None
    """Pull request number, when known."""

    pr_title: str | None = None
    """Pull request title, when known."""


class ReportSink(Protocol):
    """Anything that accepts a finished diff coverage result."""

    def publish(self, result: AggregateResult, context: ReportContext) -> None:
        """Publish *result* (print it, post it, write it to disk...)."""
        ...
