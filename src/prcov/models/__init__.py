"""Data models for prcov."""

from prcov.models.coverage import AggregateResult, FileResult, coverage_percentage

__all__ = [
    "AggregateResult",
    "FileResult",
    "coverage_percentage",
]
