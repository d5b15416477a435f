"""Adapters for the coverage artifact formats prcov understands."""

from prcov.adapters.registry import get_coverage_adapter, parse_coverage_file

__all__ = [
    "get_coverage_adapter",
    "parse_coverage_file",
]
