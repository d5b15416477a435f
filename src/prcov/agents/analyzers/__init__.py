"""Analyzers that turn diffs and coverage data into diff coverage."""

from prcov.agents.analyzers.coverage import find_unmatched_files, reconcile
from prcov.agents.analyzers.diff import (
    ChangedLineSet,
    ChangeType,
    PullRequestFile,
    build_changed_line_set,
    extract_changed_lines,
    split_unified_diff,
)

__all__ = [
    "ChangeType",
    "ChangedLineSet",
    "PullRequestFile",
    "build_changed_line_set",
    "extract_changed_lines",
    "find_unmatched_files",
    "reconcile",
    "split_unified_diff",
]
