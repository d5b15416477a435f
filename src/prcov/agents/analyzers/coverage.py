"""Coverage reconciliation: join changed lines against per-line hit data.

Everything here is a pure function of its inputs. Threshold decisions are
made by the caller.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from prcov.models.coverage import AggregateResult, FileResult, coverage_percentage
from prcov.utils.paths import normalize_path

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Set

    from prcov.adapters.coverage.base import FileCoverage


def reconcile(
    coverage: Iterable[FileCoverage],
    changed_lines: Mapping[str, Set[int]],
) -> AggregateResult:
    """Compute coverage of the changed lines.

    Only changed lines with instrumentation data count; changed lines the
    coverage tool never instrumented (comments, blank lines) are invisible.
    A file whose changed lines are all uninstrumented is left out of
    ``file_results``.

    Args:
        coverage: Canonical per-file hit data.
        changed_lines: Added line numbers per normalized file path.

    Returns:
        Per-file and aggregate coverage of the changed lines.
    """
    merged: dict[str, dict[int, int]] = {}

    for file_cov in coverage:
        path = normalize_path(file_cov.file_path)
        changed = changed_lines.get(path)
        if not changed:
            continue

        # Entries sharing a path contribute each changed line once
        line_hits = merged.setdefault(path, {})
        for hit in file_cov.lines:
            if hit.line in changed:
                line_hits[hit.line] = max(line_hits.get(hit.line, 0), hit.hit_count)

    counts = {
        path: (len(line_hits), sum(1 for count in line_hits.values() if count > 0))
        for path, line_hits in merged.items()
    }

    file_results = {
        path: FileResult(
            file_path=path,
            total_lines=total,
            covered_lines=covered,
            coverage_percent=coverage_percentage(covered, total),
        )
        for path, (total, covered) in counts.items()
        if total > 0
    }
    return AggregateResult.from_file_results(file_results)


def find_unmatched_files(
    coverage: Iterable[FileCoverage],
    changed_lines: Mapping[str, Set[int]],
) -> list[str]:
    """Return changed files that have no entry in the coverage data.

    These contribute nothing to the result. The list exists so callers can
    surface path mismatches between the diff and the coverage report.
    """
    covered_paths = {normalize_path(file_cov.file_path) for file_cov in coverage}
    return sorted(
        path for path, lines in changed_lines.items() if lines and path not in covered_paths
    )
