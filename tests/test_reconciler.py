"""Tests for coverage reconciliation (agents/analyzers/coverage.py)."""

from __future__ import annotations

import pytest

from prcov.adapters.coverage.base import FileCoverage
from prcov.agents.analyzers.coverage import find_unmatched_files, reconcile
from prcov.models.coverage import AggregateResult, FileResult, coverage_percentage


def _cov(path: str, hits: dict[int, int]) -> FileCoverage:
    return FileCoverage.from_hits(path, hits)


# ── reconcile ────────────────────────────────────────────────────


class TestReconcile:
    def test_uninstrumented_changed_lines_are_invisible(self) -> None:
        coverage = [_cov("a.js", {10: 1, 11: 0})]
        result = reconcile(coverage, {"a.js": frozenset({10, 11, 12})})

        assert result.file_results["a.js"] == FileResult(
            file_path="a.js", total_lines=2, covered_lines=1, coverage_percent=50.0
        )
        assert (result.total_lines, result.covered_lines) == (2, 1)
        assert result.coverage_percent == 50.0

    def test_unchanged_instrumented_lines_ignored(self) -> None:
        coverage = [_cov("a.js", {1: 0, 2: 0, 3: 5})]
        result = reconcile(coverage, {"a.js": frozenset({3})})
        assert result.file_results["a.js"].total_lines == 1
        assert result.coverage_percent == 100.0

    def test_file_without_instrumented_changes_omitted(self) -> None:
        coverage = [_cov("a.js", {1: 1}), _cov("b.js", {5: 1})]
        result = reconcile(coverage, {"a.js": frozenset({1}), "b.js": frozenset({6, 7})})
        assert "b.js" not in result.file_results
        assert set(result.file_results) == {"a.js"}

    def test_file_with_empty_changed_set_skipped(self) -> None:
        result = reconcile([_cov("a.js", {1: 0})], {"a.js": frozenset()})
        assert result.file_results == {}

    def test_file_absent_from_diff_skipped(self) -> None:
        result = reconcile([_cov("untouched.js", {1: 0})], {"a.js": frozenset({1})})
        assert result.file_results == {}

    def test_no_instrumented_changes_is_full_coverage(self) -> None:
        result = reconcile([], {"README.md": frozenset({1, 2})})
        assert result.total_lines == 0
        assert result.covered_lines == 0
        assert result.coverage_percent == 100.0

    def test_empty_inputs(self) -> None:
        result = reconcile([], {})
        assert result.coverage_percent == 100.0
        assert result.file_results == {}

    def test_coverage_path_normalized_before_lookup(self) -> None:
        result = reconcile([_cov("./src/a.js", {3: 1})], {"src/a.js": frozenset({3})})
        assert set(result.file_results) == {"src/a.js"}

    def test_duplicate_coverage_entries_merged(self) -> None:
        coverage = [_cov("src/a.js", {1: 1}), _cov("./src/a.js", {2: 0})]
        result = reconcile(coverage, {"src/a.js": frozenset({1, 2})})

        assert result.file_results["src/a.js"].total_lines == 2
        assert result.file_results["src/a.js"].covered_lines == 1
        assert result.total_lines == 2

    def test_overlapping_entries_count_each_line_once(self) -> None:
        coverage = [_cov("src/a.js", {1: 0, 2: 1}), _cov("./src/a.js", {1: 3})]
        result = reconcile(coverage, {"src/a.js": frozenset({1, 2})})

        file_result = result.file_results["src/a.js"]
        assert file_result.total_lines == 2
        assert file_result.covered_lines == 2
        assert file_result.coverage_percent == 100.0
        assert result.total_lines == 2

    def test_aggregate_sums_files(self) -> None:
        coverage = [_cov("a.js", {1: 1, 2: 0}), _cov("b.js", {1: 3, 2: 3, 3: 0})]
        changed = {"a.js": frozenset({1, 2}), "b.js": frozenset({1, 2, 3})}

        result = reconcile(coverage, changed)

        assert result.total_lines == 5
        assert result.covered_lines == 3
        assert result.coverage_percent == pytest.approx(60.0)

    def test_covered_never_exceeds_total(self) -> None:
        coverage = [_cov("a.js", {n: n % 3 for n in range(1, 40)})]
        result = reconcile(coverage, {"a.js": frozenset(range(1, 50, 2))})
        for file_result in result.file_results.values():
            assert 0 <= file_result.covered_lines <= file_result.total_lines
        assert result.covered_lines <= result.total_lines

    def test_is_deterministic(self) -> None:
        coverage = [_cov("a.js", {1: 1, 2: 0}), _cov("b.js", {4: 2})]
        changed = {"a.js": frozenset({1, 2}), "b.js": frozenset({4})}
        assert reconcile(coverage, changed) == reconcile(coverage, changed)

    def test_result_is_read_only(self) -> None:
        result = reconcile([_cov("a.js", {1: 1})], {"a.js": frozenset({1})})
        with pytest.raises(TypeError):
            result.file_results["b.js"] = result.file_results["a.js"]  # type: ignore[index]


# ── find_unmatched_files ─────────────────────────────────────────


class TestFindUnmatchedFiles:
    def test_reports_changed_files_missing_from_coverage(self) -> None:
        coverage = [_cov("src/a.js", {1: 1})]
        changed = {
            "src/a.js": frozenset({1}),
            "lib/b.js": frozenset({2}),
            "docs/c.md": frozenset({3}),
        }
        assert find_unmatched_files(coverage, changed) == ["docs/c.md", "lib/b.js"]

    def test_ignores_files_with_no_changed_lines(self) -> None:
        assert find_unmatched_files([], {"logo.png": frozenset()}) == []

    def test_matches_normalized_paths(self) -> None:
        assert find_unmatched_files([_cov("./a.js", {})], {"a.js": frozenset({1})}) == []


# ── Models ───────────────────────────────────────────────────────


class TestModels:
    def test_coverage_percentage(self) -> None:
        assert coverage_percentage(1, 4) == 25.0
        assert coverage_percentage(0, 0) == 100.0

    def test_aggregate_from_no_files(self) -> None:
        result = AggregateResult.from_file_results({})
        assert (result.total_lines, result.covered_lines, result.coverage_percent) == (0, 0, 100.0)
