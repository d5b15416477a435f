"""Tests for the JSON reporter."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from prcov.agents.reporters.base import ReportContext
from prcov.agents.reporters.json_reporter import JSONReporter
from prcov.models.coverage import AggregateResult, FileResult


@pytest.fixture
def result() -> AggregateResult:
    return AggregateResult.from_file_results(
        {
            "b.js": FileResult("b.js", 3, 1, 100 / 3),
            "a.js": FileResult("a.js", 1, 1, 100.0),
        }
    )


def test_generate_string(result: AggregateResult) -> None:
    report = json.loads(
        JSONReporter().generate_string(result, minimum_coverage=80.0, meets_threshold=False)
    )

    assert report["tool"] == "prcov"
    assert "timestamp" in report
    assert report["coverage_percent"] == 50.0
    assert report["total_lines"] == 4
    assert report["covered_lines"] == 2
    assert report["minimum_coverage"] == 80.0
    assert report["meets_threshold"] is False
    assert list(report["files"]) == ["a.js", "b.js"]
    assert report["files"]["b.js"] == {
        "coverage_percent": 33.33,
        "total_lines": 3,
        "covered_lines": 1,
    }


def test_generate_writes_file(tmp_path: Path, result: AggregateResult) -> None:
    out = tmp_path / "nested" / "diff-coverage.json"

    path = JSONReporter().generate(out, result, minimum_coverage=40.0, meets_threshold=True)

    assert path == out
    assert json.loads(out.read_text(encoding="utf-8"))["meets_threshold"] is True


def test_publish_uses_configured_path(tmp_path: Path, result: AggregateResult) -> None:
    out = tmp_path / "report.json"

    JSONReporter(out).publish(result, ReportContext(minimum_coverage=90.0, meets_threshold=False))

    assert json.loads(out.read_text(encoding="utf-8"))["minimum_coverage"] == 90.0


def test_publish_without_path_writes_nothing(tmp_path: Path, result: AggregateResult) -> None:
    JSONReporter().publish(result, ReportContext(minimum_coverage=90.0, meets_threshold=False))
    assert list(tmp_path.iterdir()) == []
