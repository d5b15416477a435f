"""Tests for the check pipeline (agents/pipelines/check.py)."""

from __future__ import annotations

from pathlib import Path
from unittest import mock

import pytest

from prcov.adapters.coverage.base import CoverageFileNotFoundError, MalformedArtifactError
from prcov.agents.analyzers.diff import ChangeType, PullRequestFile
from prcov.agents.pipelines import CheckPipeline, CheckPipelineConfig, meets_threshold
from prcov.models.coverage import AggregateResult, FileResult
from prcov.utils.git import GitOperationError

_LCOV = """\
SF:{root}/src/a.js
DA:10,1
DA:11,0
DA:20,4
end_of_record
SF:src/b.js
DA:1,0
end_of_record
"""


class _StaticSource:
    """In-memory change source."""

    def __init__(self, files: list[PullRequestFile]) -> None:
        self._files = files

    def list_changed_files(self) -> list[PullRequestFile]:
        return self._files


@pytest.fixture
def project(tmp_path: Path) -> Path:
    (tmp_path / "lcov.info").write_text(_LCOV.format(root=tmp_path), encoding="utf-8")
    return tmp_path


def _config(project: Path, **overrides: object) -> CheckPipelineConfig:
    files = [
        PullRequestFile("src/a.js", ChangeType.MODIFIED, "@@ -9,2 +9,5 @@\n x\n+a\n+b\n+c\n y"),
        PullRequestFile("src/old.js", ChangeType.REMOVED, "@@ -1 +0,0 @@\n-z"),
        PullRequestFile("docs/readme.md", ChangeType.ADDED, "@@ -0,0 +1 @@\n+hi"),
    ]
    values: dict[str, object] = {
        "project_root": project,
        "coverage_file": project / "lcov.info",
        "change_source": _StaticSource(files),
        "minimum_coverage": 80.0,
        "ci_mode": True,
    }
    values.update(overrides)
    return CheckPipelineConfig(**values)  # type: ignore[arg-type]


# ── meets_threshold ──────────────────────────────────────────────


@pytest.mark.parametrize(
    ("percent", "minimum", "expected"),
    [(80.0, 80.0, True), (79.99, 80.0, False), (100.0, 100.0, True), (0.0, 0.0, True)],
)
def test_meets_threshold(percent: float, minimum: float, expected: bool) -> None:
    result = AggregateResult(total_lines=1, covered_lines=0, coverage_percent=percent)
    assert meets_threshold(result, minimum) is expected


# ── run ──────────────────────────────────────────────────────────


class TestCheckPipeline:
    def test_end_to_end(self, project: Path) -> None:
        outcome = CheckPipeline(_config(project)).run()

        assert outcome.changed_lines == {
            "src/a.js": frozenset({10, 11, 12}),
            "docs/readme.md": frozenset({1}),
        }
        assert dict(outcome.result.file_results) == {
            "src/a.js": FileResult("src/a.js", 2, 1, 50.0)
        }
        assert outcome.meets_threshold is False
        assert outcome.failed is True
        assert outcome.unmatched_files == ["docs/readme.md"]

    def test_below_threshold_without_failing(self, project: Path) -> None:
        outcome = CheckPipeline(_config(project, fail_below_threshold=False)).run()
        assert outcome.meets_threshold is False
        assert outcome.failed is False

    def test_passes_at_lower_threshold(self, project: Path) -> None:
        outcome = CheckPipeline(_config(project, minimum_coverage=50.0)).run()
        assert outcome.meets_threshold is True
        assert outcome.failed is False

    def test_no_instrumented_changes_passes(self, project: Path) -> None:
        readme = PullRequestFile("README.md", ChangeType.MODIFIED, "@@ -1 +1 @@\n+x")
        source = _StaticSource([readme])
        outcome = CheckPipeline(_config(project, change_source=source)).run()

        assert outcome.result.coverage_percent == 100.0
        assert outcome.meets_threshold is True

    def test_publishes_to_every_sink(self, project: Path) -> None:
        sinks = [mock.Mock(), mock.Mock()]

        outcome = CheckPipeline(_config(project, sinks=sinks, pr_number=3, pr_title="T")).run()

        for sink in sinks:
            sink.publish.assert_called_once()
            result, context = sink.publish.call_args[0]
            assert result is outcome.result
            assert context.minimum_coverage == 80.0
            assert context.meets_threshold is False
            assert context.changed_lines == outcome.changed_lines
            assert context.project_root == project
            assert context.pr_number == 3
            assert context.pr_title == "T"
            assert {fc.file_path for fc in context.coverage} == {"src/a.js", "src/b.js"}

    def test_unmatched_files_logged(self, project: Path, caplog: pytest.LogCaptureFixture) -> None:
        CheckPipeline(_config(project)).run()
        assert "docs/readme.md" in caplog.text

    def test_missing_coverage_file_propagates(self, project: Path) -> None:
        sink = mock.Mock()
        config = _config(project, coverage_file=project / "nope.info", sinks=[sink])

        with pytest.raises(CoverageFileNotFoundError):
            CheckPipeline(config).run()
        sink.publish.assert_not_called()

    def test_malformed_coverage_propagates(self, project: Path) -> None:
        bad = project / "coverage-final.json"
        bad.write_text("{", encoding="utf-8")

        with pytest.raises(MalformedArtifactError):
            CheckPipeline(_config(project, coverage_file=bad)).run()

    def test_change_source_error_propagates(self, project: Path) -> None:
        source = mock.Mock()
        source.list_changed_files.side_effect = GitOperationError("git diff failed")

        with pytest.raises(GitOperationError):
            CheckPipeline(_config(project, change_source=source)).run()

    @mock.patch("prcov.agents.pipelines.check.reporter")
    def test_progress_output_outside_ci(self, mock_reporter: mock.Mock, project: Path) -> None:
        CheckPipeline(_config(project, ci_mode=False)).run()

        mock_reporter.print_pipeline_header.assert_called_once_with("prcov check")
        assert mock_reporter.print_step_header.call_count == 4
        mock_reporter.print_step_skip.assert_called_once_with("Publishing results")

    @mock.patch("prcov.agents.pipelines.check.reporter")
    def test_quiet_in_ci(self, mock_reporter: mock.Mock, project: Path) -> None:
        CheckPipeline(_config(project)).run()
        mock_reporter.print_step_header.assert_not_called()
