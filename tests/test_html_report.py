"""Tests for the HTML diff coverage report (agents/reporters/html_report.py)."""

from __future__ import annotations

from pathlib import Path

import pytest

from prcov.adapters.coverage.base import FileCoverage
from prcov.agents.reporters.base import ReportContext
from prcov.agents.reporters.html_report import HtmlReportGenerator, _line_class, badge_class
from prcov.models.coverage import AggregateResult, FileResult


@pytest.fixture
def project(tmp_path: Path) -> Path:
    src = tmp_path / "src"
    src.mkdir()
    (src / "a.js").write_text(
        "const a = 1;\nif (a < 2) {\n  run('<x>');\n}\n// note\n", encoding="utf-8"
    )
    return tmp_path


@pytest.fixture
def result() -> AggregateResult:
    return AggregateResult.from_file_results({"src/a.js": FileResult("src/a.js", 2, 1, 50.0)})


# ── Helpers ──────────────────────────────────────────────────────


@pytest.mark.parametrize(
    ("percent", "expected"),
    [
        (100.0, "coverage-high"),
        (80.0, "coverage-high"),
        (79.9, "coverage-medium"),
        (50.0, "coverage-medium"),
        (49.99, "coverage-low"),
        (0.0, "coverage-low"),
    ],
)
def test_badge_class(percent: float, expected: str) -> None:
    assert badge_class(percent) == expected


class TestLineClass:
    def test_unchanged_line_not_highlighted(self) -> None:
        assert _line_class(1, frozenset({2}), {1: 5}) == ""

    def test_changed_covered(self) -> None:
        assert _line_class(2, frozenset({2}), {2: 1}) == "line-changed line-covered"

    def test_changed_uncovered(self) -> None:
        assert _line_class(2, frozenset({2}), {2: 0}) == "line-changed line-uncovered"

    def test_changed_uninstrumented(self) -> None:
        assert _line_class(2, frozenset({2}), {}) == "line-changed"


# ── generate ─────────────────────────────────────────────────────


class TestGenerate:
    def test_writes_index(self, project: Path, result: AggregateResult) -> None:
        generator = HtmlReportGenerator(project / "coverage-report")
        coverage = [FileCoverage.from_hits("src/a.js", {1: 1, 2: 1, 3: 0})]

        path = generator.generate(
            result,
            {"src/a.js": frozenset({2, 3, 5})},
            coverage=coverage,
            project_root=project,
        )

        assert path == project / "coverage-report" / "index.html"
        html = path.read_text(encoding="utf-8")
        assert "<title>PR Diff Coverage Report</title>" in html
        assert "50.00%" in html
        assert 'class="line line-changed line-covered"' in html
        assert 'class="line line-changed line-uncovered"' in html
        assert 'class="line line-changed"' in html
        assert "run(&#x27;&lt;x&gt;&#x27;);" in html
        assert "<x>" not in html
        assert 'id="src_a_js"' in html

    def test_empty_result(self, tmp_path: Path) -> None:
        generator = HtmlReportGenerator(tmp_path / "out")

        path = generator.generate(AggregateResult.from_file_results({}), {})

        assert "No files with changed lines found" in path.read_text(encoding="utf-8")

    def test_missing_source_file(self, tmp_path: Path) -> None:
        generator = HtmlReportGenerator(tmp_path / "out")
        result = AggregateResult.from_file_results({"gone.js": FileResult("gone.js", 1, 0, 0.0)})

        path = generator.generate(result, {"gone.js": frozenset({1})}, project_root=tmp_path)

        assert "gone.js" in path.read_text(encoding="utf-8")

    def test_quoted_path_cannot_break_out_of_attributes(self, tmp_path: Path) -> None:
        generator = HtmlReportGenerator(tmp_path / "out")
        path_name = 'src/x"onmouseover="alert(1).js'
        result = AggregateResult.from_file_results({path_name: FileResult(path_name, 1, 0, 0.0)})

        path = generator.generate(result, {path_name: frozenset({1})}, project_root=tmp_path)

        html = path.read_text(encoding="utf-8")
        assert 'id="src_x_onmouseover__alert_1__js"' in html
        assert "toggleFile('src_x_onmouseover__alert_1__js')" in html
        assert 'onmouseover="' not in html

    def test_pr_header(self, tmp_path: Path) -> None:
        generator = HtmlReportGenerator(tmp_path / "out")
        path = generator.generate(
            AggregateResult.from_file_results({}), {}, pr_number=7, pr_title="Fix <b>bug</b>"
        )
        html = path.read_text(encoding="utf-8")
        assert "PR #7: Fix &lt;b&gt;bug&lt;/b&gt;" in html

    def test_publish_uses_context(self, project: Path, result: AggregateResult) -> None:
        generator = HtmlReportGenerator(project / "report")
        context = ReportContext(
            minimum_coverage=80.0,
            meets_threshold=False,
            changed_lines={"src/a.js": frozenset({2})},
            coverage=(FileCoverage.from_hits("src/a.js", {2: 0}),),
            project_root=project,
        )

        generator.publish(result, context)

        html = (project / "report" / "index.html").read_text(encoding="utf-8")
        assert 'class="line line-changed line-uncovered"' in html

    def test_cleanup(self, tmp_path: Path) -> None:
        generator = HtmlReportGenerator(tmp_path / "out")
        generator.generate(AggregateResult.from_file_results({}), {})

        generator.cleanup()

        assert not (tmp_path / "out").exists()
        generator.cleanup()
