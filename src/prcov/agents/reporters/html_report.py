"""HTML report generator for diff coverage.

Generates a self-contained ``index.html`` with summary cards and one
expandable section per file, showing the source with changed lines
highlighted as covered or uncovered.
"""

from __future__ import annotations

import html
import logging
import re
import shutil
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

from prcov.agents.reporters.base import coverage_level
from prcov.utils.paths import normalize_path

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from prcov.adapters.coverage.base import FileCoverage
    from prcov.agents.reporters.base import ReportContext
    from prcov.models.coverage import AggregateResult, FileResult

logger = logging.getLogger(__name__)

DEFAULT_REPORT_DIR = "coverage-report"

_UNREADABLE_SOURCE = "// Could not read file content"
_LEVEL_ICONS = {"high": "✅", "medium": "⚠️", "low": "❌"}
_FILE_ID_RE = re.compile(r"[^A-Za-z0-9_-]")

_STYLE = """
* { margin: 0; padding: 0; box-sizing: border-box; }
body {
    font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Helvetica, Arial, sans-serif;
    line-height: 1.5; color: #24292f; background-color: #f6f8fa; padding: 20px;
}
.container {
    max-width: 1200px; margin: 0 auto; background: white; border-radius: 8px;
    box-shadow: 0 2px 8px rgba(0, 0, 0, 0.1); overflow: hidden;
}
.header {
    background: linear-gradient(135deg, #667eea 0%, #764ba2 100%); color: white; padding: 30px;
}
.header h1 { font-size: 2em; margin-bottom: 10px; }
.header .subtitle { opacity: 0.9; }
.summary {
    display: grid; grid-template-columns: repeat(auto-fit, minmax(220px, 1fr));
    gap: 20px; padding: 30px; border-bottom: 1px solid #e1e4e8;
}
.summary-card {
    border: 1px solid #e1e4e8; border-radius: 8px; padding: 25px; text-align: center;
}
.summary-card h3 { font-size: 1.8em; color: #0366d6; }
.summary-card p { color: #586069; }
.coverage-badge {
    display: inline-block; padding: 8px 16px; border-radius: 20px; font-weight: bold;
}
.coverage-high { background-color: #28a745; color: white; }
.coverage-medium { background-color: #ffc107; color: #212529; }
.coverage-low { background-color: #dc3545; color: white; }
.file-section { border-bottom: 1px solid #e1e4e8; }
.file-header {
    background: #f6f8fa; padding: 20px 30px; cursor: pointer;
    display: flex; justify-content: space-between; align-items: center;
}
.file-header:hover { background: #e1e4e8; }
.file-path { font-family: monospace; font-weight: 600; }
.file-stats span { margin-left: 15px; color: #586069; }
.file-content { display: none; }
.file-content.expanded { display: block; }
.code-container { font-family: monospace; font-size: 13px; overflow-x: auto; }
.line { display: flex; }
.line-number {
    width: 60px; padding: 0 10px; text-align: right; color: #959da5; user-select: none;
}
.line-content { white-space: pre; padding: 0 10px; }
.line-changed { background: #fff8c5; }
.line-covered { background: #e6ffed; }
.line-uncovered { background: #ffebe9; }
.empty { text-align: center; padding: 60px 20px; color: #586069; }
.footer { padding: 20px 30px; color: #586069; font-size: 0.9em; text-align: center; }
"""

_SCRIPT = """
function toggleFile(fileId) {
    document.querySelector('.file-content[data-file="' + fileId + '"]')
        .classList.toggle('expanded');
}
"""


def badge_class(percent: float) -> str:
    """Return the CSS badge class for a coverage percentage."""
    return f"coverage-{coverage_level(percent)}"


class HtmlReportGenerator:
    """Writes the diff coverage HTML report to a directory."""

    def __init__(self, report_dir: str | Path = DEFAULT_REPORT_DIR) -> None:
        self.report_dir = Path(report_dir)

    def publish(self, result: AggregateResult, context: ReportContext) -> None:
        self.generate(
            result,
            context.changed_lines,
            coverage=context.coverage,
            project_root=context.project_root,
            pr_title=context.pr_title,
            pr_number=context.pr_number,
        )

    def generate(
        self,
        result: AggregateResult,
        changed_lines: Mapping[str, frozenset[int]],
        *,
        coverage: Iterable[FileCoverage] = (),
        project_root: Path | None = None,
        pr_title: str | None = None,
        pr_number: int | None = None,
    ) -> Path:
        """Generate ``index.html`` inside the report directory.

        Args:
            result: Aggregate diff coverage result.
            changed_lines: Changed-line set the result was computed from.
            coverage: Per-line hit data used to colour changed lines.
            project_root: Directory the file paths are relative to.
            pr_title: Pull request title for the header, if known.
            pr_number: Pull request number for the header, if known.

        Returns:
            Path to the generated HTML file.
        """
        root = project_root or Path.cwd()
        hits_by_file = {normalize_path(fc.file_path): fc.hits_by_line for fc in coverage}

        sections = "".join(
            _render_file_section(
                path,
                result.file_results[path],
                _read_source_lines(root / path),
                changed_lines.get(path, frozenset()),
                hits_by_file.get(path, {}),
            )
            for path in sorted(result.file_results)
        )

        html_content = _render_page(result, sections, pr_title=pr_title, pr_number=pr_number)

        report_path = self.report_dir / "index.html"
        report_path.parent.mkdir(parents=True, exist_ok=True)
        report_path.write_text(html_content, encoding="utf-8")

        logger.info("HTML coverage report written to %s", report_path)
        return report_path

    def cleanup(self) -> None:
        """Remove the report directory and everything in it."""
        if self.report_dir.exists():
            shutil.rmtree(self.report_dir)


# ── Rendering ────────────────────────────────────────────────────


def _read_source_lines(path: Path) -> list[str]:
    if not path.is_file():
        return [""]
    try:
        return path.read_text(encoding="utf-8").split("\n")
    except (OSError, UnicodeDecodeError) as exc:
        logger.debug("Could not read %s: %s", path, exc)
        return [_UNREADABLE_SOURCE]


def _file_id(path: str) -> str:
    return _FILE_ID_RE.sub("_", path)


def _line_class(line_number: int, changed: frozenset[int], hits: Mapping[int, int]) -> str:
    """CSS classes for one source line; only changed lines are highlighted."""
    if line_number not in changed:
        return ""
    if line_number not in hits:
        return "line-changed"
    if hits[line_number] > 0:
        return "line-changed line-covered"
    return "line-changed line-uncovered"


def _render_file_section(
    path: str,
    file_result: FileResult,
    source_lines: list[str],
    changed: frozenset[int],
    hits: Mapping[int, int],
) -> str:
    file_id = _file_id(path)
    percent = file_result.coverage_percent
    icon = _LEVEL_ICONS[coverage_level(percent)]

    code_lines = "".join(
        f'<div class="line {_line_class(number, changed, hits)}">'
        f'<div class="line-number">{number}</div>'
        f'<div class="line-content">{html.escape(text)}</div></div>\n'
        for number, text in enumerate(source_lines, start=1)
    )

    return f"""
<div class="file-section" id="{file_id}">
    <div class="file-header" data-file="{file_id}" onclick="toggleFile('{file_id}')">
        <div class="file-title">
            <span class="status-icon">{icon}</span>
            <span class="file-path">{html.escape(path)}</span>
        </div>
        <div class="file-stats">
            <span class="coverage-badge {badge_class(percent)}">{percent:.0f}%</span>
            <span>Changed: {file_result.total_lines}</span>
            <span>Covered: {file_result.covered_lines}</span>
        </div>
    </div>
    <div class="file-content" data-file="{file_id}">
        <div class="code-container">
{code_lines}        </div>
    </div>
</div>"""


def _render_page(
    result: AggregateResult,
    sections: str,
    *,
    pr_title: str | None,
    pr_number: int | None,
) -> str:
    timestamp = datetime.now(UTC).isoformat()
    percent = result.coverage_percent

    if pr_number is not None:
        subtitle = f"PR #{pr_number}: {html.escape(pr_title or '')}"
    else:
        subtitle = "Coverage of changed lines"

    if result.file_results:
        body = sections
    else:
        body = """
<div class="empty">
    <h3>🎉 No files with changed lines found</h3>
    <p>Either no files were modified, or the modifications don't include executable code.</p>
</div>"""

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>PR Diff Coverage Report</title>
    <style>{_STYLE}</style>
</head>
<body>
<div class="container">
    <div class="header">
        <h1>📊 PR Diff Coverage Report</h1>
        <div class="subtitle">{subtitle}</div>
    </div>
    <div class="summary">
        <div class="summary-card">
            <div class="coverage-badge {badge_class(percent)}">{percent:.2f}%</div>
            <p>Diff Coverage</p>
        </div>
        <div class="summary-card">
            <h3>{result.covered_lines}</h3>
            <p>Covered Lines</p>
        </div>
        <div class="summary-card">
            <h3>{result.total_lines}</h3>
            <p>Total Changed Lines</p>
        </div>
        <div class="summary-card">
            <h3>{len(result.file_results)}</h3>
            <p>Files Modified</p>
        </div>
    </div>
    {body}
    <div class="footer">
        <p>Generated by prcov • {timestamp}</p>
    </div>
</div>
<script>{_SCRIPT}</script>
</body>
</html>"""
