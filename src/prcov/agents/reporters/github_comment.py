"""GitHub comment reporter for posting diff coverage results to PRs.

Posts a Markdown summary (overall diff coverage, threshold, status and a
per-file table) on the pull request. The comment carries a hidden marker so
later runs update it in place instead of stacking new comments.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from prcov.utils.git import GitHubAPIError, compute_comment_marker

if TYPE_CHECKING:
    from prcov.agents.reporters.base import ReportContext
    from prcov.models.coverage import AggregateResult
    from prcov.utils.git import GitHubAPI, GitHubPRInfo

logger = logging.getLogger(__name__)

COMMENT_MARKER_PREFIX = "prcov:diff-coverage"


class GitHubCommentReporter:
    """Reporter that posts diff coverage results as a GitHub PR comment."""

    def __init__(self, api: GitHubAPI, pr_info: GitHubPRInfo) -> None:
        """Initialize the reporter.

        Args:
            api: Authenticated GitHub API client.
            pr_info: Pull request to comment on.
        """
        self._api = api
        self._pr_info = pr_info
        self._marker = compute_comment_marker(COMMENT_MARKER_PREFIX)

    @property
    def marker(self) -> str:
        return self._marker

    def publish(self, result: AggregateResult, context: ReportContext) -> None:
        """Create or update the coverage comment.

        API failures are logged and swallowed: a missing comment never
        fails the coverage check itself.
        """
        logger.info(
            "Posting diff coverage to PR #%d in %s/%s",
            self._pr_info.pr_number,
            self._pr_info.owner,
            self._pr_info.repo,
        )
        body = f"{self._marker}\n{format_comment(result, context.minimum_coverage)}"
        try:
            response = self._api.upsert_comment(self._pr_info, body, self._marker)
        except GitHubAPIError as exc:
            logger.warning("Failed to create PR comment: %s", exc)
            return
        logger.info("Successfully posted comment: %s", response.get("html_url"))


def format_comment(result: AggregateResult, minimum_coverage: float) -> str:
    """Render the Markdown body of the coverage comment (without the marker)."""
    meets = result.coverage_percent >= minimum_coverage
    lines = [
        "## 📊 Code Coverage Report for Changed Lines",
        "",
        f"**Overall Coverage:** {result.coverage_percent:.2f}% "
        f"({result.covered_lines}/{result.total_lines} lines covered)",
        f"**Threshold:** {minimum_coverage:g}%",
        f"**Status:** {'✅ Passed' if meets else '❌ Failed'}",
        "",
    ]

    if result.file_results:
        lines.append("### File Coverage Details")
        lines.append("")
        lines.append("| File | Coverage | Lines Changed | Lines Covered |")
        lines.append("|------|----------|---------------|---------------|")
        for path in sorted(result.file_results):
            file_result = result.file_results[path]
            icon = "✅" if file_result.coverage_percent >= minimum_coverage else "❌"
            lines.append(
                f"| {path} | {icon} {file_result.coverage_percent:.2f}% "
                f"| {file_result.total_lines} | {file_result.covered_lines} |"
            )

    if not meets:
        lines.append("")
        lines.append(
            f"⚠️ **The coverage of changed lines ({result.coverage_percent:.2f}%) is below "
            f"the required threshold ({minimum_coverage:g}%).**"
        )
        lines.append("Please add tests to cover the new/modified code.")

    return "\n".join(lines)
