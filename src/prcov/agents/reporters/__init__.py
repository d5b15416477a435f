"""Reporters for publishing diff coverage results."""

from __future__ import annotations

from prcov.agents.reporters.base import ReportContext, ReportSink
from prcov.agents.reporters.github_comment import GitHubCommentReporter
from prcov.agents.reporters.github_output import GitHubOutputWriter
from prcov.agents.reporters.html_report import HtmlReportGenerator
from prcov.agents.reporters.json_reporter import JSONReporter
from prcov.agents.reporters.terminal import reporter

__all__ = [
    "GitHubCommentReporter",
    "GitHubOutputWriter",
    "HtmlReportGenerator",
    "JSONReporter",
    "ReportContext",
    "ReportSink",
    "reporter",
]
