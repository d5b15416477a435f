"""Check pipeline: diff coverage of a pull request against a threshold."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from prcov.adapters import parse_coverage_file
from prcov.agents.analyzers.coverage import find_unmatched_files, reconcile
from prcov.agents.analyzers.diff import build_changed_line_set
from prcov.agents.reporters.base import ReportContext
from prcov.agents.reporters.terminal import reporter

if TYPE_CHECKING:
    from prcov.adapters.coverage.base import FileCoverage
    from prcov.agents.analyzers.diff import ChangedLineSet
    from prcov.agents.reporters.base import ReportSink
    from prcov.agents.sources import PullRequestChangeSource
    from prcov.models.coverage import AggregateResult

logger = logging.getLogger(__name__)

_TOTAL_STEPS = 5


def meets_threshold(result: AggregateResult, minimum_coverage: float) -> bool:
    """Return True when the aggregate diff coverage reaches *minimum_coverage*."""
    return result.coverage_percent >= minimum_coverage


class _StepTracker:
    """Track pipeline step progress for terminal display."""

    def __init__(self, total: int, *, ci_mode: bool) -> None:
        self._total = total
        self._ci_mode = ci_mode
        self._current = 0
        self._started = 0.0

    def step(self, description: str) -> None:
        """Advance to the next step and print its header."""
        self._current += 1
        self._started = time.monotonic()
        if not self._ci_mode:
            reporter.print_step_header(self._current, self._total, description)

    def done(self, description: str) -> None:
        """Print completion of the current step with its elapsed time."""
        if not self._ci_mode:
            reporter.print_step_done(description, time.monotonic() - self._started)

    def skip(self, description: str) -> None:
        """Skip a step and print it as skipped."""
        self._current += 1
        if not self._ci_mode:
            reporter.print_step_skip(description)


@dataclass
class CheckPipelineConfig:
    """Configuration for check pipeline execution."""

    project_root: Path
    """Project root directory; coverage paths are made relative to it."""

    coverage_file: Path
    """Coverage artifact (lcov ``.info`` or Istanbul ``.json``)."""

    change_source: PullRequestChangeSource
    """Where the changed files and their patches come from."""

    minimum_coverage: float = 80.0
    """Threshold for the aggregate diff coverage percentage."""

    fail_below_threshold: bool = True
    """Whether a result below the threshold marks the run as failed."""

    sinks: list[ReportSink] = field(default_factory=list)
    """Reporters the result is published to, in order."""

    ci_mode: bool = False
    """Whether running in CI mode (no step progress output)."""

    pr_number: int | None = None
    """Pull request number, for reporters that show it."""

    pr_title: str | None = None
    """Pull request title, for reporters that show it."""


@dataclass
class CheckPipelineResult:
    """Result of check pipeline execution."""

    result: AggregateResult
    """Aggregate diff coverage."""

    changed_lines: ChangedLineSet
    """Changed-line set the result was computed from."""

    coverage: list[FileCoverage]
    """Normalized coverage the result was computed from."""

    meets_threshold: bool
    """Whether the aggregate reached the minimum coverage."""

    failed: bool
    """Whether the run should fail (below threshold and failing is enabled)."""

    unmatched_files: list[str] = field(default_factory=list)
    """Changed files that had no coverage entry at all."""


class CheckPipeline:
    """Parse coverage, collect changed lines, reconcile and report.

    Parsing and change-source errors propagate to the caller; nothing is
    published for a run that could not compute a result.
    """

    def __init__(self, config: CheckPipelineConfig) -> None:
        self.config = config

    def run(self) -> CheckPipelineResult:
        """Execute the check pipeline.

        Returns:
            Pipeline execution result.
        """
        config = self.config
        tracker = _StepTracker(_TOTAL_STEPS, ci_mode=config.ci_mode)

        if not config.ci_mode:
            reporter.print_pipeline_header("prcov check")

        # Step 1: Normalize coverage
        tracker.step("Parsing coverage file")
        coverage = parse_coverage_file(config.coverage_file, root=config.project_root)
        tracker.done(f"Parsed coverage for {len(coverage)} file(s)")

        # Step 2: Collect changed lines
        tracker.step("Collecting changed lines")
        files = config.change_source.list_changed_files()
        changed_lines = build_changed_line_set(files)
        changed_count = sum(len(lines) for lines in changed_lines.values())
        tracker.done(f"{changed_count} changed line(s) in {len(changed_lines)} file(s)")

        # Step 3: Reconcile
        tracker.step("Reconciling coverage with changed lines")
        aggregate = reconcile(coverage, changed_lines)
        unmatched = find_unmatched_files(coverage, changed_lines)
        if unmatched:
            logger.warning(
                "%d changed file(s) have no coverage entry: %s",
                len(unmatched),
                ", ".join(unmatched),
            )
        tracker.done(
            f"{aggregate.covered_lines}/{aggregate.total_lines} instrumented changed line(s) "
            "covered"
        )

        # Step 4: Threshold
        tracker.step("Evaluating threshold")
        passed = meets_threshold(aggregate, config.minimum_coverage)
        failed = config.fail_below_threshold and not passed
        logger.info(
            "Diff coverage %.2f%%, threshold %s%%: %s",
            aggregate.coverage_percent,
            config.minimum_coverage,
            "met" if passed else "not met",
        )
        tracker.done("Threshold met" if passed else "Threshold not met")

        # Step 5: Publish
        if config.sinks:
            tracker.step("Publishing results")
            context = ReportContext(
                minimum_coverage=config.minimum_coverage,
                meets_threshold=passed,
                changed_lines=changed_lines,
                coverage=tuple(coverage),
                project_root=config.project_root,
                pr_number=config.pr_number,
                pr_title=config.pr_title,
            )
            for sink in config.sinks:
                sink.publish(aggregate, context)
            tracker.done(f"Published to {len(config.sinks)} reporter(s)")
        else:
            tracker.skip("Publishing results")

        return CheckPipelineResult(
            result=aggregate,
            changed_lines=changed_lines,
            coverage=coverage,
            meets_threshold=passed,
            failed=failed,
            unmatched_files=unmatched,
        )
