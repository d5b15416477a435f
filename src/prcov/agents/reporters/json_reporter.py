"""JSON reporter: generates a machine-readable diff coverage report."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from pathlib import Path

    from prcov.agents.reporters.base import ReportContext
    from prcov.models.coverage import AggregateResult

logger = logging.getLogger(__name__)


class JSONReporter:
    """Serialize a diff coverage result into a single JSON document."""

    def __init__(self, output_path: Path | None = None) -> None:
        self._output_path = output_path

    def publish(self, result: AggregateResult, context: ReportContext) -> None:
        """Write the report to the configured output path."""
        if self._output_path is None:
            logger.debug("No JSON output path configured; skipping")
            return
        self.generate(
            self._output_path,
            result,
            minimum_coverage=context.minimum_coverage,
            meets_threshold=context.meets_threshold,
        )

    def generate(
        self,
        output_path: Path,
        result: AggregateResult,
        *,
        minimum_coverage: float,
        meets_threshold: bool,
    ) -> Path:
        """Write a JSON report file.

        Args:
            output_path: Path to write the JSON file.
            result: Aggregate diff coverage result.
            minimum_coverage: Threshold the result was compared against.
            meets_threshold: Whether the threshold was met.

        Returns:
            The path to the generated JSON file.
        """
        report = _build_report(result, minimum_coverage, meets_threshold)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(
            json.dumps(report, indent=2, ensure_ascii=False),
            encoding="utf-8",
        )
        logger.info("JSON report written to %s", output_path)
        return output_path

    def generate_string(
        self,
        result: AggregateResult,
        *,
        minimum_coverage: float,
        meets_threshold: bool,
    ) -> str:
        """Return the JSON report as a string."""
        report = _build_report(result, minimum_coverage, meets_threshold)
        return json.dumps(report, indent=2, ensure_ascii=False)


def _build_report(
    result: AggregateResult, minimum_coverage: float, meets_threshold: bool
) -> dict[str, Any]:
    """Build the JSON report structure."""
    return {
        "tool": "prcov",
        "timestamp": datetime.now(tz=UTC).isoformat(),
        "coverage_percent": round(result.coverage_percent, 2),
        "total_lines": result.total_lines,
        "covered_lines": result.covered_lines,
        "minimum_coverage": minimum_coverage,
        "meets_threshold": meets_threshold,
        "files": {
            path: {
                "coverage_percent": round(file_result.coverage_percent, 2),
                "total_lines": file_result.total_lines,
                "covered_lines": file_result.covered_lines,
            }
            for path, file_result in sorted(result.file_results.items())
        },
    }
