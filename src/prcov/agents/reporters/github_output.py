"""GitHub Actions step outputs for diff coverage results."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from prcov.agents.reporters.base import ReportContext
    from prcov.models.coverage import AggregateResult

logger = logging.getLogger(__name__)

_GITHUB_OUTPUT_ENV = "GITHUB_OUTPUT"


def build_outputs(result: AggregateResult, meets_threshold: bool) -> dict[str, str]:
    """Return the step outputs as ``name -> value`` strings."""
    return {
        "coverage-percentage": f"{result.coverage_percent:.2f}",
        "lines-covered": str(result.covered_lines),
        "total-lines": str(result.total_lines),
        "meets-threshold": "true" if meets_threshold else "false",
    }


class GitHubOutputWriter:
    """Appends ``name=value`` lines to the file named by ``GITHUB_OUTPUT``."""

    def __init__(self, output_file: str | Path | None = None) -> None:
        if output_file is None:
            output_file = os.environ.get(_GITHUB_OUTPUT_ENV) or None
        self._output_file = Path(output_file) if output_file else None

    @property
    def enabled(self) -> bool:
        return self._output_file is not None

    def publish(self, result: AggregateResult, context: ReportContext) -> None:
        if self._output_file is None:
            logger.debug("%s not set; skipping step outputs", _GITHUB_OUTPUT_ENV)
            return
        outputs = build_outputs(result, context.meets_threshold)
        with self._output_file.open("a", encoding="utf-8") as f:
            for name, value in outputs.items():
                f.write(f"{name}={value}\n")
        logger.debug("Wrote %d step output(s) to %s", len(outputs), self._output_file)
