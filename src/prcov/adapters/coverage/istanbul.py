"""Istanbul/Jest JSON coverage adapter.

Istanbul (used by Jest, Vitest and nyc) records coverage per statement and
per branch rather than per line. This adapter expands that data into the
per-line hit model the rest of prcov works with.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from prcov.adapters.coverage.base import CoverageAdapter, FileCoverage, MalformedArtifactError
from prcov.utils.paths import relativize_path

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

# ── Constants ────────────────────────────────────────────────────

_JSON_SUFFIX = ".json"

# Aggregate pseudo-entry written next to the per-file entries
_TOTAL_KEY = "total"


# ── Adapter ──────────────────────────────────────────────────────


class IstanbulAdapter(CoverageAdapter):
    """Statement/branch-oriented coverage adapter.

    Parses Istanbul's JSON coverage format into canonical FileCoverage.
    """

    @property
    def name(self) -> str:
        return "istanbul"

    def detect(self, coverage_file: Path) -> bool:
        """Return True for names ending in ``.json``."""
        return coverage_file.name.lower().endswith(_JSON_SUFFIX)

    def parse_coverage_file(
        self, coverage_file: Path, *, root: str | Path | None = None
    ) -> list[FileCoverage]:
        """Parse Istanbul JSON coverage format into canonical per-file hits.

        Istanbul format:
        {
          "/path/to/file.ts": {
            "statementMap": { "0": {"start": {"line": 1}, "end": {"line": 2}}, ... },
            "s": { "0": 1, ... },              // statement hit counts
            "branchMap": { "0": {"line": 4, "loc": {...}}, ... },
            "b": { "0": [1, 0], ... }          // hit count per branch arm
          },
          "total": { ... }                     // summary, ignored
        }
        """
        try:
            with coverage_file.open(encoding="utf-8") as f:
                istanbul_data = json.load(f)
        except json.JSONDecodeError as e:
            raise MalformedArtifactError(f"Invalid JSON in {coverage_file}: {e}") from e
        except (OSError, UnicodeDecodeError) as e:
            raise MalformedArtifactError(f"Failed to read {coverage_file}: {e}") from e

        files = self.parse_data(istanbul_data, root=root)
        logger.debug("Parsed %d file(s) from Istanbul file %s", len(files), coverage_file)
        return files

    def parse_data(
        self, istanbul_data: Any, *, root: str | Path | None = None
    ) -> list[FileCoverage]:
        """Convert decoded Istanbul JSON into canonical per-file hits."""
        if not isinstance(istanbul_data, dict):
            raise MalformedArtifactError("Istanbul coverage must be a JSON object keyed by file")

        files: list[FileCoverage] = []
        for file_path, file_data in istanbul_data.items():
            if file_path == _TOTAL_KEY:
                continue
            if not isinstance(file_data, dict):
                raise MalformedArtifactError(f"Coverage entry for {file_path} is not an object")
            try:
                hits = _line_hits(file_data)
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                raise MalformedArtifactError(
                    f"Malformed coverage entry for {file_path}: {e!r}"
                ) from e
            files.append(FileCoverage.from_hits(relativize_path(file_path, root), hits))

        return files


# ── Helper functions ─────────────────────────────────────────────


def _line_hits(data: dict[str, Any]) -> dict[int, int]:
    """Expand statement and branch data of one file into ``{line: hits}``."""
    hits: dict[int, int] = {}
    _apply_statements(hits, data.get("statementMap") or {}, data.get("s") or {})
    _apply_branches(hits, data.get("branchMap") or {}, data.get("b") or {})
    # Some instrumenters emit line 0 for synthetic nodes
    return {line: count for line, count in hits.items() if line >= 1}


def _apply_statements(
    hits: dict[int, int], statement_map: dict[str, Any], counts: dict[str, Any]
) -> None:
    """Assign each statement's count to every line it spans.

    A line spanned by several statements keeps the highest count.
    """
    for stmt_id, stmt in statement_map.items():
        start_line = int(stmt["start"]["line"])
        end_line = int(stmt["end"]["line"])
        count = int(counts.get(stmt_id, 0))
        for line in range(start_line, end_line + 1):
            if hits.get(line, -1) < count:
                hits[line] = count


def _apply_branches(
    hits: dict[int, int], branch_map: dict[str, Any], counts: dict[str, Any]
) -> None:
    """Mark a branch's line as hit once if any of its arms ran.

    Only unrecorded lines and lines recorded at 0 are touched.
    """
    for branch_id, branch in branch_map.items():
        arm_counts = counts.get(branch_id) or []
        if not any(int(c) > 0 for c in arm_counts):
            continue
        line = _branch_line(branch)
        if hits.get(line, 0) == 0:
            hits[line] = 1


def _branch_line(branch: dict[str, Any]) -> int:
    """Return the source line of a branch (legacy ``line`` or ``loc.start.line``)."""
    line = branch.get("line")
    if line is None:
        line = branch["loc"]["start"]["line"]
    return int(line)
