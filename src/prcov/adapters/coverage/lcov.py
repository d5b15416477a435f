"""LCOV tracefile adapter.

Parses the line-oriented ``.info`` format written by lcov/geninfo, Jest,
Vitest, c8 and most other coverage tools. Only ``DA`` records carry the
per-line hit counts this project needs; function and branch records are
recognized and skipped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from prcov.adapters.coverage.base import CoverageAdapter, FileCoverage, MalformedArtifactError
from prcov.utils.paths import relativize_path

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass
class _LcovRecordState:
    path: str | None = None
    da: dict[int, int] = field(default_factory=dict)


# ── Constants ────────────────────────────────────────────────────

_LCOV_SUFFIXES = (".info", ".lcov")

# LCOV record keys
_LCOV_SF = "SF"
_LCOV_DA = "DA"
_LCOV_END = "end_of_record"
_LCOV_DA_PARTS = 2
_LCOV_IGNORED_KEYS = frozenset(
    {"TN", "FN", "FNDA", "FNF", "FNH", "FNL", "FNA", "BRDA", "BRF", "BRH", "LF", "LH", "VER"}
)


# ── Adapter ──────────────────────────────────────────────────────


class LcovAdapter(CoverageAdapter):
    """Line-oriented coverage adapter.

    The tracefile already holds one record per executable line, so parsing
    is a pass-through apart from path normalization. Duplicate ``DA`` lines
    and repeated ``SF`` records are merged by summing, like ``lcov -a``.
    """

    @property
    def name(self) -> str:
        return "lcov"

    def detect(self, coverage_file: Path) -> bool:
        """Return True for names containing ``lcov`` or ending in ``.info``."""
        name = coverage_file.name.lower()
        return "lcov" in name or name.endswith(_LCOV_SUFFIXES)

    def parse_coverage_file(
        self, coverage_file: Path, *, root: str | Path | None = None
    ) -> list[FileCoverage]:
        """Parse an LCOV tracefile into canonical per-file hit data."""
        try:
            with coverage_file.open(encoding="utf-8") as f:
                content = f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise MalformedArtifactError(f"Failed to read LCOV file {coverage_file}: {e}") from e

        files = self.parse_string(content, root=root)
        logger.debug("Parsed %d file(s) from LCOV file %s", len(files), coverage_file)
        return files

    def parse_string(self, content: str, *, root: str | Path | None = None) -> list[FileCoverage]:
        """Parse LCOV text into canonical per-file hit data.

        Raises:
            MalformedArtifactError: On an unparseable ``DA`` record, a ``DA``
                outside any ``SF`` record, or non-blank content with no records.
        """
        merged: dict[str, dict[int, int]] = {}
        state = _LcovRecordState()
        saw_record = False

        for lineno, raw_line in enumerate(content.splitlines(), start=1):
            line = raw_line.strip()
            if not line:
                continue
            if line == _LCOV_END:
                self._flush_record(merged, state, root)
                state = _LcovRecordState()
                continue

            key, sep, value = line.partition(":")
            if not sep:
                logger.debug("Skipping LCOV line %d without a key: %r", lineno, line)
                continue
            if key == _LCOV_SF:
                self._flush_record(merged, state, root)
                state = _LcovRecordState(path=value.strip())
                saw_record = True
            elif key == _LCOV_DA:
                if state.path is None:
                    raise MalformedArtifactError(f"LCOV line {lineno}: DA record outside SF")
                line_number, count = _parse_da(value, lineno)
                state.da[line_number] = state.da.get(line_number, 0) + count
            elif key not in _LCOV_IGNORED_KEYS:
                logger.debug("Skipping unknown LCOV key %s on line %d", key, lineno)

        self._flush_record(merged, state, root)

        if not saw_record and content.strip():
            raise MalformedArtifactError("LCOV content contains no SF records")

        return [FileCoverage.from_hits(path, hits) for path, hits in merged.items()]

    def _flush_record(
        self,
        merged: dict[str, dict[int, int]],
        state: _LcovRecordState,
        root: str | Path | None,
    ) -> None:
        if state.path is None:
            return
        key = relativize_path(state.path, root)
        target = merged.setdefault(key, {})
        for line_number, count in state.da.items():
            target[line_number] = target.get(line_number, 0) + count


def _parse_da(value: str, lineno: int) -> tuple[int, int]:
    """Parse the ``<line>,<count>[,<checksum>]`` payload of a DA record."""
    parts = value.split(",")
    if len(parts) < _LCOV_DA_PARTS:
        raise MalformedArtifactError(f"LCOV line {lineno}: DA needs a line and a count")
    try:
        line_number = int(parts[0].strip())
        count = int(parts[1].strip())
    except ValueError as e:
        raise MalformedArtifactError(f"LCOV line {lineno}: {e}") from e
    if line_number < 1 or count < 0:
        raise MalformedArtifactError(
            f"LCOV line {lineno}: invalid DA values (line={line_number}, count={count})"
        )
    return line_number, count
