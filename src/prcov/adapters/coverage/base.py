"""Base classes, data models and errors for coverage adapters."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path


# ── Errors ───────────────────────────────────────────────────────


class CoverageError(Exception):
    """Base class for failures while loading a coverage artifact."""


class CoverageFileNotFoundError(CoverageError, FileNotFoundError):
    """The coverage artifact path does not exist."""


class UnsupportedFormatError(CoverageError):
    """The artifact name matches neither lcov nor Istanbul JSON."""


class MalformedArtifactError(CoverageError):
    """The artifact has a recognized format but its content does not parse."""


# ── Data models ──────────────────────────────────────────────────


@dataclass(frozen=True)
class LineHit:
    """Execution count for one instrumented line."""

    line: int
    hit_count: int

    @property
    def is_covered(self) -> bool:
        """Return True if this line was executed at least once."""
        return self.hit_count > 0


@dataclass(frozen=True)
class FileCoverage:
    """Per-line hit counts for a single source file.

    This is the canonical shape every coverage adapter (lcov, Istanbul)
    translates its native report into. ``lines`` is ordered by line number
    and holds one entry per instrumented line.
    """

    file_path: str
    lines: tuple[LineHit, ...] = field(default_factory=tuple)

    @property
    def hits_by_line(self) -> dict[int, int]:
        """Return a ``{line: hit_count}`` view of ``lines``."""
        return {hit.line: hit.hit_count for hit in self.lines}

    @classmethod
    def from_hits(cls, file_path: str, hits: dict[int, int]) -> FileCoverage:
        """Build a FileCoverage from a ``{line: hit_count}`` mapping."""
        return cls(
            file_path=file_path,
            lines=tuple(LineHit(line=ln, hit_count=cnt) for ln, cnt in sorted(hits.items())),
        )


# ── Adapter interface ────────────────────────────────────────────


class CoverageAdapter(ABC):
    """Abstract base class for coverage report parsers.

    Each concrete adapter recognizes one artifact shape by its file name and
    parses it into a list of :class:`FileCoverage`.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Format identifier (e.g. 'lcov', 'istanbul')."""

    @abstractmethod
    def detect(self, coverage_file: Path) -> bool:
        """Return True if *coverage_file* is named like this adapter's format."""

    @abstractmethod
    def parse_coverage_file(
        self, coverage_file: Path, *, root: str | Path | None = None
    ) -> list[FileCoverage]:
        """Parse a coverage artifact into canonical per-file hit data.

        Args:
            coverage_file: Path to the native coverage report.
            root: Project root stripped from the reported file paths.
                Defaults to the process working directory.

        Returns:
            One FileCoverage per source file in the artifact.

        Raises:
            MalformedArtifactError: If the content cannot be parsed.
        """
