"""Diff line extraction: which new-file lines did a pull request add?

This module:
1. Folds a per-file unified-diff patch into the set of added line numbers
2. Builds the changed-line set for every file of a pull request
3. Splits a multi-file ``git diff`` into per-file records shaped like the
   GitHub "list pull request files" response
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from functools import reduce
from typing import TYPE_CHECKING

from unidiff import PatchSet, UnidiffParseError

from prcov.utils.paths import normalize_path

if TYPE_CHECKING:
    from collections.abc import Iterable

    from unidiff import PatchedFile

logger = logging.getLogger(__name__)

# ── Constants ────────────────────────────────────────────────────

# Only the new-file start matters for the cursor: "@@ -a,b +c,d @@" -> c
_HUNK_NEW_START_RE = re.compile(r"\+(\d+)")

_HUNK_PREFIX = "@@"
_FILE_HEADER_PREFIX = "+++"
_NO_NEWLINE_PREFIX = "\\"

_DEV_NULL = "/dev/null"

ChangedLineSet = dict[str, frozenset[int]]
"""Mapping of normalized file path to the added line numbers in that file."""


class ChangeType(Enum):
    """File status as reported by the GitHub pull request files API."""

    ADDED = "added"
    MODIFIED = "modified"
    REMOVED = "removed"
    RENAMED = "renamed"
    COPIED = "copied"
    CHANGED = "changed"
    UNCHANGED = "unchanged"

    @classmethod
    def from_status(cls, status: str) -> ChangeType:
        """Map an API status string to a ChangeType (unknown: MODIFIED)."""
        try:
            return cls(status.lower())
        except ValueError:
            logger.debug("Unknown file status %r, treating as modified", status)
            return cls.MODIFIED


# ── Data models ──────────────────────────────────────────────────


@dataclass(frozen=True)
class PullRequestFile:
    """One changed file of a pull request."""

    filename: str
    """Path of the file in the new version."""

    status: ChangeType
    """Type of change (added, modified, removed, renamed, ...)."""

    patch: str = ""
    """Unified-diff hunks for the file; empty for binary or rename-only changes."""

    previous_filename: str | None = None
    """Original path if renamed or copied."""


# ── Changed-line extraction ──────────────────────────────────────

_CursorState = tuple[int, tuple[int, ...]]


def _advance(state: _CursorState, line: str) -> _CursorState:
    """Apply one patch line to the ``(cursor, recorded_lines)`` state."""
    cursor, recorded = state
    if line.startswith(_HUNK_PREFIX):
        match = _HUNK_NEW_START_RE.search(line)
        # A header without a new-file start leaves the cursor where it was
        return (int(match.group(1)), recorded) if match else state
    if line.startswith("+") and not line.startswith(_FILE_HEADER_PREFIX):
        return cursor + 1, (*recorded, cursor)
    if line.startswith(("-", _NO_NEWLINE_PREFIX)):
        return state
    return cursor + 1, recorded


def extract_changed_lines(patch: str | None) -> frozenset[int]:
    """Return the new-file line numbers added by *patch*.

    Args:
        patch: Unified-diff hunks for a single file.

    Returns:
        Line numbers (1-based) of added lines in the new version of the file.
    """
    if not patch:
        return frozenset()
    _, recorded = reduce(_advance, patch.split("\n"), (0, ()))
    return frozenset(recorded)


def build_changed_line_set(files: Iterable[PullRequestFile]) -> ChangedLineSet:
    """Build the changed-line set for every file of a pull request.

    Removed files are left out entirely. Files without a patch (binary,
    rename-only) are kept with an empty set.
    """
    changed: dict[str, frozenset[int]] = {}
    for pr_file in files:
        if pr_file.status is ChangeType.REMOVED:
            continue
        key = normalize_path(pr_file.filename)
        lines = extract_changed_lines(pr_file.patch)
        changed[key] = changed.get(key, frozenset()) | lines
        logger.debug("%s: %d changed line(s)", key, len(lines))
    return changed


# ── Unified diff splitting ───────────────────────────────────────


class DiffParseError(ValueError):
    """A unified diff could not be parsed."""


def _strip_side(path: str, prefix: str) -> str:
    return path[len(prefix) :] if path.startswith(prefix) else path


def _to_pull_request_file(patched_file: PatchedFile) -> PullRequestFile:
    """Shape one unidiff PatchedFile like a pull request files API entry."""
    old_path = _strip_side(patched_file.source_file, "a/")
    new_path = _strip_side(patched_file.target_file, "b/")
    previous: str | None = None

    if patched_file.is_added_file or old_path == _DEV_NULL:
        status = ChangeType.ADDED
    elif patched_file.is_removed_file or new_path == _DEV_NULL:
        status = ChangeType.REMOVED
        new_path = old_path
    elif old_path != new_path:
        status = ChangeType.RENAMED
        previous = old_path
    else:
        status = ChangeType.MODIFIED

    # Binary files carry no hunks
    patch = "".join(str(hunk) for hunk in patched_file).rstrip("\n")
    return PullRequestFile(
        filename=new_path,
        status=status,
        patch=patch,
        previous_filename=previous,
    )


def split_unified_diff(diff_text: str) -> list[PullRequestFile]:
    """Split a multi-file ``git diff`` into per-file records.

    Args:
        diff_text: Output of ``git diff`` or any multi-file unified diff.

    Returns:
        One PullRequestFile per file section, in diff order. Copies are
        reported as renames.

    Raises:
        DiffParseError: If a hunk does not match its header.
    """
    try:
        patch_set = PatchSet.from_string(diff_text)
    except UnidiffParseError as exc:
        raise DiffParseError(f"Malformed diff: {exc}") from exc

    files = [_to_pull_request_file(patched_file) for patched_file in patch_set]
    logger.debug("Diff lists %d changed file(s)", len(files))
    return files
