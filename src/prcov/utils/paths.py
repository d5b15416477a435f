"""Path normalization shared by the coverage parsers and the diff extractor.

Coverage entries and diff entries are joined on their file path, so both
sides must produce keys the same way: forward slashes, repository-relative,
no leading ``./``.
"""

from __future__ import annotations

from pathlib import Path

_CURRENT_DIR_PREFIX = "./"


def normalize_path(path: str) -> str:
    """Return the join key for *path*.

    Backslashes become forward slashes and every leading ``./`` is removed,
    so ``normalize_path("./src/a.js") == normalize_path("src/a.js")``.
    """
    normalized = path.replace("\\", "/")
    while normalized.startswith(_CURRENT_DIR_PREFIX):
        normalized = normalized[len(_CURRENT_DIR_PREFIX) :]
    return normalized


def relativize_path(path: str, root: str | Path | None = None) -> str:
    """Make a coverage-report path relative to *root* and normalize it.

    Args:
        path: File path as written by the coverage tool (absolute or relative).
        root: Directory to strip from the front of *path*. Defaults to the
            process working directory.

    Returns:
        The normalized, repository-relative path.
    """
    root_str = str(root if root is not None else Path.cwd()).replace("\\", "/").rstrip("/")
    candidate = path.replace("\\", "/")
    if root_str and candidate.startswith(root_str + "/"):
        candidate = candidate[len(root_str) :]
    return normalize_path(candidate.lstrip("/"))
