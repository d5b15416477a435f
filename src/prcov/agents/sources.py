"""Change sources: where the per-file patches of a pull request come from.

Every source returns the same :class:`PullRequestFile` records, so the rest
of the pipeline does not care whether the patches came from the GitHub API,
a local ``git diff`` or a saved diff file.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

from prcov.agents.analyzers.diff import ChangeType, PullRequestFile, split_unified_diff
from prcov.utils.git import get_diff

if TYPE_CHECKING:
    from prcov.utils.git import GitHubAPI, GitHubPRInfo

logger = logging.getLogger(__name__)


class PullRequestChangeSource(Protocol):
    """Anything that can list the changed files of a pull request."""

    def list_changed_files(self) -> list[PullRequestFile]:
        """Return one record per changed file."""
        ...


class GitHubChangeSource:
    """Change source backed by the GitHub pull request files API."""

    def __init__(self, api: GitHubAPI, pr_info: GitHubPRInfo) -> None:
        self._api = api
        self._pr_info = pr_info

    def list_changed_files(self) -> list[PullRequestFile]:
        logger.info(
            "Fetching changed files of PR #%d in %s/%s",
            self._pr_info.pr_number,
            self._pr_info.owner,
            self._pr_info.repo,
        )
        return [_from_api(entry) for entry in self._api.list_pull_request_files(self._pr_info)]


class GitDiffChangeSource:
    """Change source backed by ``git diff`` in a local checkout."""

    def __init__(self, repo_path: Path, base_ref: str, head_ref: str | None = None) -> None:
        self._repo_path = repo_path
        self._base_ref = base_ref
        self._head_ref = head_ref

    def list_changed_files(self) -> list[PullRequestFile]:
        logger.info(
            "Diffing %s against %s in %s",
            self._head_ref or "working tree",
            self._base_ref,
            self._repo_path,
        )
        return split_unified_diff(get_diff(self._repo_path, self._base_ref, self._head_ref))


class DiffFileChangeSource:
    """Change source backed by a saved unified diff (``git diff > pr.diff``)."""

    def __init__(self, diff_file: Path) -> None:
        self._diff_file = diff_file

    def list_changed_files(self) -> list[PullRequestFile]:
        logger.info("Reading diff from %s", self._diff_file)
        with Path(self._diff_file).open(encoding="utf-8") as f:
            return split_unified_diff(f.read())


def _from_api(entry: dict[str, Any]) -> PullRequestFile:
    """Convert one GitHub API file entry into a PullRequestFile."""
    return PullRequestFile(
        filename=str(entry.get("filename", "")),
        status=ChangeType.from_status(str(entry.get("status", "modified"))),
        patch=entry.get("patch") or "",
        previous_filename=entry.get("previous_filename"),
    )
