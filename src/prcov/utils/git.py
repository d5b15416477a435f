"""Git and GitHub API utilities for prcov.

Provides the GitHub REST calls prcov needs (pull request files and PR
comments), pull request detection from the GitHub Actions environment, and
a thin wrapper around ``git diff`` for local runs.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import re
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

import requests

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = logging.getLogger(__name__)

GITHUB_API_BASE = "https://api.github.com"
_TOKEN_ENV = "GITHUB_TOKEN"
_REQUEST_TIMEOUT = 30
_API_HEADERS = {
    "Accept": "application/vnd.github+json",
    "X-GitHub-Api-Version": "2022-11-28",
}

# Pull request files are paginated; GitHub stops listing after 3000 files
_PAGE_SIZE = 100
_MAX_PAGES = 30

_PR_EVENTS = frozenset({"pull_request", "pull_request_target"})
_PULL_REF_RE = re.compile(r"^refs/pull/(\d+)/")


@dataclass
class GitHubPRInfo:
    """Identifies one pull request."""

    owner: str
    """User or organization that owns the repository."""

    repo: str
    """Repository name."""

    pr_number: int
    """Pull request number."""


class GitHubAPIError(Exception):
    """A GitHub REST call could not be completed."""


class GitOperationError(Exception):
    """A local git command failed or was refused."""


class GitHubAPI:
    """Client for the parts of the GitHub API prcov uses.

    Handles authentication, pagination of pull request files, and PR
    comment management.
    """

    def __init__(self, token: str | None = None, *, api_url: str = GITHUB_API_BASE) -> None:
        """Create a client.

        Args:
            token: API token. Defaults to ``$GITHUB_TOKEN``.
            api_url: API root, for GitHub Enterprise Server installs.

        Raises:
            GitHubAPIError: If neither a token nor ``$GITHUB_TOKEN`` is set.
        """
        self._token = token or os.environ.get(_TOKEN_ENV)
        if not self._token:
            raise GitHubAPIError(
                f"GitHub token required: set {_TOKEN_ENV} or github.token in the config"
            )

        self._api_url = api_url.rstrip("/")
        self._headers = {**_API_HEADERS, "Authorization": f"Bearer {self._token}"}

    def _repo_url(self, pr_info: GitHubPRInfo) -> str:
        return f"{self._api_url}/repos/{pr_info.owner}/{pr_info.repo}"

    def _comments_url(self, pr_info: GitHubPRInfo) -> str:
        return f"{self._repo_url(pr_info)}/issues/{pr_info.pr_number}/comments"

    def _paginate(self, url: str) -> Iterator[dict[str, Any]]:
        """Yield items from a paginated list endpoint, one page at a time."""
        for page in range(1, _MAX_PAGES + 1):
            batch: list[dict[str, Any]] = self._get(
                url, params={"per_page": _PAGE_SIZE, "page": page}
            )
            yield from batch
            if len(batch) < _PAGE_SIZE:
                return

    def get_pull_request(self, pr_info: GitHubPRInfo) -> dict[str, Any]:
        """Fetch pull request metadata (title, head/base refs, ...)."""
        result: dict[str, Any] = self._get(f"{self._repo_url(pr_info)}/pulls/{pr_info.pr_number}")
        return result

    def list_pull_request_files(self, pr_info: GitHubPRInfo) -> list[dict[str, Any]]:
        """List every file changed by a pull request, following pagination.

        Each entry carries at least ``filename``, ``status`` and, for text
        changes, ``patch``.

        Raises:
            GitHubAPIError: If any page cannot be fetched.
        """
        files = list(self._paginate(f"{self._repo_url(pr_info)}/pulls/{pr_info.pr_number}/files"))
        logger.debug("PR #%d lists %d changed file(s)", pr_info.pr_number, len(files))
        return files

    def create_comment(self, pr_info: GitHubPRInfo, body: str) -> dict[str, Any]:
        result: dict[str, Any] = self._post(self._comments_url(pr_info), {"body": body})
        return result

    def update_comment(self, pr_info: GitHubPRInfo, comment_id: int, body: str) -> dict[str, Any]:
        url = f"{self._repo_url(pr_info)}/issues/comments/{comment_id}"
        result: dict[str, Any] = self._patch(url, {"body": body})
        return result

    def find_comment_by_marker(self, pr_info: GitHubPRInfo, marker: str) -> dict[str, Any] | None:
        """Return the first PR comment whose body contains *marker*, if any."""
        for comment in self._paginate(self._comments_url(pr_info)):
            if marker in (comment.get("body") or ""):
                return dict(comment)
        return None

    def upsert_comment(self, pr_info: GitHubPRInfo, body: str, marker: str) -> dict[str, Any]:
        """Edit the PR comment carrying *marker*, or post a new one.

        The marker is prepended to *body* when missing so the next run can
        find the comment again.

        Raises:
            GitHubAPIError: If listing, editing or posting fails.
        """
        if marker not in body:
            logger.warning("Comment body lacks marker %s; prepending it", marker)
            body = f"{marker}\n{body}"

        existing = self.find_comment_by_marker(pr_info, marker)
        if existing is None:
            logger.info("Posting coverage comment on PR #%d", pr_info.pr_number)
            return self.create_comment(pr_info, body)

        logger.info("Editing coverage comment %d on PR #%d", existing["id"], pr_info.pr_number)
        return self.update_comment(pr_info, existing["id"], body)

    def _get(self, url: str, params: dict[str, Any] | None = None) -> Any:
        return self._send("GET", requests.get, url, params=params)

    def _post(self, url: str, data: dict[str, Any]) -> Any:
        return self._send("POST", requests.post, url, json=data)

    def _patch(self, url: str, data: dict[str, Any]) -> Any:
        return self._send("PATCH", requests.patch, url, json=data)

    def _send(self, verb: str, call: Any, url: str, **kwargs: Any) -> Any:
        """Perform one request and decode its JSON body.

        Raises:
            GitHubAPIError: On transport errors, HTTP error statuses and
                undecodable bodies.
        """
        try:
            response = call(url, headers=self._headers, timeout=_REQUEST_TIMEOUT, **kwargs)
            response.raise_for_status()
            return response.json()
        except Exception as exc:
            raise GitHubAPIError(f"{verb} request failed: {exc}") from exc


def parse_repo_slug(slug: str) -> tuple[str, str] | None:
    """Split ``owner/repo`` into its parts, or return None if malformed."""
    owner, sep, repo = slug.strip().partition("/")
    if not sep or not owner or not repo or "/" in repo:
        return None
    return owner, repo


def _pr_number_from_event(event_path: str | None) -> int | None:
    """Read ``pull_request.number`` from the Actions event payload file."""
    if not event_path:
        return None
    try:
        payload = json.loads(Path(event_path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        logger.debug("Could not read event payload %s: %s", event_path, exc)
        return None
    if not isinstance(payload, dict):
        return None
    number = (payload.get("pull_request") or {}).get("number")
    return number if isinstance(number, int) else None


def get_pr_info_from_env() -> GitHubPRInfo | None:
    """Detect the pull request a GitHub Actions job runs for.

    The number comes from the event payload, or from a
    ``refs/pull/<n>/merge`` style ``GITHUB_REF`` when the payload lacks it.
    Returns None outside ``pull_request`` workflows.
    """
    if os.environ.get("GITHUB_EVENT_NAME") not in _PR_EVENTS:
        return None
    slug = parse_repo_slug(os.environ.get("GITHUB_REPOSITORY", ""))
    if slug is None:
        return None

    pr_number = _pr_number_from_event(os.environ.get("GITHUB_EVENT_PATH"))
    if pr_number is None:
        match = _PULL_REF_RE.match(os.environ.get("GITHUB_REF", ""))
        if match is None:
            return None
        pr_number = int(match.group(1))

    return GitHubPRInfo(owner=slug[0], repo=slug[1], pr_number=pr_number)


def compute_comment_marker(prefix: str) -> str:
    """Build the hidden HTML comment that tags prcov's PR comment."""
    digest = hashlib.sha256(prefix.encode()).hexdigest()[:8]
    return f"<!-- {prefix}:{digest} -->"


# ── Local git ────────────────────────────────────────────────────

_GIT_REF_MAX_LENGTH = 255
# Shell metacharacters, whitespace and git revision syntax
_GIT_REF_UNSAFE = re.compile(r"[\x00-\x1f\x7f \~\^:\?\*\[\]\\;|&$`()<>{}!#'\"]")


def _validate_git_ref(ref: str) -> None:
    """Refuse refs that could be read as options, ranges or shell syntax.

    Raises:
        GitOperationError: If the ref is rejected.
    """
    if not ref or len(ref) > _GIT_REF_MAX_LENGTH:
        raise GitOperationError(f"Git ref must be 1-{_GIT_REF_MAX_LENGTH} characters long")
    if ref.startswith("-") or ".." in ref or _GIT_REF_UNSAFE.search(ref):
        raise GitOperationError(f"Refusing unsafe git ref {ref!r}")


def get_diff(repo_path: Path, base_ref: str, head_ref: str | None = None) -> str:
    """Return the unified diff of *head_ref* (or the working tree) against *base_ref*.

    With a head ref the three-dot form is used, so only the changes made on
    the head side since the merge base are included, like a pull request.

    Raises:
        GitOperationError: If a ref is invalid or git fails.
    """
    _validate_git_ref(base_ref)
    if head_ref is not None:
        _validate_git_ref(head_ref)
        rev_range = f"{base_ref}...{head_ref}"
    else:
        rev_range = base_ref

    try:
        result = subprocess.run(
            [shutil.which("git") or "git", "diff", "--no-color", "--no-ext-diff", "-M", rev_range],
            cwd=repo_path,
            capture_output=True,
            text=True,
            check=True,
        )
    except (subprocess.CalledProcessError, OSError) as exc:
        raise GitOperationError(f"git diff {rev_range} failed: {exc}") from exc
    return result.stdout
