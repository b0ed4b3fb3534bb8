"""Git and GitHub API utilities for cloverpr.

Git is used to build the change-set (files added or modified between two
refs) and to find the commit that report links point at. The GitHub REST API
is used to publish the report as a pull request comment.
"""

from __future__ import annotations

import hashlib
import logging
import os
import re
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

import requests

from cloverpr.models.changeset import ChangeSet

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = logging.getLogger(__name__)

# GitHub API constants
GITHUB_API_BASE = "https://api.github.com"
_GITHUB_AUTH_ENV_KEY = "GITHUB_" + "TOKEN"
_REQUEST_TIMEOUT = 30
_PAGE_SIZE = 100

# Expected number of parts when splitting "owner/repo"
_OWNER_REPO_PARTS = 2

# "<status>\t<path>" at minimum; renames and copies add a second path
_NAME_STATUS_MIN_PARTS = 2


def _git_executable() -> str:
    """Resolve the full path to the ``git`` executable."""
    return shutil.which("git") or "git"


@dataclass
class GitHubPRInfo:
    """Information about a GitHub pull request."""

    owner: str
    """Repository owner (username or organization)."""

    repo: str
    """Repository name."""

    pr_number: int
    """Pull request number."""


class GitHubAPIError(Exception):
    """Exception raised when GitHub API operations fail."""


class GitHubAPI:
    """Client for the GitHub issue comment API."""

    def __init__(self, token: str | None = None) -> None:
        """Initialize the GitHub API client.

        Args:
            token: GitHub token. If not provided, will try to read from the
                GITHUB_TOKEN environment variable.

        Raises:
            GitHubAPIError: If no token is available.
        """
        self._token = token or os.environ.get(_GITHUB_AUTH_ENV_KEY)
        if not self._token:
            raise GitHubAPIError(
                f"GitHub token required. Set {_GITHUB_AUTH_ENV_KEY} environment variable "
                "or pass token to constructor."
            )

        self._session_headers = {
            "Authorization": f"Bearer {self._token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }

    def create_comment(self, pr_info: GitHubPRInfo, body: str) -> dict[str, Any]:
        """Create a new comment on a pull request."""
        url = (
            f"{GITHUB_API_BASE}/repos/{pr_info.owner}/{pr_info.repo}/"
            f"issues/{pr_info.pr_number}/comments"
        )

        result: dict[str, Any] = self._post(url, {"body": body})
        return result

    def update_comment(self, pr_info: GitHubPRInfo, comment_id: int, body: str) -> dict[str, Any]:
        """Replace the body of an existing pull request comment."""
        url = (
            f"{GITHUB_API_BASE}/repos/{pr_info.owner}/{pr_info.repo}/"
            f"issues/comments/{comment_id}"
        )

        result: dict[str, Any] = self._patch(url, {"body": body})
        return result

    def find_comment_by_marker(self, pr_info: GitHubPRInfo, marker: str) -> dict[str, Any] | None:
        """Find a comment on a PR by a unique marker string.

        Follows the ``Link: next`` header until the marker turns up or the
        pages run out.

        Returns:
            Comment dict if found, None otherwise.

        Raises:
            GitHubAPIError: If the API request fails.
        """
        url = (
            f"{GITHUB_API_BASE}/repos/{pr_info.owner}/{pr_info.repo}/"
            f"issues/{pr_info.pr_number}/comments"
        )

        for comment in self._get_paginated(url):
            if marker in comment.get("body", ""):
                result: dict[str, Any] = comment
                return result

        return None

    def upsert_comment(self, pr_info: GitHubPRInfo, body: str, marker: str) -> dict[str, Any]:
        """Create or update a comment on a PR.

        If a comment with the given marker exists, it will be updated.
        Otherwise, a new comment will be created.

        Args:
            pr_info: Pull request information.
            body: Comment body (markdown formatted). Should include the marker.
            marker: Unique marker to identify this comment.

        Returns:
            GitHub API response as a dictionary.

        Raises:
            GitHubAPIError: If the API request fails.
        """
        if marker not in body:
            logger.warning("Marker '%s' not found in comment body. Adding it.", marker)
            body = f"{marker}\n{body}"

        existing = self.find_comment_by_marker(pr_info, marker)

        if existing:
            logger.info("Updating existing comment %d", existing["id"])
            return self.update_comment(pr_info, existing["id"], body)

        logger.info("Creating new comment")
        return self.create_comment(pr_info, body)

    def _get_paginated(self, url: str) -> Iterator[dict[str, Any]]:
        next_url: str | None = url
        params: dict[str, Any] | None = {"per_page": _PAGE_SIZE}
        while next_url:
            page, next_url = self._get(next_url, params)
            yield from page
            # The next link already carries the paging query
            params = None

    def _get(self, url: str, params: dict[str, Any] | None = None) -> tuple[Any, str | None]:
        """GET ``url`` and return the decoded body with the next page URL, if any."""
        try:
            response = requests.get(
                url, headers=self._session_headers, params=params, timeout=_REQUEST_TIMEOUT
            )
            response.raise_for_status()
            next_link = response.links.get("next", {})
            return response.json(), next_link.get("url")
        except Exception as exc:
            raise GitHubAPIError(f"GET request failed: {exc}") from exc

    def _post(self, url: str, data: dict[str, Any]) -> Any:
        try:
            response = requests.post(
                url, json=data, headers=self._session_headers, timeout=_REQUEST_TIMEOUT
            )
            response.raise_for_status()
            return response.json()
        except Exception as exc:
            raise GitHubAPIError(f"POST request failed: {exc}") from exc

    def _patch(self, url: str, data: dict[str, Any]) -> Any:
        try:
            response = requests.patch(
                url, json=data, headers=self._session_headers, timeout=_REQUEST_TIMEOUT
            )
            response.raise_for_status()
            return response.json()
        except Exception as exc:
            raise GitHubAPIError(f"PATCH request failed: {exc}") from exc


def get_pr_info_from_env() -> GitHubPRInfo | None:
    """Get PR information from GitHub Actions environment variables.

    Returns:
        GitHubPRInfo if running in a PR context, None otherwise.
    """
    github_repository = os.environ.get("GITHUB_REPOSITORY")
    github_event_name = os.environ.get("GITHUB_EVENT_NAME")
    github_ref = os.environ.get("GITHUB_REF")

    if not github_repository or github_event_name not in {"pull_request", "pull_request_target"}:
        return None

    parts = github_repository.split("/")
    if len(parts) != _OWNER_REPO_PARTS:
        return None

    owner, repo = parts

    # GITHUB_REF looks like refs/pull/<number>/merge
    if not github_ref or not github_ref.startswith("refs/pull/"):
        return None

    try:
        pr_number = int(github_ref.split("/")[2])
    except (IndexError, ValueError):
        return None

    return GitHubPRInfo(owner=owner, repo=repo, pr_number=pr_number)


def compute_comment_marker(prefix: str) -> str:
    """Generate an HTML comment marker that identifies a PR comment.

    Args:
        prefix: Prefix for the marker (e.g., "cloverpr:coverage").

    Returns:
        HTML comment marker string.
    """
    hash_str = hashlib.sha256(prefix.encode()).hexdigest()[:8]
    return f"<!-- {prefix}:{hash_str} -->"


class GitOperationError(Exception):
    """Exception raised when git operations fail."""


_GIT_REF_MAX_LENGTH = 255
_GIT_REF_UNSAFE = re.compile(r"[\x00-\x1f\x7f :\?\*\[\]\\;|&$`()<>{}!#'\"]")


def _validate_git_ref(ref: str) -> None:
    """Validate a git ref to prevent injection and malformed inputs.

    Ancestry suffixes such as ``HEAD~1`` and ``main^`` are allowed.

    Raises:
        GitOperationError: If the ref is invalid.
    """
    if not ref:
        raise GitOperationError("Git ref must not be empty")
    if len(ref) > _GIT_REF_MAX_LENGTH:
        raise GitOperationError(f"Git ref exceeds {_GIT_REF_MAX_LENGTH} characters")
    if _GIT_REF_UNSAFE.search(ref):
        raise GitOperationError(f"Git ref contains unsafe characters: {ref!r}")
    if ref.startswith("-"):
        raise GitOperationError("Git ref must not start with a dash")
    if ".." in ref:
        raise GitOperationError("Git ref must not contain '..'")


def _run_git(repo_path: Path | str, *args: str) -> str:
    try:
        result = subprocess.run(
            [_git_executable(), *args],
            cwd=Path(repo_path),
            capture_output=True,
            text=True,
            check=True,
        )
    except (subprocess.CalledProcessError, FileNotFoundError) as exc:
        raise GitOperationError(f"git {' '.join(args)} failed: {exc}") from exc
    return result.stdout


def parse_name_status(output: str) -> tuple[list[str], list[str]]:
    """Split ``git diff --name-status`` output into (created, modified) paths.

    Added, renamed and copied files count as created; deleted files are
    skipped because they cannot have coverage.
    """
    created: list[str] = []
    modified: list[str] = []

    for line in output.splitlines():
        parts = line.split("\t")
        if len(parts) < _NAME_STATUS_MIN_PARTS or not parts[0]:
            continue
        status = parts[0][0]
        path = parts[-1]
        if status in {"A", "R", "C"}:
            created.append(path)
        elif status in {"M", "T"}:
            modified.append(path)

    return created, modified


def get_changed_files(
    repo_path: Path | str, base_ref: str, head_ref: str = "HEAD"
) -> tuple[list[str], list[str]]:
    """Return (created, modified) files between the merge base of two refs and ``head_ref``.

    Raises:
        GitOperationError: If a ref is invalid or git fails.
    """
    _validate_git_ref(base_ref)
    _validate_git_ref(head_ref)
    output = _run_git(repo_path, "diff", "--name-status", "-M", f"{base_ref}...{head_ref}")
    return parse_name_status(output)


def get_commit_shas(repo_path: Path | str, base_ref: str, head_ref: str = "HEAD") -> list[str]:
    """Return SHAs of commits in ``head_ref`` but not ``base_ref``, oldest first.

    Raises:
        GitOperationError: If a ref is invalid or git fails.
    """
    _validate_git_ref(base_ref)
    _validate_git_ref(head_ref)
    output = _run_git(repo_path, "log", "--reverse", "--format=%H", f"{base_ref}..{head_ref}")
    return [sha.strip() for sha in output.splitlines() if sha.strip()]


def get_head_sha(repo_path: Path | str) -> str:
    """Return the full SHA of ``HEAD``.

    Raises:
        GitOperationError: If git fails.
    """
    return _run_git(repo_path, "rev-parse", "HEAD").strip()


def get_default_branch(repo_path: Path | str) -> str:
    """Detect the default branch of the ``origin`` remote.

    Falls back to ``main`` when ``refs/remotes/origin/HEAD`` is not set.
    """
    try:
        ref = _run_git(repo_path, "symbolic-ref", "refs/remotes/origin/HEAD").strip()
    except GitOperationError:
        return "main"
    return ref.split("/")[-1]


def load_change_set(repo_path: Path | str, base_ref: str, head_ref: str = "HEAD") -> ChangeSet:
    """Build a ``ChangeSet`` from git history between two refs.

    Raises:
        GitOperationError: If a ref is invalid or git fails.
    """
    created, modified = get_changed_files(repo_path, base_ref, head_ref)
    commits = get_commit_shas(repo_path, base_ref, head_ref)
    logger.debug(
        "Change-set %s...%s: %d created, %d modified, %d commit(s)",
        base_ref,
        head_ref,
        len(created),
        len(modified),
        len(commits),
    )
    return ChangeSet(
        created_files=tuple(created),
        modified_files=tuple(modified),
        commits=tuple(commits),
    )
