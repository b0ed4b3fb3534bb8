"""CI and PR context detection utilities.

The report links file paths and uncovered lines to the commit under review,
and the CLI diffs against the pull request's base branch. Both come from the
CI provider's environment when cloverpr runs in CI.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass
class CIContext:
    """Detected CI/PR execution context."""

    provider: str | None
    """CI provider name (github, gitlab, circleci, generic) or None locally."""

    is_pr: bool
    """Running in context of a pull request."""

    base_branch: str | None
    """Base/target branch for PR."""

    commit_sha: str | None
    """Commit under review."""


def _github_head_sha() -> str | None:
    """Return the PR head SHA from the GitHub event payload.

    ``GITHUB_SHA`` points at the synthetic merge commit on pull request
    events; links should target the branch head instead.
    """
    event_path = os.getenv("GITHUB_EVENT_PATH")
    if not event_path:
        return None
    try:
        event = json.loads(Path(event_path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        logger.debug("Could not read GitHub event payload %s: %s", event_path, exc)
        return None
    sha = event.get("pull_request", {}).get("head", {}).get("sha")
    return str(sha) if sha else None


def detect_ci_context() -> CIContext:
    """Detect CI and PR context from environment variables.

    Supports GitHub Actions, GitLab CI, CircleCI, and generic CI detection.
    """
    if os.getenv("GITHUB_ACTIONS") == "true":
        is_pr = os.getenv("GITHUB_EVENT_NAME", "") in {"pull_request", "pull_request_target"}
        return CIContext(
            provider="github",
            is_pr=is_pr,
            base_branch=os.getenv("GITHUB_BASE_REF") if is_pr else None,
            commit_sha=(_github_head_sha() if is_pr else None) or os.getenv("GITHUB_SHA"),
        )

    if os.getenv("GITLAB_CI") == "true":
        is_pr = bool(os.getenv("CI_MERGE_REQUEST_ID"))
        return CIContext(
            provider="gitlab",
            is_pr=is_pr,
            base_branch=os.getenv("CI_MERGE_REQUEST_TARGET_BRANCH_NAME") if is_pr else None,
            commit_sha=os.getenv("CI_COMMIT_SHA"),
        )

    if os.getenv("CIRCLECI") == "true":
        pull_request = os.getenv("CIRCLE_PR_NUMBER") or os.getenv("CIRCLE_PULL_REQUEST")
        return CIContext(
            provider="circleci",
            is_pr=bool(pull_request),
            base_branch=None,
            commit_sha=os.getenv("CIRCLE_SHA1"),
        )

    if os.getenv("CI") == "true":
        return CIContext(provider="generic", is_pr=False, base_branch=None, commit_sha=None)

    return CIContext(provider=None, is_pr=False, base_branch=None, commit_sha=None)

