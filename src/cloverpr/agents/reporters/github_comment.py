"""GitHub comment reporter for posting the coverage report to a pull request.

The comment is upserted: a hidden HTML marker identifies it, so each run
replaces the previous report instead of adding a new comment.
"""

from __future__ import annotations

import logging

from cloverpr.utils.git import (
    GitHubAPI,
    GitHubAPIError,
    GitHubPRInfo,
    compute_comment_marker,
    get_pr_info_from_env,
)

logger = logging.getLogger(__name__)

_COMMENT_TITLE = "## Coverage Report"


class GitHubCommentReporter:
    """Reporter that posts the coverage report as a GitHub PR comment."""

    def __init__(self, github_token: str | None = None) -> None:
        """Initialize the GitHub comment reporter.

        Args:
            github_token: GitHub token. If not provided, GITHUB_TOKEN is used.

        Raises:
            GitHubAPIError: If no token is available.
        """
        self._api = GitHubAPI(token=github_token)
        self._marker = compute_comment_marker("cloverpr:coverage")

    def format_comment(self, report: str) -> str:
        """Wrap the markdown report with the comment marker and title."""
        return f"{self._marker}\n{_COMMENT_TITLE}\n\n{report}"

    def post_report(self, pr_info: GitHubPRInfo, report: str) -> dict[str, str]:
        """Create or update the coverage comment on a pull request.

        Returns:
            Dict with status and comment URL.

        Raises:
            GitHubAPIError: If posting the comment fails.
        """
        logger.info(
            "Posting coverage report to PR #%d in %s/%s",
            pr_info.pr_number,
            pr_info.owner,
            pr_info.repo,
        )

        result = self._api.upsert_comment(pr_info, self.format_comment(report), self._marker)

        logger.info("Successfully posted comment: %s", result.get("html_url"))

        return {
            "status": "success",
            "comment_url": result.get("html_url", ""),
        }


def post_report_from_env(report: str, github_token: str | None = None) -> dict[str, str] | None:
    """Post a coverage report to the pull request the CI job runs for.

    Returns:
        The post result, or None when not running for a GitHub pull request.

    Raises:
        GitHubAPIError: If no token is available or the API request fails.
    """
    pr_info = get_pr_info_from_env()
    if not pr_info:
        logger.info("Not running in a GitHub Actions PR context, skipping GitHub comment")
        return None

    try:
        return GitHubCommentReporter(github_token=github_token).post_report(pr_info, report)
    except GitHubAPIError as exc:
        logger.error("Failed to post coverage report: %s", exc)
        raise
