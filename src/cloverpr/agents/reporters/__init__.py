"""Reporters for coverage review results."""

from __future__ import annotations

from cloverpr.agents.reporters.github_comment import GitHubCommentReporter
from cloverpr.agents.reporters.markdown import LinkContext, render_report
from cloverpr.agents.reporters.terminal import reporter

__all__ = [
    "GitHubCommentReporter",
    "LinkContext",
    "render_report",
    "reporter",
]
