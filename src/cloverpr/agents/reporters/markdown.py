"""Markdown coverage table for pull request comments.

The report is a banner, an optional block of threshold diagnostics and a
table with one row per changed file::

    > :+1: Test coverage is looking good.

    |Files|% Stmts|% Branch|% Funcs|% Lines|Uncovered Lines||
    |---|---|---|---|---|---|---|
    |src/one.js|100|100|100|100||:white_check_mark:|

Rows beyond ``max_rows`` are not rendered; they are disclosed as
``and N more...`` inside a ``<details>`` block.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING
from urllib.parse import quote

from cloverpr.agents.analyzers.thresholds import format_percentage

if TYPE_CHECKING:
    from cloverpr.agents.analyzers.thresholds import EvaluatedFile, Evaluation
    from cloverpr.config import CloverprConfig
    from cloverpr.models.changeset import ChangeSet

logger = logging.getLogger(__name__)

PASS_GLYPH = ":white_check_mark:"
FAIL_GLYPH = ":x:"
NO_DATA = "-"

TABLE_HEADER = "|Files|% Stmts|% Branch|% Funcs|% Lines|Uncovered Lines||"
TABLE_DIVIDER = "|---|---|---|---|---|---|---|"

MAX_UNCOVERED_LINES = 10
_ELLIPSIS = "..."
_PARENT_PREFIX = "../"
_LINE_BREAK = "<br>"
_SEGMENTS_PER_LINE = 2


@dataclass(frozen=True)
class LinkContext:
    """Commit to link file paths and line numbers against."""

    sha: str

    @classmethod
    def from_change_set(cls, change_set: ChangeSet) -> LinkContext | None:
        """Return a context for the change's head commit, if it has one."""
        sha = change_set.head_sha
        return cls(sha=sha) if sha else None

    def file_url(self, path: str) -> str:
        """Return a URL to ``path`` at this commit, relative to the PR page.

        ``path`` is percent-encoded; ``/`` is kept.
        """
        return f"../blob/{self.sha}/{quote(path)}"

    def line_url(self, file_url: str, line: int) -> str:
        return f"{file_url}#L{line}"


def shorten_path(path: str, max_chars: int) -> str:
    """Shorten a path to fit ``max_chars`` by dropping leading directories.

    Kept segments are prefixed with ``../`` and split two per line with
    ``<br>`` so long paths wrap inside the table cell. The last segment is
    always kept.

    >>> shorten_path("ab/cd/ef/gh/ij/kl/mn", 10)
    '../kl/mn'
    """
    if len(path) <= max_chars:
        return path

    segments = [segment for segment in path.split("/") if segment]
    kept = segments[-1:]
    for segment in reversed(segments[:-1]):
        candidate = [segment, *kept]
        if len(_PARENT_PREFIX + "/".join(candidate)) > max_chars:
            break
        kept = candidate

    chunks = [
        "/".join(kept[i : i + _SEGMENTS_PER_LINE])
        for i in range(0, len(kept), _SEGMENTS_PER_LINE)
    ]
    return _PARENT_PREFIX + f"/{_LINE_BREAK}".join(chunks)


def format_path(evaluated: EvaluatedFile, max_chars: int, link: LinkContext | None) -> str:
    """Return the file cell: shortened path, linked to the commit when possible."""
    display = shorten_path(evaluated.path, max_chars).replace("|", r"\|")
    if link is None:
        return display
    return f"[{display}]({link.file_url(evaluated.path)})"


def format_uncovered_lines(evaluated: EvaluatedFile, link: LinkContext | None) -> str:
    """Return the uncovered-lines cell, capped at ``MAX_UNCOVERED_LINES`` entries."""
    shown = evaluated.uncovered_lines[:MAX_UNCOVERED_LINES]
    if link is None:
        cells = [str(line) for line in shown]
    else:
        file_url = link.file_url(evaluated.path)
        cells = [f"[{line}]({link.line_url(file_url, line)})" for line in shown]

    text = ", ".join(cells)
    if len(evaluated.uncovered_lines) > MAX_UNCOVERED_LINES:
        text += _ELLIPSIS
    return text


def _format_metric(value: float | None) -> str:
    if value is None:
        return NO_DATA
    return format_percentage(value)


def format_row(evaluated: EvaluatedFile, max_chars: int, link: LinkContext | None) -> str:
    """Format one table row."""
    path = format_path(evaluated, max_chars, link)
    if not evaluated.has_data:
        cells = [path, NO_DATA, NO_DATA, NO_DATA, NO_DATA, "", NO_DATA]
    else:
        cells = [
            path,
            _format_metric(evaluated.statements),
            _format_metric(evaluated.branches),
            _format_metric(evaluated.functions),
            _format_metric(evaluated.lines),
            format_uncovered_lines(evaluated, link),
            PASS_GLYPH if evaluated.passed else FAIL_GLYPH,
        ]
    return "|" + "|".join(cells) + "|"


def _format_overflow(hidden: int) -> list[str]:
    return [
        "",
        "<details>",
        "<summary>Show more</summary>",
        "",
        f"and {hidden} more...",
        "",
        "</details>",
    ]


def render_report(
    evaluation: Evaluation,
    config: CloverprConfig,
    *,
    link: LinkContext | None = None,
) -> str | None:
    """Render the evaluation as markdown.

    Args:
        evaluation: Verdicts for the selected files, in display order.
        config: Supplies banner messages and display limits.
        link: Commit to link paths and lines against, if any.

    Returns:
        The markdown report, or None when there are no files to report.
    """
    if not evaluation.files:
        return None

    passed = evaluation.passed
    banner = config.success_message if passed else config.failure_message

    lines: list[str] = [f"> {banner}", ""]

    if not passed:
        lines.extend(failure.message for failure in evaluation.failures)
        lines.append("")

    lines.append(TABLE_HEADER)
    lines.append(TABLE_DIVIDER)

    shown = evaluation.files[: config.max_rows]
    lines.extend(format_row(evaluated, config.max_chars, link) for evaluated in shown)

    hidden = len(evaluation.files) - len(shown)
    if hidden > 0:
        lines.extend(_format_overflow(hidden))

    logger.debug("Rendered %d row(s), %d collapsed", len(shown), hidden)
    return "\n".join(lines)
