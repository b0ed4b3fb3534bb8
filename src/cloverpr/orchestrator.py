"""Coverage review pipeline.

One run reads the Clover report, keeps the files the change touches,
evaluates them against the configured thresholds and renders a markdown
report. The host supplies two sinks: ``warn`` for the missing-report warning
and ``markdown`` for the rendered report. A run hands at most one value to
each sink and may hand nothing at all.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from cloverpr.adapters.coverage.clover import CloverAdapter
from cloverpr.agents.analyzers.changeset import filter_records
from cloverpr.agents.analyzers.thresholds import evaluate_files
from cloverpr.agents.reporters.markdown import LinkContext, render_report

if TYPE_CHECKING:
    from collections.abc import Callable

    from cloverpr.adapters.coverage.base import CoverageAdapter
    from cloverpr.agents.analyzers.thresholds import EvaluatedFile
    from cloverpr.config import CloverprConfig
    from cloverpr.models.changeset import ChangeSet

logger = logging.getLogger(__name__)

MISSING_REPORT_WARNING = (
    "No coverage report was detected. Please output a report in the `clover` format "
    "before running cloverpr (looked for {path})."
)


class ReviewStatus(Enum):
    """How a coverage review run ended."""

    NO_REPORT = "no_report"
    """No coverage report at the configured location."""

    NO_CHANGES = "no_changes"
    """The report covers none of the changed files."""

    REPORTED = "reported"
    """A markdown report was rendered."""


@dataclass(frozen=True)
class ReviewOutcome:
    """Result of a coverage review run."""

    status: ReviewStatus
    passed: bool = True
    """False if any reported file misses a threshold."""

    markdown: str | None = None
    warning: str | None = None
    total_files: int = 0
    """Changed files found in the coverage report."""

    files: tuple[EvaluatedFile, ...] = ()
    """Verdicts for every reported file, including rows collapsed in the markdown."""


def run_coverage_review(
    config: CloverprConfig,
    change_set: ChangeSet,
    *,
    warn: Callable[[str], None] | None = None,
    markdown: Callable[[str], None] | None = None,
    adapter: CoverageAdapter | None = None,
) -> ReviewOutcome:
    """Run the coverage review for a change.

    Args:
        config: Report location, thresholds, messages and display limits.
        change_set: Files created or modified by the change, plus its commits.
        warn: Receives the missing-report warning.
        markdown: Receives the rendered report.
        adapter: Report adapter; defaults to Clover at ``config.report_path``.

    Returns:
        The run outcome.

    Raises:
        MalformedReportError: If the report exists but cannot be parsed.
        OSError: If the report exists but cannot be read.
    """
    adapter = adapter or CloverAdapter(config.report_path)
    report_file = config.report_file

    document = adapter.load_report(report_file)
    if document is None:
        if not config.warn_on_no_report:
            logger.info("No coverage report at %s", report_file)
            return ReviewOutcome(status=ReviewStatus.NO_REPORT)

        warning = MISSING_REPORT_WARNING.format(path=config.report_path)
        logger.warning("No coverage report at %s", report_file)
        if warn is not None:
            warn(warning)
        return ReviewOutcome(status=ReviewStatus.NO_REPORT, warning=warning)

    selection = filter_records(
        document,
        change_set,
        root=config.root,
        show_all_files=config.show_all_files,
    )
    if selection.is_empty:
        logger.info("Coverage report has no entries for the changed files")
        return ReviewOutcome(status=ReviewStatus.NO_CHANGES)

    evaluation = evaluate_files(selection.records, config.threshold, root=config.root)
    report = render_report(evaluation, config, link=LinkContext.from_change_set(change_set))

    logger.info(
        "Coverage %s for %d changed file(s)",
        "passed" if evaluation.passed else "failed",
        selection.total,
    )
    if markdown is not None and report is not None:
        markdown(report)

    return ReviewOutcome(
        status=ReviewStatus.REPORTED,
        passed=evaluation.passed,
        markdown=report,
        total_files=selection.total,
        files=evaluation.files,
    )
