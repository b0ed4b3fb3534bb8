"""Per-file coverage percentages and threshold verdicts.

Percentages are rounded half-up to two decimals with decimal arithmetic so
that 2/3 renders as 66.67 and 20/21 as 95.24. A code metric with nothing to
measure (total of 0) is 100%. Line coverage is different: a file with no
statement lines has no line data, renders as placeholders and never fails.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

from cloverpr.agents.analyzers.changeset import normalize_path

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

    from cloverpr.config import ThresholdConfig
    from cloverpr.models.coverage import FileRecord

logger = logging.getLogger(__name__)

_FULL_COVERAGE = 100.0
_TWO_PLACES = Decimal("0.01")


def percentage(covered: int, total: int) -> float:
    """Return ``covered / total`` as a percentage rounded half-up to two decimals.

    A zero ``total`` is fully covered.
    """
    if total == 0:
        return _FULL_COVERAGE
    ratio = Decimal(covered) * 100 / Decimal(total)
    return float(ratio.quantize(_TWO_PLACES, rounding=ROUND_HALF_UP))


def format_percentage(value: float) -> str:
    """Format a percentage with up to two decimals and no trailing zeros.

    >>> format_percentage(100.0), format_percentage(33.3), format_percentage(95.24)
    ('100', '33.3', '95.24')
    """
    text = f"{Decimal(str(value)).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP):f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


@dataclass(frozen=True)
class MetricFailure:
    """A metric whose percentage is below its threshold."""

    metric: str
    """Display name: statements, branches, functions or lines."""

    threshold: float
    actual: float

    @property
    def message(self) -> str:
        return (
            f"Coverage threshold for {self.metric} ({format_percentage(self.threshold)}%) "
            f"not met: {format_percentage(self.actual)}%"
        )


@dataclass(frozen=True)
class EvaluatedFile:
    """Coverage verdict for one file of the change."""

    path: str
    """Project-relative path."""

    statements: float | None
    branches: float | None
    functions: float | None
    lines: float | None
    """Line coverage; None when the file has no statement lines."""

    uncovered_lines: tuple[int, ...] = ()
    """Ascending, de-duplicated numbers of uncovered statement lines."""

    failures: tuple[MetricFailure, ...] = ()

    @property
    def has_data(self) -> bool:
        """Return True if the file has at least one statement line."""
        return self.lines is not None

    @property
    def passed(self) -> bool:
        return not self.failures


@dataclass(frozen=True)
class Evaluation:
    """Verdicts for every selected file, in selection order."""

    files: tuple[EvaluatedFile, ...]

    @property
    def passed(self) -> bool:
        """Return True if every file meets every threshold."""
        return all(evaluated.passed for evaluated in self.files)

    @property
    def failures(self) -> list[MetricFailure]:
        """Return every failing metric across all files."""
        return [failure for evaluated in self.files for failure in evaluated.failures]


def uncovered_lines(record: FileRecord) -> tuple[int, ...]:
    """Return the sorted, unique numbers of uncovered statement lines."""
    return tuple(
        sorted({line.number for line in record.measurable_lines if not line.is_covered})
    )


def line_percentage(record: FileRecord) -> float | None:
    """Return line coverage, or None when the file has no statement lines."""
    measurable = record.measurable_lines
    if not measurable:
        return None
    covered = sum(1 for line in measurable if line.is_covered)
    return percentage(covered, len(measurable))


def evaluate_file(
    record: FileRecord,
    thresholds: ThresholdConfig,
    *,
    root: str | Path = "",
) -> EvaluatedFile:
    """Compute percentages and threshold failures for a single file."""
    path = normalize_path(record.path, root) if root else record.path

    lines = line_percentage(record)
    if lines is None:
        logger.debug("No statement lines for %s; reporting without data", path)
        return EvaluatedFile(path=path, statements=None, branches=None, functions=None, lines=None)

    metrics = record.metrics
    statements = percentage(metrics.covered_statements, metrics.statements)
    branches = percentage(metrics.covered_conditionals, metrics.conditionals)
    functions = percentage(metrics.covered_methods, metrics.methods)

    checks = (
        ("statements", statements, thresholds.statements),
        ("branches", branches, thresholds.branches),
        ("functions", functions, thresholds.functions),
        ("lines", lines, thresholds.lines),
    )
    failures = tuple(
        MetricFailure(metric=metric, threshold=threshold, actual=actual)
        for metric, actual, threshold in checks
        if actual < threshold
    )

    return EvaluatedFile(
        path=path,
        statements=statements,
        branches=branches,
        functions=functions,
        lines=lines,
        uncovered_lines=uncovered_lines(record),
        failures=failures,
    )


def evaluate_files(
    records: Iterable[FileRecord],
    thresholds: ThresholdConfig,
    *,
    root: str | Path = "",
) -> Evaluation:
    """Evaluate every record against ``thresholds``."""
    evaluation = Evaluation(
        files=tuple(evaluate_file(record, thresholds, root=root) for record in records)
    )
    logger.debug(
        "Evaluated %d file(s): %d failing metric(s)",
        len(evaluation.files),
        len(evaluation.failures),
    )
    return evaluation
