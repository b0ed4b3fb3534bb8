"""Analyzers that select and evaluate coverage records."""

from cloverpr.agents.analyzers.changeset import FilterResult, filter_records, normalize_path
from cloverpr.agents.analyzers.thresholds import (
    EvaluatedFile,
    Evaluation,
    MetricFailure,
    evaluate_file,
    evaluate_files,
    format_percentage,
    percentage,
)

__all__ = [
    "EvaluatedFile",
    "Evaluation",
    "FilterResult",
    "MetricFailure",
    "evaluate_file",
    "evaluate_files",
    "filter_records",
    "format_percentage",
    "normalize_path",
    "percentage",
]
