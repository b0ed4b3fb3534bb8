"""Coverage report adapters."""

from cloverpr.adapters.coverage.base import (
    CoverageAdapter,
    MalformedReportError,
    ReportNotFoundError,
)
from cloverpr.adapters.coverage.clover import DEFAULT_CLOVER_PATH, CloverAdapter, parse_clover_xml

__all__ = [
    "DEFAULT_CLOVER_PATH",
    "CloverAdapter",
    "CoverageAdapter",
    "MalformedReportError",
    "ReportNotFoundError",
    "parse_clover_xml",
]
