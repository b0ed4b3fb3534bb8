"""Base classes and errors for coverage report adapters."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

    from cloverpr.models.coverage import CoverageDocument


class ReportNotFoundError(FileNotFoundError):
    """Raised when no coverage report exists at the configured location."""


class MalformedReportError(ValueError):
    """Raised when a coverage report cannot be parsed into the expected schema."""


class CoverageAdapter(ABC):
    """Abstract base class for coverage report adapters.

    An adapter knows where a coverage tool writes its report and how to
    parse that report into a ``CoverageDocument``.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Report format identifier (e.g. 'clover')."""

    @property
    @abstractmethod
    def default_report_path(self) -> str:
        """Conventional report location relative to the project root."""

    @abstractmethod
    def parse_report(self, data: bytes) -> CoverageDocument:
        """Parse raw report bytes.

        Raises:
            MalformedReportError: If the bytes are not a valid report.
        """

    def parse_coverage_file(self, coverage_file: Path) -> CoverageDocument:
        """Read and parse a report file.

        Raises:
            ReportNotFoundError: If ``coverage_file`` does not exist.
            MalformedReportError: If the file is not a valid report.
        """
        try:
            data = coverage_file.read_bytes()
        except FileNotFoundError as exc:
            raise ReportNotFoundError(f"No coverage report at {coverage_file}") from exc
        return self.parse_report(data)

    def load_report(self, coverage_file: Path) -> CoverageDocument | None:
        """Like ``parse_coverage_file`` but return None when the file is absent."""
        try:
            return self.parse_coverage_file(coverage_file)
        except ReportNotFoundError:
            return None
