"""Coverage report models.

These are the flat, immutable records the Clover parser produces. A
``CoverageDocument`` keeps the order files appeared in the report; nothing
downstream depends on that order beyond row ordering in the rendered table.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

STATEMENT_KIND = "stmt"
"""Clover ``type`` attribute of lines that count toward line coverage."""


@dataclass(frozen=True)
class LineRecord:
    """A single instrumented source line."""

    number: int
    """1-based line number."""

    count: int
    """Hit count (0 means uncovered)."""

    kind: str = STATEMENT_KIND
    """Instrumentation kind (``stmt``, ``cond``, ``method``...)."""

    @property
    def is_measurable(self) -> bool:
        """Return True if this line counts toward line coverage."""
        return self.kind == STATEMENT_KIND

    @property
    def is_covered(self) -> bool:
        """Return True if this line was executed at least once."""
        return self.count > 0


@dataclass(frozen=True)
class FileMetrics:
    """Totals and covered counts from a ``<metrics>`` element."""

    statements: int = 0
    covered_statements: int = 0
    conditionals: int = 0
    covered_conditionals: int = 0
    methods: int = 0
    covered_methods: int = 0


@dataclass(frozen=True)
class FileRecord:
    """Coverage data for a single source file."""

    path: str
    """File path as declared in the report (absolute or relative)."""

    name: str = ""
    """Informational file name from the report."""

    metrics: FileMetrics = FileMetrics()
    """Statement, branch and function counters."""

    lines: tuple[LineRecord, ...] = ()
    """Instrumented lines in document order."""

    @property
    def measurable_lines(self) -> tuple[LineRecord, ...]:
        """Return the statement lines only."""
        return tuple(line for line in self.lines if line.is_measurable)


@dataclass(frozen=True)
class CoverageDocument:
    """Parsed Clover report: every file across every project/package group."""

    files: tuple[FileRecord, ...] = ()

    def __len__(self) -> int:
        return len(self.files)

    def __iter__(self) -> Iterator[FileRecord]:
        return iter(self.files)
