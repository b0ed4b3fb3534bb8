"""Terminal reporter with rich output formatting.

Status messages go to stderr so that the markdown report on stdout can be
piped or redirected untouched.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from cloverpr.agents.analyzers.thresholds import format_percentage

if TYPE_CHECKING:
    from collections.abc import Sequence

    from cloverpr.agents.analyzers.thresholds import EvaluatedFile
    from cloverpr.config import ThresholdConfig

console = Console(stderr=True)

_MAX_UNCOVERED_DISPLAY = 10


class CLIReporter:
    """Rich terminal output for coverage review runs."""

    def __init__(self, output: Console | None = None) -> None:
        self.console = output or console

    def print_success(self, message: str) -> None:
        """Print a success message."""
        self.console.print(f"[green]✓[/green] {message}")

    def print_error(self, message: str) -> None:
        """Print an error message."""
        self.console.print(f"[red]✗[/red] {escape(message)}")

    def print_warning(self, message: str) -> None:
        """Print a warning message."""
        self.console.print(f"[yellow]⚠[/yellow] {escape(message)}")

    def print_info(self, message: str) -> None:
        """Print an info message."""
        self.console.print(f"[dim]{message}[/dim]")

    def print_coverage_table(
        self, files: Sequence[EvaluatedFile], thresholds: ThresholdConfig
    ) -> None:
        """Print the per-file coverage verdicts as a table."""
        table = Table(title="Coverage of Changed Files", title_style="bold cyan")
        table.add_column("File", style="bold")
        table.add_column("% Stmts", justify="right")
        table.add_column("% Branch", justify="right")
        table.add_column("% Funcs", justify="right")
        table.add_column("% Lines", justify="right")
        table.add_column("Uncovered Lines")
        table.add_column("Status", justify="center")

        for evaluated in files:
            uncovered = ", ".join(
                str(line) for line in evaluated.uncovered_lines[:_MAX_UNCOVERED_DISPLAY]
            )
            if len(evaluated.uncovered_lines) > _MAX_UNCOVERED_DISPLAY:
                uncovered += "..."

            if not evaluated.has_data:
                status = "[dim]-[/dim]"
            elif evaluated.passed:
                status = "[green]✓[/green]"
            else:
                status = "[red]✗[/red]"

            table.add_row(
                escape(evaluated.path),
                self._format_cell(evaluated.statements, thresholds.statements),
                self._format_cell(evaluated.branches, thresholds.branches),
                self._format_cell(evaluated.functions, thresholds.functions),
                self._format_cell(evaluated.lines, thresholds.lines),
                uncovered,
                status,
            )

        self.console.print(table)

    def _format_cell(self, value: float | None, threshold: float) -> str:
        if value is None:
            return "[dim]-[/dim]"
        color = "green" if value >= threshold else "red"
        return f"[{color}]{format_percentage(value)}[/{color}]"


# Singleton instance for easy import
reporter = CLIReporter()
