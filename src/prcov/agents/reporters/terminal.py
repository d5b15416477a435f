"""Rich console output: progress lines for the check pipeline and the result table."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from prcov.agents.reporters.base import coverage_level

if TYPE_CHECKING:
    from prcov.agents.reporters.base import ReportContext
    from prcov.models.coverage import AggregateResult

console = Console()

_LEVEL_COLORS = {"high": "green", "medium": "yellow", "low": "red"}
_SECONDS_PER_MINUTE = 60.0

# Display limits for truncation
_MAX_FILE_PATH_LENGTH = 60


def _coverage_color(percent: float) -> str:
    """Return a Rich color name for a coverage percentage."""
    return _LEVEL_COLORS[coverage_level(percent)]


def _format_duration(seconds: float) -> str:
    """Render elapsed time as seconds, or minutes past one minute."""
    if seconds >= _SECONDS_PER_MINUTE:
        return f"{seconds / _SECONDS_PER_MINUTE:.1f}m"
    return f"{seconds:.1f}s"


def _truncate_path(path: str) -> str:
    if len(path) <= _MAX_FILE_PATH_LENGTH:
        return path
    return "..." + path[-(_MAX_FILE_PATH_LENGTH - 3) :]


class CLIReporter:
    """Rich terminal output reporter for diff coverage runs."""

    def __init__(self, output: Console | None = None) -> None:
        self.console = output or console

    def print_success(self, message: str) -> None:
        self.console.print(f"[green]✓[/green] {message}")

    def print_error(self, message: str) -> None:
        self.console.print(f"[red]✗[/red] {message}")

    def print_warning(self, message: str) -> None:
        self.console.print(f"[yellow]⚠[/yellow] {message}")

    def print_info(self, message: str) -> None:
        self.console.print(f"[dim]{message}[/dim]")

    # ── Check progress ─────────────────────────────────────────────────

    def print_pipeline_header(self, name: str) -> None:
        """Boxed title shown once before the first step."""
        self.console.print()
        self.console.print(
            Panel(
                f"[bold white]{name}[/bold white]",
                border_style="cyan",
                padding=(0, 2),
            )
        )

    def print_step_header(self, step: int, total: int, description: str) -> None:
        """Announce step *step* of *total*."""
        self.console.print(f"\n[bold cyan]▸ Step {step}/{total}[/bold cyan]  {description}")

    def print_step_done(self, description: str, duration_s: float) -> None:
        elapsed = _format_duration(duration_s)
        self.console.print(f"  [green]✓[/green] {description} [dim]({elapsed})[/dim]")

    def print_step_skip(self, description: str) -> None:
        self.console.print(f"  [yellow]⊘[/yellow] {description} [dim](skipped)[/dim]")

    # ── Diff coverage ──────────────────────────────────────────────────

    def publish(self, result: AggregateResult, context: ReportContext) -> None:
        """Print the diff coverage summary and per-file table."""
        self.print_diff_coverage(result, context.minimum_coverage, context.meets_threshold)

    def print_diff_coverage(
        self, result: AggregateResult, minimum_coverage: float, meets_threshold: bool
    ) -> None:
        """Print overall diff coverage, threshold, status and a per-file table."""
        color = _coverage_color(result.coverage_percent)
        self.console.print()
        self.console.print(
            f"  [bold]Diff coverage:[/bold] [bold {color}]{result.coverage_percent:.2f}%"
            f"[/bold {color}] ({result.covered_lines}/{result.total_lines} lines covered)"
        )
        self.console.print(f"  [bold]Threshold:[/bold] {minimum_coverage:g}%")
        if meets_threshold:
            self.console.print("  [bold]Status:[/bold] [green]✓ Passed[/green]")
        else:
            self.console.print("  [bold]Status:[/bold] [red]✗ Failed[/red]")

        if not result.file_results:
            self.console.print("\n  [dim]No instrumented changed lines found[/dim]")
            return

        table = Table(show_header=True, header_style="bold", padding=(0, 1))
        table.add_column("File", style="cyan")
        table.add_column("Coverage", justify="right")
        table.add_column("Lines Changed", justify="right")
        table.add_column("Lines Covered", justify="right")

        for path in sorted(result.file_results):
            file_result = result.file_results[path]
            file_color = (
                "green" if file_result.coverage_percent >= minimum_coverage else "red"
            )
            table.add_row(
                _truncate_path(path),
                f"[{file_color}]{file_result.coverage_percent:.2f}%[/{file_color}]",
                str(file_result.total_lines),
                str(file_result.covered_lines),
            )

        self.console.print()
        self.console.print(table)


reporter = CLIReporter()
