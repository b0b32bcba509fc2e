"""Console output for standalone runs."""

from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from conventest.core.listener import Listener
from conventest.core.messages import CaseFailed, CaseResult, CaseSkipped
from conventest.core.model import Case, ExecutionSummary


class ConsoleListener(Listener):
    """Prints failures and skips as they are reported, then a summary."""

    def __init__(self, console: Optional[Console] = None, show_passed: bool = False):
        self.console = console or Console()
        self.show_passed = show_passed

    def on_case_result(self, case: Case, outcome: CaseResult) -> None:
        if isinstance(outcome, CaseFailed):
            failure = case.failure
            self.console.print(f"[red]✗[/red] {escape(case.name)} [red]failed[/red]")
            self.console.print(f"  [red]{failure.type_name}:[/red] {escape(failure.message)}")
            for cause in failure.causes:
                self.console.print(f"  [dim]caused by[/dim] {escape(cause)}")
        elif isinstance(outcome, CaseSkipped):
            reason = f": {escape(outcome.reason)}" if outcome.reason else ""
            self.console.print(f"[yellow]-[/yellow] {escape(case.name)} [yellow]skipped[/yellow]{reason}")
        elif self.show_passed:
            self.console.print(f"[green]✓[/green] {escape(case.name)}")

    def on_run_completed(self, summary: ExecutionSummary) -> None:
        display_summary(self.console, summary)


def display_summary(console: Console, summary: ExecutionSummary) -> None:
    """Display a summary of test results."""
    console.print("\n" + "=" * 50)
    console.print("[bold]Test Results Summary[/bold]")
    console.print("=" * 50)

    table = Table(show_header=False, box=None)
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    table.add_row("Total Tests", str(summary.total))
    table.add_row("Passed", f"[green]{summary.passed}[/green]")
    table.add_row("Failed", f"[red]{summary.failed}[/red]")
    table.add_row("Skipped", f"[yellow]{summary.skipped}[/yellow]")

    if summary.total > 0:
        pass_rate = (summary.passed / summary.total) * 100
        table.add_row("Pass Rate", f"{pass_rate:.1f}%")

    console.print(table)

    if summary.failed > 0:
        console.print("\n[red]Some tests failed![/red]")
    elif summary.total > 0:
        console.print("\n[green]All tests passed![/green]")
