"""
Console reporter for validation results.

Formats validation results using Rich.
"""

from rich.console import Console
from rich.table import Table

from liftspeed.validation.core import ValidationResult


class ConsoleReporter:
    """Formats and displays validation results to the console."""

    def __init__(self, console: Console) -> None:
        self.console = console

    def print_results(self, results: list[ValidationResult]) -> None:
        """
        Print validation results, a summary line, and any failure details.

        Args:
            results: List of validation results to display.
        """
        table = Table(title="Schema Validation", show_header=True)
        table.add_column("Dataset", style="cyan", no_wrap=True)
        table.add_column("Schema", style="blue")
        table.add_column("Status", justify="center")
        table.add_column("Rows", justify="right")
        table.add_column("Path", style="dim")

        for result in results:
            table.add_row(
                result.dataset_name,
                result.schema_name or "-",
                self._format_status(result),
                str(result.row_count) if result.row_count is not None else "-",
                str(result.file_path),
            )

        self.console.print(table)

        passed = sum(1 for r in results if r.schema_valid is True)
        failed = sum(1 for r in results if r.schema_valid is False)
        skipped = sum(1 for r in results if r.schema_valid is None)
        self.console.print(
            f"[green]{passed} passed[/green], [red]{failed} failed[/red], "
            f"[yellow]{skipped} skipped[/yellow]"
        )

        for result in results:
            if result.schema_valid is False and result.error_message:
                self.console.print(f"\n[bold red]{result.dataset_name}[/bold red]")
                for line in result.error_message.split("\n"):
                    self.console.print(f"  {line}", markup=False)

    @staticmethod
    def _format_status(result: ValidationResult) -> str:
        """Format validation status with color markup."""
        if not result.exists:
            return "[yellow]Missing[/yellow]"
        if result.schema_valid is None:
            return "[yellow]Skipped[/yellow]"
        if result.schema_valid:
            return "[green]Pass[/green]"
        return "[red]Fail[/red]"
