"""
Console reporter for exploratory summaries.

Formats the frames from exploration.summary as Rich tables.
"""

import pandas as pd
from rich.console import Console
from rich.table import Table


def _num(value: object, digits: int = 2) -> str:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return "-"
    if isinstance(value, float):
        return f"{value:.{digits}f}"
    return str(value)


class ExplorationReporter:
    """Displays exploratory summaries on the console."""

    def __init__(self, console: Console) -> None:
        self.console = console

    def print_overview(self, df: pd.DataFrame, title: str = "Data overview") -> None:
        """Print row and column counts by type."""
        table = Table(title=title)
        table.add_column("Metric", style="cyan")
        table.add_column("Value", style="green")

        n_numeric = len(df.select_dtypes(include="number").columns)
        table.add_row("Rows", str(len(df)))
        table.add_row("Columns", str(df.shape[1]))
        table.add_row("Numeric columns", str(n_numeric))
        table.add_row("Other columns", str(df.shape[1] - n_numeric))
        table.add_row("Complete rows", str(int(df.notna().all(axis=1).sum())))
        self.console.print(table)

    def print_summary(self, summary: pd.DataFrame, title: str = "Column summary") -> None:
        """Print the output of summarize_columns()."""
        table = Table(title=title)
        table.add_column("Column", style="cyan", no_wrap=True)
        table.add_column("Type", style="blue")
        table.add_column("Missing", justify="right")
        table.add_column("% Missing", justify="right")
        table.add_column("Unique", justify="right")
        table.add_column("Mean", justify="right", style="green")
        table.add_column("SD", justify="right")
        table.add_column("Min", justify="right")
        table.add_column("Median", justify="right")
        table.add_column("Max", justify="right")
        table.add_column("Top", style="dim")

        for _, row in summary.iterrows():
            pct = row["pct_missing"]
            pct_style = "red" if pd.notna(pct) and pct > 50 else "white"
            table.add_row(
                row["column"],
                row["type"],
                str(row["n_missing"]),
                f"[{pct_style}]{_num(pct, 1)}[/{pct_style}]",
                str(row["n_unique"]),
                _num(row["mean"]),
                _num(row["sd"]),
                _num(row["min"]),
                _num(row["median"]),
                _num(row["max"]),
                _num(row["top"]),
            )

        self.console.print(table)

    def print_levels(self, levels: pd.DataFrame, title: str | None = None) -> None:
        """Print the output of count_levels()."""
        column = levels.columns[0]
        table = Table(title=title or f"Levels of {column}")
        table.add_column(column, style="cyan")
        table.add_column("n", justify="right", style="green")
        table.add_column("Proportion", justify="right")

        for _, row in levels.iterrows():
            table.add_row(str(row[column]), str(row["n"]), f"{row['prop']:.3f}")

        self.console.print(table)

    def print_correlations(
        self, correlations: pd.DataFrame, target: str, title: str | None = None
    ) -> None:
        """Print the output of target_correlations()."""
        table = Table(title=title or f"Correlation with {target}")
        table.add_column("Column", style="cyan")
        table.add_column("r", justify="right", style="green")
        table.add_column("n", justify="right", style="dim")

        for _, row in correlations.iterrows():
            table.add_row(row["column"], _num(row["correlation"], 3), str(row["n"]))

        self.console.print(table)
