"""
Result reporting.

Rich tables for metrics, tuning results and model terms, plus
predicted-vs-observed and tuning plots saved as PNG files.
"""

from datetime import datetime
from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from rich.console import Console
from rich.table import Table

from liftspeed.evaluation.metrics import compute_metrics, compute_residual_stats
from liftspeed.utils.logging import get_logger

log = get_logger(__name__)


def _fmt(value: object, digits: int = 4) -> str:
    if isinstance(value, (float, np.floating)):
        return "NA" if np.isnan(value) else f"{value:.{digits}f}"
    return str(value)


def print_metrics_table(
    metrics: pd.DataFrame,
    console: Console,
    title: str = "Metrics",
) -> None:
    """
    Print a metrics frame.

    Accepts both single estimates (``.metric``/``.estimate``) and resampled
    summaries (``.metric``/``mean``/``n``/``std_err``).
    """
    table = Table(title=title)
    table.add_column("Metric", style="cyan")

    if "mean" in metrics.columns:
        table.add_column("Mean", style="green")
        table.add_column("n", style="dim")
        table.add_column("Std. error", style="yellow")
        for _, row in metrics.iterrows():
            table.add_row(
                row[".metric"], _fmt(row["mean"]), str(row["n"]), _fmt(row["std_err"])
            )
    else:
        table.add_column("Estimate", style="green")
        for _, row in metrics.iterrows():
            table.add_row(row[".metric"], _fmt(row[".estimate"]))

    console.print(table)


def print_residual_summary(
    predictions: pd.DataFrame,
    outcome: str,
    console: Console,
    title: str = "Test-set residuals",
) -> None:
    """
    Print headline metrics and residual statistics for a prediction frame.

    Rows without an observed outcome or a prediction are left out.
    """
    frame = predictions[[outcome, ".pred"]].dropna()
    metrics = compute_metrics(frame[outcome], frame[".pred"])

    table = Table(title=title)
    table.add_column("Statistic", style="cyan")
    table.add_column("Value", style="green")
    for name, value in metrics.to_dict().items():
        table.add_row(name, _fmt(value))
    if metrics.n_samples:
        for name, value in compute_residual_stats(frame[outcome], frame[".pred"]).items():
            table.add_row(name, _fmt(value))

    console.print(table)


def print_tuning_table(
    best: pd.DataFrame,
    console: Console,
    params: list[str],
    title: str = "Best candidates",
) -> None:
    """Print the output of TuneResults.show_best()."""
    table = Table(title=title)
    for param in params:
        table.add_column(param, style="cyan")
    table.add_column("Metric", style="dim")
    table.add_column("Mean", style="green")
    table.add_column("Std. error", style="yellow")
    table.add_column("Config", style="dim")

    for _, row in best.iterrows():
        table.add_row(
            *(_fmt(row[p], digits=6) for p in params),
            row[".metric"],
            _fmt(row["mean"]),
            _fmt(row["std_err"]),
            row[".config"],
        )

    console.print(table)


def print_terms_table(
    terms: pd.DataFrame,
    console: Console,
    title: str = "Model terms",
    n: int = 20,
) -> None:
    """Print coefficients or importances from FittedWorkflow.tidy()."""
    value_col = "estimate" if "estimate" in terms.columns else "importance"

    table = Table(title=title)
    table.add_column("Term", style="cyan")
    table.add_column(value_col.capitalize(), style="green")
    for _, row in terms.head(n).iterrows():
        table.add_row(str(row["term"]), _fmt(row[value_col]))

    if len(terms) > n:
        table.caption = f"{len(terms) - n} more terms not shown"
    console.print(table)


def plot_predictions(
    predictions: pd.DataFrame,
    outcome: str,
    output_path: Path,
    *,
    title: str | None = None,
) -> Path:
    """
    Scatterplot of observed vs predicted values with the identity line.

    Args:
        predictions: Frame with ``.pred`` and the outcome column.
        outcome: Outcome column name.
        output_path: PNG file to write.
        title: Plot title.

    Returns:
        Path of the written file.
    """
    frame = predictions[[outcome, ".pred"]].dropna()
    y_true = frame[outcome].to_numpy(dtype=float)
    y_pred = frame[".pred"].to_numpy(dtype=float)

    fig, ax = plt.subplots(figsize=(8, 6))
    ax.scatter(y_pred, y_true, alpha=0.4, s=20, c="steelblue", edgecolors="none")

    if len(frame):
        lo = min(y_true.min(), y_pred.min())
        hi = max(y_true.max(), y_pred.max())
        ax.plot([lo, hi], [lo, hi], "r--", alpha=0.8, linewidth=2, label="Identity (y=x)")
        ax.legend(loc="lower right")

    if len(frame) > 1:
        rmse = float(np.sqrt(np.mean((y_true - y_pred) ** 2)))
        ax.text(
            0.05,
            0.95,
            f"RMSE = {rmse:.4f}\nn = {len(frame)}",
            transform=ax.transAxes,
            fontsize=10,
            verticalalignment="top",
            bbox={"boxstyle": "round", "facecolor": "white", "alpha": 0.8},
        )

    ax.set_xlabel(f"Predicted {outcome}", fontsize=11)
    ax.set_ylabel(f"Observed {outcome}", fontsize=11)
    ax.set_title(title or f"Observed vs predicted {outcome}", fontsize=12)
    ax.grid(True, alpha=0.3)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(output_path, dpi=150, bbox_inches="tight")
    plt.close(fig)

    log.info("Saved prediction plot", path=str(output_path), n=len(frame))
    return output_path


def plot_tuning_results(
    summary: pd.DataFrame,
    params: list[str],
    output_path: Path,
) -> Path:
    """
    Mean resampled metric against each tuned argument.

    One panel per metric (rows) and argument (columns); log-scaled
    arguments are detected by their span.
    """
    metrics = list(dict.fromkeys(summary[".metric"]))
    fig, axes = plt.subplots(
        len(metrics),
        len(params),
        figsize=(4 * len(params), 3 * len(metrics)),
        squeeze=False,
    )

    for i, metric in enumerate(metrics):
        subset = summary[summary[".metric"] == metric]
        for j, param in enumerate(params):
            ax = axes[i][j]
            values = pd.to_numeric(subset[param], errors="coerce")
            ax.scatter(values, subset["mean"], alpha=0.7, s=25, c="steelblue")
            positive = values[values > 0]
            if len(positive) and positive.max() / positive.min() > 1000:
                ax.set_xscale("log")
            ax.set_xlabel(param)
            if j == 0:
                ax.set_ylabel(metric)
            ax.grid(True, alpha=0.3)

    fig.tight_layout()
    output_path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(output_path, dpi=150, bbox_inches="tight")
    plt.close(fig)

    log.info("Saved tuning plot", path=str(output_path))
    return output_path


def save_prediction_table(
    predictions: pd.DataFrame,
    model_name: str,
    output_dir: Path,
    *,
    timestamp: str | None = None,
) -> Path:
    """
    Save test-set predictions as CSV.

    Returns:
        Path of the written file.
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    if timestamp is None:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")

    safe_name = model_name.replace(" ", "_").lower()
    path = output_dir / f"{safe_name}_test_predictions_{timestamp}.csv"
    predictions.to_csv(path, index=False)

    log.info("Saved prediction table", model=model_name, path=str(path), n=len(predictions))
    return path
