"""Tests for result tables and plots."""

from io import StringIO
from pathlib import Path

import numpy as np
import pandas as pd
from rich.console import Console

from liftspeed.evaluation.report import (
    plot_predictions,
    plot_tuning_results,
    print_metrics_table,
    print_residual_summary,
    print_terms_table,
    print_tuning_table,
    save_prediction_table,
)


def _console() -> tuple[Console, StringIO]:
    buffer = StringIO()
    return Console(file=buffer, width=120), buffer


class TestTables:
    """Tests for rich tables."""

    def test_single_estimates(self) -> None:
        """Estimates should be printed with four digits."""
        console, buffer = _console()
        metrics = pd.DataFrame(
            {".metric": ["rmse", "rsq"], ".estimator": "standard", ".estimate": [0.41234, np.nan]}
        )
        print_metrics_table(metrics, console, title="Test set")
        output = buffer.getvalue()
        assert "Test set" in output
        assert "0.4123" in output
        assert "NA" in output

    def test_resampled_summary(self) -> None:
        """Summaries should show mean, n and standard error."""
        console, buffer = _console()
        summary = pd.DataFrame(
            {
                ".metric": ["rmse"],
                ".estimator": ["standard"],
                "mean": [0.5],
                "n": [10],
                "std_err": [0.02],
            }
        )
        print_metrics_table(summary, console)
        output = buffer.getvalue()
        assert "Std. error" in output
        assert "0.0200" in output

    def test_tuning_table(self) -> None:
        """Best candidates should list parameters and config labels."""
        console, buffer = _console()
        best = pd.DataFrame(
            {
                "penalty": [1e-5],
                "mixture": [0.5],
                ".config": ["Preprocessor1_Model3"],
                ".metric": ["rmse"],
                ".estimator": ["standard"],
                "mean": [0.33],
                "n": [10],
                "std_err": [0.01],
            }
        )
        print_tuning_table(best, console, ["penalty", "mixture"])
        output = buffer.getvalue()
        assert "Preprocessor1_Model3" in output
        assert "0.000010" in output

    def test_terms_table_truncated(self) -> None:
        """Long term lists should be cut with a caption."""
        console, buffer = _console()
        terms = pd.DataFrame({"term": [f"x{i}" for i in range(5)], "importance": [0.2] * 5})
        print_terms_table(terms, console, n=3)
        output = " ".join(buffer.getvalue().split())
        assert "Importance" in output
        assert "2 more terms not shown" in output

    def test_residual_summary(self) -> None:
        """Metrics and residual statistics should be printed for observed rows."""
        console, buffer = _console()
        predictions = pd.DataFrame(
            {"speed_fpm": [1.0, 2.0, 3.0, np.nan], ".pred": [1.5, 2.0, 2.5, 1.0]}
        )
        print_residual_summary(predictions, "speed_fpm", console)
        output = buffer.getvalue()
        assert "Test-set residuals" in output
        assert "n_samples" in output
        assert "residual_max" in output
        assert "0.5000" in output
        assert "-0.5000" in output

    def test_residual_summary_without_observations(self) -> None:
        """Without observed rows only the empty metrics should be printed."""
        console, buffer = _console()
        predictions = pd.DataFrame({"speed_fpm": [np.nan], ".pred": [1.0]})
        print_residual_summary(predictions, "speed_fpm", console)
        output = buffer.getvalue()
        assert "n_samples" in output
        assert "residual_mean" not in output


class TestPlots:
    """Tests for saved plots and tables."""

    def test_plot_predictions(self, tmp_path: Path) -> None:
        """The plot should be written, skipping missing predictions."""
        predictions = pd.DataFrame(
            {"speed_fpm": [5.0, 5.5, 6.0], ".pred": [5.1, np.nan, 5.9]}
        )
        path = plot_predictions(predictions, "speed_fpm", tmp_path / "plots" / "pred.png")
        assert path.exists()
        assert path.stat().st_size > 0

    def test_plot_tuning_results(self, tmp_path: Path) -> None:
        """One panel per metric and argument should be saved."""
        summary = pd.DataFrame(
            {
                "penalty": [1e-8, 1e-4, 1.0] * 2,
                "mixture": [0.0, 0.5, 1.0] * 2,
                ".config": [f"Preprocessor1_Model{i}" for i in range(1, 4)] * 2,
                ".metric": ["rmse"] * 3 + ["rsq"] * 3,
                "mean": [0.3, 0.31, 0.6, 0.8, 0.79, np.nan],
            }
        )
        path = plot_tuning_results(summary, ["penalty", "mixture"], tmp_path / "tuning.png")
        assert path.exists()

    def test_save_prediction_table(self, tmp_path: Path) -> None:
        """The CSV name should carry the model label and timestamp."""
        predictions = pd.DataFrame({".row": [0, 1], ".pred": [1.0, 2.0]})
        path = save_prediction_table(
            predictions, "Rand Forest", tmp_path / "tables", timestamp="20240101_120000"
        )
        assert path.name == "rand_forest_test_predictions_20240101_120000.csv"
        assert pd.read_csv(path)[".pred"].tolist() == [1.0, 2.0]
