"""Tests for exploratory summaries, plots and console output."""

from io import StringIO
from pathlib import Path

import numpy as np
import pandas as pd
import pytest
from rich.console import Console

from liftspeed.exploration import (
    ExplorationReporter,
    count_levels,
    generate_eda_plots,
    missingness,
    plot_boxplot_by,
    plot_histogram,
    plot_locations,
    plot_scatter,
    summarize_columns,
    target_correlations,
)
from liftspeed.exploration.summary import SUMMARY_COLUMNS


@pytest.fixture
def small_frame() -> pd.DataFrame:
    """Frame with numeric, nominal and logical columns."""
    return pd.DataFrame(
        {
            "speed": [100.0, 200.0, np.nan, 400.0],
            "borough": ["Queens", "Queens", None, "Bronx"],
            "active": [True, False, True, True],
        }
    )


class TestSummarizeColumns:
    """Tests for the per-column summary."""

    def test_summary(self, small_frame: pd.DataFrame) -> None:
        """Test types, missing counts and numeric statistics."""
        summary = summarize_columns(small_frame).set_index("column")
        assert list(summarize_columns(small_frame).columns) == SUMMARY_COLUMNS

        assert summary.loc["speed", "type"] == "numeric"
        assert summary.loc["speed", "n_missing"] == 1
        assert summary.loc["speed", "pct_missing"] == pytest.approx(25.0)
        assert summary.loc["speed", "mean"] == pytest.approx(700.0 / 3)
        assert summary.loc["speed", "median"] == pytest.approx(200.0)
        assert pd.isna(summary.loc["speed", "top"])

        assert summary.loc["borough", "type"] == "nominal"
        assert summary.loc["borough", "top"] == "Queens"
        assert summary.loc["borough", "n_unique"] == 2
        assert np.isnan(summary.loc["borough", "mean"])

        assert summary.loc["active", "type"] == "logical"
        assert summary.loc["active", "top"] == "True"

    def test_empty_frame(self) -> None:
        """Test that an empty frame yields NaN shares instead of failing."""
        summary = summarize_columns(pd.DataFrame({"x": pd.Series([], dtype=float)}))
        assert np.isnan(summary.loc[0, "pct_missing"])


class TestCountLevels:
    """Tests for level counts."""

    def test_counts_with_missing(self, small_frame: pd.DataFrame) -> None:
        """Test that missing values count as their own level."""
        levels = count_levels(small_frame, "borough")
        assert list(levels.columns) == ["borough", "n", "prop"]
        assert levels["borough"].iloc[0] == "Queens"
        assert set(levels["borough"]) == {"Queens", "Bronx", "(missing)"}
        assert levels["n"].sum() == 4
        assert levels["prop"].sum() == pytest.approx(1.0)

    def test_top_n_pools_rest(self) -> None:
        """Test that levels beyond top_n are pooled into (other)."""
        df = pd.DataFrame({"m": ["a"] * 5 + ["b"] * 3 + ["c", "d"]})
        levels = count_levels(df, "m", top_n=2)
        assert levels["m"].tolist() == ["a", "b", "(other)"]
        assert levels["n"].tolist() == [5, 3, 2]

    def test_unknown_column(self, small_frame: pd.DataFrame) -> None:
        """Test that an unknown column raises error."""
        with pytest.raises(ValueError, match="not found"):
            count_levels(small_frame, "manufacturer")


class TestMissingness:
    """Tests for the missingness table."""

    def test_sorted_by_missing(self) -> None:
        """Test that the most incomplete columns come first."""
        df = pd.DataFrame({"a": [1, None, None], "b": [None, 1, 2], "c": [1, 2, 3]})
        result = missingness(df)
        assert result["column"].tolist() == ["a", "b", "c"]
        assert result["n_missing"].tolist() == [2, 1, 0]
        assert result["pct_missing"].iloc[0] == pytest.approx(200.0 / 3)


class TestTargetCorrelations:
    """Tests for correlations with the outcome."""

    def test_sorted_by_strength(self) -> None:
        """Test ordering by absolute correlation, constant columns last."""
        df = pd.DataFrame(
            {
                "y": [1.0, 2.0, 3.0, 4.0, 5.0],
                "weak": [2.0, 1.0, 2.0, 1.0, 3.0],
                "neg": [10.0, 8.0, 6.0, 4.0, 2.0],
                "const": [1.0] * 5,
                "label": list("abcde"),
            }
        )
        result = target_correlations(df, "y")
        assert result["column"].tolist() == ["neg", "weak", "const"]
        assert result["correlation"].iloc[0] == pytest.approx(-1.0)
        assert np.isnan(result["correlation"].iloc[2])
        assert result["n"].tolist() == [5, 5, 5]

    def test_missing_target(self, modeling_data: pd.DataFrame) -> None:
        """Test that an unknown target raises error."""
        with pytest.raises(ValueError, match="not found"):
            target_correlations(modeling_data, "speed")

    def test_nominal_target(self, modeling_data: pd.DataFrame) -> None:
        """Test that a non-numeric target raises error."""
        with pytest.raises(ValueError, match="numeric"):
            target_correlations(modeling_data, "borough")

    def test_modeling_data(self, modeling_data: pd.DataFrame) -> None:
        """Test that the top floor is the strongest correlate of speed."""
        result = target_correlations(modeling_data, "speed_fpm")
        assert result["column"].iloc[0] == "floor_to"
        assert result["correlation"].iloc[0] > 0.8


class TestPlots:
    """Tests for PNG plot output."""

    def test_histogram(self, modeling_data: pd.DataFrame, tmp_path: Path) -> None:
        """Test writing a histogram."""
        path = plot_histogram(modeling_data, "speed_fpm", tmp_path / "h" / "hist.png")
        assert path.exists()
        assert path.stat().st_size > 0

    def test_scatter(self, modeling_data: pd.DataFrame, tmp_path: Path) -> None:
        """Test writing a scatterplot with a fitted line."""
        path = plot_scatter(modeling_data, "floor_to", "speed_fpm", tmp_path / "s.png")
        assert path.exists()

    def test_scatter_constant_x(self, tmp_path: Path) -> None:
        """Test that a constant predictor skips the fitted line."""
        df = pd.DataFrame({"x": [1.0, 1.0, 1.0], "y": [1.0, 2.0, 3.0]})
        assert plot_scatter(df, "x", "y", tmp_path / "s.png").exists()

    def test_boxplot(self, modeling_data: pd.DataFrame, tmp_path: Path) -> None:
        """Test writing boxplots per level."""
        path = plot_boxplot_by(modeling_data, "speed_fpm", "borough", tmp_path / "b.png")
        assert path.exists()

    def test_locations(self, tmp_path: Path) -> None:
        """Test the coordinate scatter with and without color."""
        df = pd.DataFrame(
            {
                "latitude": [40.7, 40.8, 40.6],
                "longitude": [-73.9, -73.95, -74.0],
                "speed_fpm": [5.0, 6.0, 4.5],
            }
        )
        assert plot_locations(df, tmp_path / "a.png").exists()
        assert plot_locations(df, tmp_path / "b.png", color_by="speed_fpm").exists()

    def test_missing_column(self, modeling_data: pd.DataFrame, tmp_path: Path) -> None:
        """Test that unknown columns raise error."""
        with pytest.raises(ValueError, match="Columns not found"):
            plot_scatter(modeling_data, "height", "speed_fpm", tmp_path / "s.png")

    def test_generate_eda_plots(
        self, modeling_data: pd.DataFrame, tmp_path: Path
    ) -> None:
        """Test the standard plot set."""
        modeling_data["latitude"] = 40.7
        modeling_data["longitude"] = -73.9
        paths = generate_eda_plots(modeling_data, "speed_fpm", tmp_path)
        names = {p.name for p in paths}

        assert "hist_speed_fpm.png" in names
        assert "scatter_speed_fpm_floor_to.png" in names
        assert "box_speed_fpm_borough.png" in names
        assert "locations.png" in names
        assert "scatter_speed_fpm_latitude.png" not in names
        assert all(p.exists() for p in paths)


class TestExplorationReporter:
    """Tests for console output."""

    def test_reporter(self, modeling_data: pd.DataFrame) -> None:
        """Test that every table renders."""
        output = StringIO()
        reporter = ExplorationReporter(Console(file=output, width=200))

        reporter.print_overview(modeling_data)
        reporter.print_summary(summarize_columns(modeling_data))
        reporter.print_levels(count_levels(modeling_data, "borough", top_n=3))
        reporter.print_correlations(
            target_correlations(modeling_data, "speed_fpm"), "speed_fpm"
        )

        text = output.getvalue()
        assert "Data overview" in text
        assert "Column summary" in text
        assert "Levels of borough" in text
        assert "(other)" in text
        assert "Correlation with speed_fpm" in text
