"""Tests for the elevator cleaning pipeline."""

from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from liftspeed.config.settings import CleaningConfig, ProjectConfig
from liftspeed.etl import clean_elevators, load_cleaned, run_etl
from liftspeed.etl.pipeline import (
    add_approval_year,
    add_building_counts,
    filter_plausible,
    log_transform,
    tidy_text_columns,
)
from liftspeed.ingestion import load_elevators
from liftspeed.schemas import IDENTIFIER_COLUMNS


class TestAddBuildingCounts:
    """Tests for devices per building."""

    def test_counts_per_bin(self) -> None:
        """Test that devices sharing a BIN are counted."""
        df = pd.DataFrame({"bin": [1, 1, 1, 2, 3, 3]})
        result = add_building_counts(df)
        assert result["elevators_per_building"].tolist() == [3, 3, 3, 1, 2, 2]

    def test_without_bin(self) -> None:
        """Test that every device counts once without a BIN column."""
        result = add_building_counts(pd.DataFrame({"speed_fpm": [100.0, 200.0]}))
        assert result["elevators_per_building"].tolist() == [1, 1]

    def test_existing_column_kept(self) -> None:
        """Test that a published count is used as-is."""
        df = pd.DataFrame({"bin": [1, 1], "elevators_per_building": ["4", None]})
        assert add_building_counts(df)["elevators_per_building"].tolist() == [4, 1]


class TestAddApprovalYear:
    """Tests for the approval year."""

    def test_year_from_date(self) -> None:
        """Test that the year is extracted from the approval date."""
        df = pd.DataFrame({"approval_date": ["1999-05-01", None]})
        result = add_approval_year(df)
        assert result["approval_year"].iloc[0] == 1999.0
        assert np.isnan(result["approval_year"].iloc[1])

    def test_no_date_column(self) -> None:
        """Test that frames without a date are returned unchanged."""
        df = pd.DataFrame({"speed_fpm": [1.0]})
        assert "approval_year" not in add_approval_year(df).columns


class TestFilterPlausible:
    """Tests for outcome and bound filtering."""

    def test_drops_missing_and_out_of_bounds(self) -> None:
        """Test that rows without speed or with implausible speed are dropped."""
        df = pd.DataFrame(
            {
                "speed_fpm": [100.0, np.nan, 5000.0, 350.0],
                "capacity_lbs": [2000.0, 2500.0, 3000.0, 90_000.0],
            }
        )
        result, n_missing, n_bounds = filter_plausible(df, CleaningConfig())
        assert n_missing == 1
        assert n_bounds == 1
        assert result["speed_fpm"].tolist() == [100.0, 350.0]
        assert np.isnan(result["capacity_lbs"].iloc[1])

    def test_no_upper_bound(self) -> None:
        """Test that max_speed_fpm=None disables the upper bound."""
        df = pd.DataFrame({"speed_fpm": [100.0, 5000.0]})
        result, _, n_bounds = filter_plausible(df, CleaningConfig(max_speed_fpm=None))
        assert n_bounds == 0
        assert len(result) == 2

    def test_missing_target(self) -> None:
        """Test that a missing outcome column raises error."""
        with pytest.raises(ValueError, match="speed_fpm"):
            filter_plausible(pd.DataFrame({"x": [1]}), CleaningConfig())


class TestLogTransform:
    """Tests for log scaling."""

    def test_log_with_offset(self) -> None:
        """Test log(x + offset) and that zero stays finite."""
        df = pd.DataFrame({"speed_fpm": [0.0, 99.5]})
        result = log_transform(df, ["speed_fpm"], offset=0.5)
        np.testing.assert_allclose(result["speed_fpm"], [np.log(0.5), np.log(100.0)])

    def test_absent_column_skipped(self) -> None:
        """Test that absent columns are skipped."""
        df = pd.DataFrame({"speed_fpm": [1.0]})
        result = log_transform(df, ["capacity_lbs"], offset=0.5)
        assert result["speed_fpm"].tolist() == [1.0]


class TestTidyTextColumns:
    """Tests for text cleanup."""

    def test_strip_and_empty(self) -> None:
        """Test whitespace stripping and empty strings as missing."""
        df = pd.DataFrame({"manufacturer": [" OTIS ", "", None], "n": [1, 2, 3]})
        result = tidy_text_columns(df)
        assert result["manufacturer"].iloc[0] == "OTIS"
        assert result["manufacturer"].iloc[1:].isna().all()
        assert result["n"].tolist() == [1, 2, 3]


class TestCleanElevators:
    """Tests for the full cleaning step."""

    def test_clean(self, raw_csv: Path) -> None:
        """Test row accounting and the shape of the cleaned table."""
        result = clean_elevators(load_elevators(raw_csv), CleaningConfig())

        assert result.n_raw == 120
        assert result.n_missing_target == 3
        assert result.n_out_of_bounds == 1
        assert result.n_cleaned == 116
        assert result.output_path is None

        df = result.data
        assert not any(col in df.columns for col in IDENTIFIER_COLUMNS)
        assert "approval_date" not in df.columns
        assert "approval_year" in df.columns
        assert (df["elevators_per_building"] >= 1).all()
        assert df["speed_fpm"].max() < np.log(4000.5)
        assert set(df["manufacturer"].dropna()) == {"OTIS", "SCHINDLER", "KONE", "THYSSEN"}

    def test_custom_target_kept(self, raw_elevators: pd.DataFrame) -> None:
        """Test that the outcome survives even when listed for dropping."""
        raw = raw_elevators.rename(columns=str.lower).rename(
            columns={"dv_speed_fpm": "speed_fpm"}
        )
        config = CleaningConfig(drop_columns=["speed_fpm", "bin"])
        result = clean_elevators(raw, config)
        assert "speed_fpm" in result.data.columns
        assert "bin" not in result.data.columns


class TestRunEtl:
    """Tests for the load-clean-validate-save pipeline."""

    def test_run_etl(self, raw_csv: Path, project_config: ProjectConfig) -> None:
        """Test that the cleaned CSV is written to the cache directory."""
        result = run_etl(project_config)
        assert result.output_path == project_config.cleaned_data_path
        assert result.output_path.exists()

        reloaded = load_cleaned(result.output_path)
        assert len(reloaded) == result.n_cleaned
        assert list(reloaded.columns) == list(result.data.columns)

    def test_custom_output(
        self, raw_csv: Path, project_config: ProjectConfig, tmp_path: Path
    ) -> None:
        """Test writing to an explicit output path."""
        output = tmp_path / "elsewhere" / "clean.csv"
        result = run_etl(project_config, output_path=output)
        assert output.exists()
        assert result.output_path == output

    def test_missing_raw_file(self, project_config: ProjectConfig) -> None:
        """Test that a missing raw file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            run_etl(project_config)

    def test_load_cleaned_missing(self, tmp_path: Path) -> None:
        """Test the hint given when the ETL step has not run."""
        with pytest.raises(FileNotFoundError, match="liftspeed etl"):
            load_cleaned(tmp_path / "missing.csv")
