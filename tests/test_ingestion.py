"""Tests for column normalization and raw data loading."""

from pathlib import Path

import pandas as pd
import pytest

from liftspeed.ingestion import coerce_types, load_elevators
from liftspeed.normalization import (
    clean_names,
    normalize_columns,
    to_snake_case,
    validate_required_columns,
)


class TestToSnakeCase:
    """Tests for single label conversion."""

    @pytest.mark.parametrize(
        ("label", "expected"),
        [
            ("Device Status", "device_status"),
            ("DV_SPEED_FPM", "dv_speed_fpm"),
            ("zipCode", "zip_code"),
            ("% Missing", "percent_missing"),
            ("  Floor #  ", "floor_number"),
            ("2nd Floor", "x2nd_floor"),
            ("***", "x"),
        ],
    )
    def test_conversion(self, label: str, expected: str) -> None:
        """Test conversion of typical headers."""
        assert to_snake_case(label) == expected


class TestCleanNames:
    """Tests for frame-level renaming."""

    def test_duplicates_get_suffix(self) -> None:
        """Test that colliding names are made unique."""
        df = pd.DataFrame(columns=["Speed", "SPEED", "speed "])
        assert list(clean_names(df).columns) == ["speed", "speed_2", "speed_3"]


class TestNormalizeColumns:
    """Tests for canonical column names."""

    def test_strips_device_prefix(self) -> None:
        """Test that the dv_ prefix is removed."""
        df = pd.DataFrame(columns=["dv_speed_fpm", "dv_floor_to", "borough"])
        assert list(normalize_columns(df).columns) == ["speed_fpm", "floor_to", "borough"]

    def test_mapping_applied(self) -> None:
        """Test explicit mappings such as the device number."""
        df = pd.DataFrame(columns=["dv_device_number", "lat", "lon"])
        result = normalize_columns(df)
        assert list(result.columns) == ["device_number", "latitude", "longitude"]

    def test_existing_name_not_overwritten(self) -> None:
        """Test that prefix stripping never clobbers an existing column."""
        df = pd.DataFrame(columns=["speed_fpm", "dv_speed_fpm"])
        assert list(normalize_columns(df).columns) == ["speed_fpm", "dv_speed_fpm"]

    def test_prefix_stripping_disabled(self) -> None:
        """Test that strip_prefix=None keeps prefixed names."""
        df = pd.DataFrame(columns=["dv_speed_fpm"])
        assert list(normalize_columns(df, strip_prefix=None).columns) == ["dv_speed_fpm"]


class TestValidateRequiredColumns:
    """Tests for required column checks."""

    def test_missing_raises(self) -> None:
        """Test that missing columns raise by default."""
        df = pd.DataFrame(columns=["speed_fpm"])
        with pytest.raises(ValueError, match="capacity_lbs"):
            validate_required_columns(df, ["speed_fpm", "capacity_lbs"])

    def test_missing_reported(self) -> None:
        """Test that missing columns are returned when not raising."""
        df = pd.DataFrame(columns=["speed_fpm"])
        missing = validate_required_columns(
            df, ["speed_fpm", "floor_to"], raise_on_missing=False
        )
        assert missing == ["floor_to"]


class TestCoerceTypes:
    """Tests for numeric and date coercion."""

    def test_floor_labels_become_missing(self) -> None:
        """Test that non-numeric floor labels are set to missing."""
        df = pd.DataFrame({"floor_from": ["1", "B", "LOBBY", "3"]})
        result = coerce_types(df)
        assert result["floor_from"].isna().tolist() == [False, True, True, False]
        assert result["floor_from"].iloc[3] == 3.0

    def test_dates_parsed(self) -> None:
        """Test that date columns become datetimes."""
        df = pd.DataFrame({"approval_date": ["01/15/1990", "not a date"]})
        result = coerce_types(df)
        assert pd.api.types.is_datetime64_any_dtype(result["approval_date"])
        assert result["approval_date"].iloc[0].year == 1990
        assert pd.isna(result["approval_date"].iloc[1])


class TestLoadElevators:
    """Tests for loading the raw extract."""

    def test_load(self, raw_csv: Path) -> None:
        """Test loading with canonical names and numeric types."""
        df = load_elevators(raw_csv)
        assert len(df) == 120
        for col in ("device_number", "bin", "speed_fpm", "capacity_lbs", "floor_to"):
            assert col in df.columns
        assert pd.api.types.is_numeric_dtype(df["floor_from"])
        assert df["floor_from"].isna().sum() == 12

    def test_nrows(self, raw_csv: Path) -> None:
        """Test reading only the first rows."""
        assert len(load_elevators(raw_csv, nrows=10)) == 10

    def test_missing_file(self, tmp_path: Path) -> None:
        """Test that a missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError, match="not found"):
            load_elevators(tmp_path / "nope.csv")

    def test_empty_file(self, tmp_path: Path) -> None:
        """Test that a header-only file raises error."""
        path = tmp_path / "empty.csv"
        path.write_text("DV_DEVICE_NUMBER,DV_SPEED_FPM\n", encoding="utf-8")
        with pytest.raises(ValueError, match="no rows"):
            load_elevators(path)
