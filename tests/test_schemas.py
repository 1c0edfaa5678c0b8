"""Tests for Pandera schemas and the schema registry."""

import numpy as np
import pandas as pd
import pytest
from pandera.errors import SchemaError, SchemaErrors

from liftspeed.schemas import (
    CleanedElevatorSchema,
    DataRole,
    PredictionSchema,
    RawElevatorSchema,
    SchemaRegistry,
)


@pytest.fixture
def cleaned_frame() -> pd.DataFrame:
    """Minimal valid cleaned frame."""
    return pd.DataFrame(
        {
            "speed_fpm": np.log([100.5, 350.5, 500.5]),
            "capacity_lbs": [np.log(2500.5), np.nan, np.log(3500.5)],
            "elevators_per_building": [1, 2, 2],
            "approval_year": [1965.0, np.nan, 2001.0],
            "borough": ["Manhattan", "Queens", None],
        }
    )


class TestRawElevatorSchema:
    """Tests for RawElevatorSchema."""

    def test_valid(self) -> None:
        """Test that plausible raw rows pass and extra columns are allowed."""
        df = pd.DataFrame(
            {
                "device_number": ["1P0001", "1P0002"],
                "speed_fpm": [200.0, None],
                "latitude": [40.75, 40.68],
                "longitude": [-73.98, -73.95],
                "manufacturer": ["OTIS", "KONE"],
            }
        )
        validated = RawElevatorSchema.validate(df)
        assert len(validated) == 2

    def test_negative_speed(self) -> None:
        """Test that negative speeds are rejected."""
        df = pd.DataFrame({"device_number": ["1P0001"], "speed_fpm": [-5.0]})
        with pytest.raises(SchemaError):
            RawElevatorSchema.validate(df)

    def test_coordinates_outside_nyc(self) -> None:
        """Test that coordinates far from the city are rejected."""
        df = pd.DataFrame({"device_number": ["1P0001"], "latitude": [52.5]})
        with pytest.raises(SchemaError):
            RawElevatorSchema.validate(df)

    def test_device_number_required(self) -> None:
        """Test that the device number column is required."""
        with pytest.raises(SchemaError):
            RawElevatorSchema.validate(pd.DataFrame({"speed_fpm": [100.0]}))


class TestCleanedElevatorSchema:
    """Tests for CleanedElevatorSchema."""

    def test_valid(self, cleaned_frame: pd.DataFrame) -> None:
        """Test that a cleaned frame passes."""
        assert len(CleanedElevatorSchema.validate(cleaned_frame)) == 3

    def test_identifier_columns_rejected(self, cleaned_frame: pd.DataFrame) -> None:
        """Test that identifier columns must be dropped."""
        cleaned_frame["bin"] = [1, 2, 2]
        with pytest.raises(SchemaError):
            CleanedElevatorSchema.validate(cleaned_frame)

    def test_infinite_outcome(self, cleaned_frame: pd.DataFrame) -> None:
        """Test that an infinite outcome is rejected."""
        cleaned_frame.loc[0, "speed_fpm"] = -np.inf
        with pytest.raises(SchemaError):
            CleanedElevatorSchema.validate(cleaned_frame)

    def test_missing_outcome(self, cleaned_frame: pd.DataFrame) -> None:
        """Test that a missing outcome is rejected."""
        cleaned_frame.loc[1, "speed_fpm"] = np.nan
        with pytest.raises(SchemaError):
            CleanedElevatorSchema.validate(cleaned_frame)

    def test_lazy_collects_all(self, cleaned_frame: pd.DataFrame) -> None:
        """Test that lazy validation reports several failures at once."""
        cleaned_frame.loc[0, "elevators_per_building"] = 0
        cleaned_frame.loc[1, "approval_year"] = 1700.0
        with pytest.raises(SchemaErrors) as excinfo:
            CleanedElevatorSchema.validate(cleaned_frame, lazy=True)
        assert len(excinfo.value.failure_cases) >= 2


class TestPredictionSchema:
    """Tests for PredictionSchema."""

    def test_pred_alias(self) -> None:
        """Test that the .pred column is required."""
        PredictionSchema.validate(pd.DataFrame({".pred": [1.0, np.nan]}))
        with pytest.raises(SchemaError):
            PredictionSchema.validate(pd.DataFrame({"pred": [1.0]}))


class TestSchemaRegistry:
    """Tests for SchemaRegistry."""

    def test_list_schemas(self) -> None:
        """Test listing all registered schemas."""
        assert SchemaRegistry.list_schemas() == [
            "raw_elevator",
            "cleaned_elevator",
            "prediction",
        ]

    def test_get(self) -> None:
        """Test getting a schema class by name."""
        assert SchemaRegistry.get("cleaned_elevator") is CleanedElevatorSchema

    def test_get_unknown(self) -> None:
        """Test that an unknown schema raises KeyError with the options."""
        with pytest.raises(KeyError, match="raw_elevator"):
            SchemaRegistry.get("nonexistent")

    def test_list_by_role(self) -> None:
        """Test filtering schemas by role."""
        assert SchemaRegistry.list_by_role(DataRole.SOURCE) == ["raw_elevator"]
        assert SchemaRegistry.list_by_role(DataRole.OUTPUT) == ["prediction"]

    def test_versions(self) -> None:
        """Test registry and schema versions."""
        assert SchemaRegistry.registry_version() == "1.0.0"
        assert SchemaRegistry.get_info("raw_elevator").version == "1.0.0"

    def test_validate(self, cleaned_frame: pd.DataFrame) -> None:
        """Test validation through the registry."""
        result = SchemaRegistry.validate(cleaned_frame, "cleaned_elevator")
        assert len(result) == 3
