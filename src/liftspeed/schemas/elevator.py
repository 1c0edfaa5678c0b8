"""
Pandera schemas for elevator device data.

Raw records come from the NYC Department of Buildings device extract;
cleaned records are what the modeling layer consumes.
"""

from typing import Optional

import pandas as pd
import pandera.pandas as pa
from pandera.typing import Series

# Generous WGS84 bounds around the five boroughs
NYC_LATITUDE_BOUNDS = (40.4, 41.0)
NYC_LONGITUDE_BOUNDS = (-74.3, -73.6)

# Columns that must not survive cleaning (identifiers and addresses)
IDENTIFIER_COLUMNS: tuple[str, ...] = (
    "device_number",
    "bin",
    "tax_block",
    "tax_lot",
    "house_number",
    "street_name",
    "zip_code",
)


class RawElevatorSchema(pa.DataFrameModel):
    """
    Schema for raw elevator records after column name normalization.

    Only the columns the analysis relies on are checked; the extract
    carries many more.
    """

    device_number: Series[str] = pa.Field(
        description="DOB device number",
        nullable=False,
    )
    speed_fpm: Optional[Series[float]] = pa.Field(
        ge=0,
        nullable=True,
        description="Rated speed in feet per minute",
    )
    capacity_lbs: Optional[Series[float]] = pa.Field(
        ge=0,
        nullable=True,
        description="Rated capacity in pounds",
    )
    floor_from: Optional[Series[float]] = pa.Field(
        nullable=True,
        description="Lowest floor served",
    )
    floor_to: Optional[Series[float]] = pa.Field(
        nullable=True,
        description="Highest floor served",
    )
    borough: Optional[Series[str]] = pa.Field(
        nullable=True,
        description="Borough name",
    )
    latitude: Optional[Series[float]] = pa.Field(
        in_range={
            "min_value": NYC_LATITUDE_BOUNDS[0],
            "max_value": NYC_LATITUDE_BOUNDS[1],
        },
        nullable=True,
        description="Device latitude in WGS84",
    )
    longitude: Optional[Series[float]] = pa.Field(
        in_range={
            "min_value": NYC_LONGITUDE_BOUNDS[0],
            "max_value": NYC_LONGITUDE_BOUNDS[1],
        },
        nullable=True,
        description="Device longitude in WGS84",
    )

    class Config:
        """Schema configuration."""

        name = "RawElevatorSchema"
        strict = False  # Allow extra columns
        coerce = True  # Coerce types where possible


class CleanedElevatorSchema(pa.DataFrameModel):
    """
    Schema for cleaned elevator data ready for modeling.

    Speed and capacity are on the log(x + offset) scale at this point.
    """

    speed_fpm: Series[float] = pa.Field(
        nullable=False,
        description="Log-scaled speed (outcome)",
    )
    capacity_lbs: Optional[Series[float]] = pa.Field(
        nullable=True,
        description="Log-scaled capacity",
    )
    elevators_per_building: Series[int] = pa.Field(
        ge=1,
        description="Number of devices sharing the building (BIN)",
    )
    approval_year: Optional[Series[float]] = pa.Field(
        nullable=True,
        ge=1850,
        le=2100,
        description="Year the device was approved",
    )

    @pa.dataframe_check
    def no_identifier_columns(cls, df: pd.DataFrame) -> bool:
        """Identifier and address columns are dropped during cleaning."""
        return not any(col in df.columns for col in IDENTIFIER_COLUMNS)

    @pa.check("speed_fpm", name="finite_outcome")
    def finite_outcome(cls, series: Series[float]) -> Series[bool]:
        """The outcome must be finite after the log transform."""
        return series.abs() != float("inf")

    class Config:
        """Schema configuration."""

        name = "CleanedElevatorSchema"
        strict = False
        coerce = True


class PredictionSchema(pa.DataFrameModel):
    """
    Schema for augmented predictions (observed outcome plus ``.pred``).
    """

    pred: Series[float] = pa.Field(
        alias=".pred",
        nullable=True,
        description="Predicted outcome",
    )

    class Config:
        """Schema configuration."""

        name = "PredictionSchema"
        strict = False
        coerce = True
