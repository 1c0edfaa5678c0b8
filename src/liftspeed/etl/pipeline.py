"""
Elevator cleaning pipeline.

Turns the raw device extract into a model-ready table: per-building
counts, approval year, plausibility filtering, log scaling of skewed
measurements, and removal of identifier columns.
"""

from dataclasses import dataclass
from pathlib import Path

import numpy as np
import pandas as pd

from liftspeed.config.settings import CleaningConfig, ProjectConfig
from liftspeed.ingestion.elevators import load_elevators
from liftspeed.schemas.registry import SchemaRegistry
from liftspeed.utils.logging import get_logger

log = get_logger(__name__)

# Building identification number used to count devices per building
BUILDING_ID_COLUMN = "bin"


@dataclass
class ETLResult:
    """Result of running the cleaning pipeline."""

    data: pd.DataFrame
    n_raw: int
    n_missing_target: int
    n_out_of_bounds: int
    output_path: Path | None = None

    @property
    def n_cleaned(self) -> int:
        """Number of rows after cleaning."""
        return len(self.data)


def add_building_counts(df: pd.DataFrame) -> pd.DataFrame:
    """
    Add ``elevators_per_building`` (devices sharing the same BIN).

    Rows without a BIN, or data without the column at all, count as 1.
    An existing column is kept as-is.
    """
    df = df.copy()
    if "elevators_per_building" in df.columns:
        df["elevators_per_building"] = (
            pd.to_numeric(df["elevators_per_building"], errors="coerce")
            .fillna(1)
            .astype("int64")
        )
        return df

    if BUILDING_ID_COLUMN in df.columns:
        counts = df.groupby(BUILDING_ID_COLUMN)[BUILDING_ID_COLUMN].transform("size")
        df["elevators_per_building"] = counts.fillna(1).astype("int64")
    else:
        df["elevators_per_building"] = 1
    return df


def add_approval_year(df: pd.DataFrame) -> pd.DataFrame:
    """Derive ``approval_year`` from ``approval_date`` when present."""
    if "approval_date" not in df.columns:
        return df
    df = df.copy()
    dates = pd.to_datetime(df["approval_date"], errors="coerce")
    df["approval_year"] = dates.dt.year.astype("float64")
    return df


def filter_plausible(
    df: pd.DataFrame, config: CleaningConfig
) -> tuple[pd.DataFrame, int, int]:
    """
    Drop rows without an outcome and rows outside plausibility bounds.

    Bounds are applied on the raw (unlogged) scale. Capacity outside its
    bound is set to missing instead of dropping the row, since capacity is
    a predictor and will be imputed.

    Returns:
        Tuple of (filtered frame, rows missing target, rows out of bounds).
    """
    target = config.target
    if target not in df.columns:
        msg = f"Target column '{target}' not found in data"
        raise ValueError(msg)

    has_target = df[target].notna()
    n_missing_target = int((~has_target).sum())
    df = df[has_target]

    in_bounds = df[target] >= config.min_speed_fpm
    if config.max_speed_fpm is not None:
        in_bounds &= df[target] <= config.max_speed_fpm
    n_out_of_bounds = int((~in_bounds).sum())
    df = df[in_bounds].copy()

    if "capacity_lbs" in df.columns:
        bad_capacity = df["capacity_lbs"] < 0
        if config.max_capacity_lbs is not None:
            bad_capacity |= df["capacity_lbs"] > config.max_capacity_lbs
        if bad_capacity.any():
            log.info("Implausible capacities set to missing", n=int(bad_capacity.sum()))
            df.loc[bad_capacity, "capacity_lbs"] = np.nan

    return df, n_missing_target, n_out_of_bounds


def log_transform(
    df: pd.DataFrame, columns: list[str], offset: float
) -> pd.DataFrame:
    """Replace each column by ``log(x + offset)``; absent columns are skipped."""
    df = df.copy()
    for col in columns:
        if col not in df.columns:
            log.warning("Log column not found, skipping", column=col)
            continue
        values = pd.to_numeric(df[col], errors="coerce") + offset
        df[col] = np.log(values.where(values > 0))
    return df


def tidy_text_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Strip whitespace in text columns and map empty strings to missing."""
    df = df.copy()
    for col in df.columns:
        if not (
            pd.api.types.is_object_dtype(df[col]) or pd.api.types.is_string_dtype(df[col])
        ):
            continue
        text = df[col].astype("object")
        present = text.notna()
        text[present] = text[present].astype(str).str.strip()
        df[col] = text.mask(text == "")
    return df


def clean_elevators(df: pd.DataFrame, config: CleaningConfig) -> ETLResult:
    """
    Clean raw elevator records for modeling.

    Args:
        df: Raw records with canonical column names (see load_elevators).
        config: Cleaning configuration.

    Returns:
        ETLResult with the cleaned frame and row accounting.
    """
    n_raw = len(df)

    df = add_building_counts(df)
    df = add_approval_year(df)
    df, n_missing_target, n_out_of_bounds = filter_plausible(df, config)
    df = log_transform(df, config.log_columns, config.log_offset)

    drop = [c for c in config.drop_columns if c in df.columns and c != config.target]
    df = df.drop(columns=drop)
    df = tidy_text_columns(df)
    df = df.reset_index(drop=True)

    log.info(
        "Cleaned elevator data",
        n_raw=n_raw,
        n_cleaned=len(df),
        missing_target=n_missing_target,
        out_of_bounds=n_out_of_bounds,
        dropped_columns=drop,
    )

    return ETLResult(
        data=df,
        n_raw=n_raw,
        n_missing_target=n_missing_target,
        n_out_of_bounds=n_out_of_bounds,
    )


def run_etl(config: ProjectConfig, output_path: Path | None = None) -> ETLResult:
    """
    Load, clean, validate, and save the elevator dataset.

    Args:
        config: Project configuration.
        output_path: Where to write the cleaned CSV (default: cache dir).

    Returns:
        ETLResult including the output path.

    Raises:
        FileNotFoundError: If the raw file does not exist.
        pandera.errors.SchemaError: If the cleaned data violates its schema.
    """
    raw = load_elevators(config.data.resolve())
    result = clean_elevators(raw, config.cleaning)

    if config.target == "speed_fpm":
        SchemaRegistry.validate(result.data, "cleaned_elevator")
    else:
        log.info("Skipping cleaned schema check for custom target", target=config.target)

    output_path = output_path or config.cleaned_data_path
    output_path.parent.mkdir(parents=True, exist_ok=True)
    result.data.to_csv(output_path, index=False)
    result.output_path = output_path

    log.info("Saved cleaned data", path=str(output_path), rows=result.n_cleaned)
    return result


def load_cleaned(path: Path) -> pd.DataFrame:
    """
    Load a cleaned dataset written by run_etl.

    Raises:
        FileNotFoundError: If the file does not exist.
    """
    if not path.exists():
        msg = (
            f"No cleaned data found at {path}\n"
            "Run the ETL step first: liftspeed etl --config <config.yaml>"
        )
        raise FileNotFoundError(msg)
    return tidy_text_columns(pd.read_csv(path))
