"""
Elevator dataset loader.

Reads the NYC Department of Buildings elevator extract and returns it with
canonical column names and coerced types.
"""

from pathlib import Path

import pandas as pd

from liftspeed.normalization.columns import (
    DATE_COLUMNS,
    NUMERIC_COLUMNS,
    clean_names,
    normalize_columns,
)
from liftspeed.utils.logging import get_logger

log = get_logger(__name__)


def coerce_types(df: pd.DataFrame) -> pd.DataFrame:
    """
    Coerce known numeric and date columns.

    Values that cannot be parsed (e.g. floor labels such as ``"B"`` or
    ``"LOBBY"``) become missing rather than raising.

    Args:
        df: DataFrame with canonical column names.

    Returns:
        DataFrame with numeric and datetime columns coerced.
    """
    df = df.copy()

    for col in NUMERIC_COLUMNS:
        if col in df.columns and not pd.api.types.is_numeric_dtype(df[col]):
            before = df[col].notna().sum()
            df[col] = pd.to_numeric(df[col], errors="coerce")
            lost = int(before - df[col].notna().sum())
            if lost:
                log.debug("Unparseable numeric values set to missing", column=col, n=lost)

    for col in DATE_COLUMNS:
        if col in df.columns and not pd.api.types.is_datetime64_any_dtype(df[col]):
            df[col] = pd.to_datetime(df[col], errors="coerce")

    return df


def load_elevators(path: Path, *, nrows: int | None = None) -> pd.DataFrame:
    """
    Load the raw elevators CSV.

    Args:
        path: Path to the CSV file.
        nrows: Optional row limit (useful for quick looks).

    Returns:
        DataFrame with snake_case canonical columns and coerced types.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file has no rows.
    """
    if not path.exists():
        msg = f"Elevator data file not found: {path}"
        raise FileNotFoundError(msg)

    log.info("Loading elevator data", path=str(path))
    df = pd.read_csv(path, nrows=nrows, low_memory=False)

    if df.empty:
        msg = f"Elevator data file has no rows: {path}"
        raise ValueError(msg)

    df = clean_names(df)
    df = normalize_columns(df)
    df = coerce_types(df)

    log.info("Loaded elevator data", rows=len(df), columns=len(df.columns))
    return df
