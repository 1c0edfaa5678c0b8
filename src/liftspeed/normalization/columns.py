"""
Column name normalization.

Turns the NYC Open Data headers (``DV_SPEED_FPM``, ``Device Status``, ...)
into the canonical snake_case names used throughout the package.
"""

import re

import pandas as pd

from liftspeed.utils.logging import get_logger

log = get_logger(__name__)

# Prefix used by the Department of Buildings for device attributes
DEVICE_PREFIX = "dv_"

# Canonical column names for the analysis
# Maps cleaned source names (after clean_names) to internal names
COLUMN_MAPPING: dict[str, str] = {
    # Identifiers
    "dv_device_number": "device_number",
    "device_id": "device_number",
    # Location
    "lat": "latitude",
    "lon": "longitude",
    "long": "longitude",
    "zip": "zip_code",
    "zipcode": "zip_code",
    # Device attributes published without the dv_ prefix in some extracts
    "device_type_description": "device_type",
    "elevatorsperbuilding": "elevators_per_building",
    "speed": "speed_fpm",
    "capacity": "capacity_lbs",
}

# Columns expected to be numeric after loading
NUMERIC_COLUMNS: tuple[str, ...] = (
    "speed_fpm",
    "capacity_lbs",
    "floor_from",
    "floor_to",
    "latitude",
    "longitude",
    "elevators_per_building",
)

# Columns parsed as dates after loading
DATE_COLUMNS: tuple[str, ...] = (
    "approval_date",
    "lastper_insp_date",
    "status_date",
)


def to_snake_case(name: str) -> str:
    """
    Convert a single column label to snake_case.

    Examples:
        "Device Status" -> "device_status"
        "DV_SPEED_FPM" -> "dv_speed_fpm"
        "zipCode" -> "zip_code"
        "% Missing" -> "percent_missing"
    """
    name = str(name).strip().replace("%", " percent ").replace("#", " number ")
    # Split camelCase boundaries before lowercasing
    name = re.sub(r"(?<=[a-z0-9])(?=[A-Z])", "_", name)
    name = re.sub(r"[^0-9a-zA-Z]+", "_", name).strip("_").lower()
    if not name:
        return "x"
    if name[0].isdigit():
        name = f"x{name}"
    return name


def clean_names(df: pd.DataFrame) -> pd.DataFrame:
    """
    Rename all columns to unique snake_case names.

    Duplicate names after conversion get numeric suffixes (``_2``, ``_3``).

    Args:
        df: DataFrame with arbitrary column labels.

    Returns:
        DataFrame with cleaned column names.
    """
    seen: dict[str, int] = {}
    new_names: list[str] = []
    for col in df.columns:
        base = to_snake_case(col)
        count = seen.get(base, 0) + 1
        seen[base] = count
        new_names.append(base if count == 1 else f"{base}_{count}")

    renamed = {old: new for old, new in zip(df.columns, new_names) if old != new}
    if renamed:
        log.debug("Cleaned column names", n_renamed=len(renamed))

    result = df.copy()
    result.columns = new_names
    return result


def normalize_columns(
    df: pd.DataFrame,
    mapping: dict[str, str] | None = None,
    *,
    strip_prefix: str | None = DEVICE_PREFIX,
) -> pd.DataFrame:
    """
    Normalize column names to canonical form.

    Applies the explicit mapping first, then strips the device prefix
    unless the stripped name already exists.

    Args:
        df: DataFrame with snake_case columns.
        mapping: Optional custom mapping (defaults to COLUMN_MAPPING).
        strip_prefix: Prefix to remove (None disables prefix stripping).

    Returns:
        DataFrame with normalized column names.
    """
    mapping = mapping or COLUMN_MAPPING

    rename_dict = {
        k: v for k, v in mapping.items() if k in df.columns and v not in df.columns
    }
    if rename_dict:
        log.debug("Normalizing columns", renamed=list(rename_dict.keys()))
        df = df.rename(columns=rename_dict)

    if strip_prefix:
        existing = set(df.columns)
        prefix_renames = {}
        for col in df.columns:
            if col.startswith(strip_prefix):
                stripped = col[len(strip_prefix) :]
                if stripped and stripped not in existing:
                    prefix_renames[col] = stripped
                    existing.add(stripped)
        if prefix_renames:
            log.debug("Stripped column prefix", prefix=strip_prefix, n=len(prefix_renames))
            df = df.rename(columns=prefix_renames)

    return df


def validate_required_columns(
    df: pd.DataFrame,
    required: list[str],
    *,
    raise_on_missing: bool = True,
) -> list[str]:
    """
    Check that required columns are present.

    Args:
        df: DataFrame to check.
        required: List of required column names.
        raise_on_missing: Whether to raise error if columns missing.

    Returns:
        List of missing columns.

    Raises:
        ValueError: If raise_on_missing and columns are missing.
    """
    missing = [col for col in required if col not in df.columns]

    if missing and raise_on_missing:
        msg = f"Missing required columns: {missing}"
        raise ValueError(msg)

    if missing:
        log.warning("Missing columns", missing=missing)

    return missing
