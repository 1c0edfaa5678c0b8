"""
Tabular summaries for exploratory analysis.
"""

import numpy as np
import pandas as pd

from liftspeed.utils.logging import get_logger

log = get_logger(__name__)

SUMMARY_COLUMNS = [
    "column",
    "type",
    "n_missing",
    "pct_missing",
    "n_unique",
    "mean",
    "sd",
    "min",
    "median",
    "max",
    "top",
]


def summarize_columns(df: pd.DataFrame) -> pd.DataFrame:
    """
    One row per column, in the manner of skimr.

    Numeric columns get mean/sd/min/median/max; other columns get their
    most frequent level in ``top``.
    """
    rows = []
    n = len(df)
    for col in df.columns:
        series = df[col]
        n_missing = int(series.isna().sum())
        row: dict[str, object] = {
            "column": col,
            "type": "numeric" if pd.api.types.is_numeric_dtype(series) else "nominal",
            "n_missing": n_missing,
            "pct_missing": 100.0 * n_missing / n if n else np.nan,
            "n_unique": int(series.nunique(dropna=True)),
            "mean": np.nan,
            "sd": np.nan,
            "min": np.nan,
            "median": np.nan,
            "max": np.nan,
            "top": None,
        }

        if pd.api.types.is_bool_dtype(series):
            row["type"] = "logical"
        elif row["type"] == "numeric":
            values = series.dropna().astype(float)
            if len(values):
                row.update(
                    mean=values.mean(),
                    sd=values.std(),
                    min=values.min(),
                    median=values.median(),
                    max=values.max(),
                )
        if row["type"] != "numeric":
            counts = series.value_counts(dropna=True)
            if len(counts):
                row["top"] = str(counts.index[0])

        rows.append(row)

    return pd.DataFrame(rows, columns=SUMMARY_COLUMNS)


def count_levels(df: pd.DataFrame, column: str, top_n: int | None = 10) -> pd.DataFrame:
    """
    Level counts of one column, most frequent first.

    Missing values count as their own level. With ``top_n``, remaining
    levels are pooled into a final ``(other)`` row.

    Raises:
        ValueError: If the column is not in the frame.
    """
    if column not in df.columns:
        msg = f"Column '{column}' not found in data"
        raise ValueError(msg)

    counts = df[column].value_counts(dropna=False)
    counts.index = counts.index.map(lambda v: "(missing)" if pd.isna(v) else v)
    result = counts.rename_axis(column).reset_index(name="n")

    if top_n is not None and len(result) > top_n:
        rest = int(result["n"].iloc[top_n:].sum())
        result = pd.concat(
            [result.head(top_n), pd.DataFrame({column: ["(other)"], "n": [rest]})],
            ignore_index=True,
        )

    total = result["n"].sum()
    result["prop"] = result["n"] / total if total else np.nan
    return result


def missingness(df: pd.DataFrame) -> pd.DataFrame:
    """Columns with their missing count and share, most missing first."""
    n_missing = df.isna().sum()
    result = pd.DataFrame(
        {
            "column": n_missing.index,
            "n_missing": n_missing.to_numpy(),
            "pct_missing": 100.0 * n_missing.to_numpy() / max(len(df), 1),
        }
    )
    return result.sort_values(
        ["n_missing", "column"], ascending=[False, True]
    ).reset_index(drop=True)


def target_correlations(df: pd.DataFrame, target: str) -> pd.DataFrame:
    """
    Pearson correlation of each numeric column with the target.

    Sorted by absolute correlation; columns without variance get NaN.

    Raises:
        ValueError: If the target is missing or not numeric.
    """
    if target not in df.columns:
        msg = f"Target column '{target}' not found in data"
        raise ValueError(msg)
    if not pd.api.types.is_numeric_dtype(df[target]):
        msg = f"Target column '{target}' must be numeric"
        raise ValueError(msg)

    numeric = df.select_dtypes(include="number")
    numeric = numeric.drop(columns=[target], errors="ignore")
    observed = df[target].notna()
    correlations = numeric.corrwith(df[target].astype(float))
    result = pd.DataFrame(
        {
            "column": correlations.index,
            "correlation": correlations.to_numpy(),
            "n": [int((numeric[c].notna() & observed).sum()) for c in numeric],
        }
    )
    strength = result["correlation"].abs()
    order = strength.sort_values(ascending=False, na_position="last").index
    log.debug("Computed target correlations", target=target, n_columns=len(result))
    return result.loc[order].reset_index(drop=True)
