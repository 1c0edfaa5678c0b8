"""
Exploratory plots.

Every function draws one figure, writes it as PNG and returns the path.
"""

from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from matplotlib.figure import Figure

from liftspeed.utils.logging import get_logger

log = get_logger(__name__)


def _save(fig: Figure, output_path: Path) -> Path:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    fig.tight_layout()
    fig.savefig(output_path, dpi=150, bbox_inches="tight")
    plt.close(fig)
    log.debug("Saved plot", path=str(output_path))
    return output_path


def _require(df: pd.DataFrame, *columns: str) -> None:
    missing = [c for c in columns if c not in df.columns]
    if missing:
        msg = f"Columns not found in data: {missing}"
        raise ValueError(msg)


def plot_histogram(
    df: pd.DataFrame,
    column: str,
    output_path: Path,
    *,
    bins: int = 50,
) -> Path:
    """Histogram of a numeric column with mean and median lines."""
    _require(df, column)
    values = df[column].dropna().astype(float)

    fig, ax = plt.subplots(figsize=(8, 6))
    ax.hist(values, bins=bins, alpha=0.7, color="skyblue", edgecolor="black")
    if len(values):
        ax.axvline(
            values.mean(),
            color="red",
            linestyle="--",
            linewidth=2,
            label=f"Mean: {values.mean():.2f}",
        )
        ax.axvline(
            values.median(),
            color="green",
            linestyle="--",
            linewidth=2,
            label=f"Median: {values.median():.2f}",
        )
        ax.legend()
    ax.set_xlabel(column)
    ax.set_ylabel("Frequency")
    ax.set_title(f"{column} distribution (n = {len(values)})")
    ax.grid(True, alpha=0.3)
    return _save(fig, output_path)


def plot_scatter(
    df: pd.DataFrame,
    x: str,
    y: str,
    output_path: Path,
    *,
    fit_line: bool = True,
) -> Path:
    """Scatterplot of y against x, optionally with a least-squares line."""
    _require(df, x, y)
    frame = df[[x, y]].dropna().astype(float)

    fig, ax = plt.subplots(figsize=(8, 6))
    ax.scatter(frame[x], frame[y], alpha=0.3, s=15, c="steelblue", edgecolors="none")

    if fit_line and len(frame) > 1 and frame[x].nunique() > 1:
        slope, intercept = np.polyfit(frame[x], frame[y], 1)
        x_line = np.linspace(frame[x].min(), frame[x].max(), 100)
        ax.plot(
            x_line,
            slope * x_line + intercept,
            "r--",
            alpha=0.8,
            linewidth=2,
            label="Linear fit",
        )
        ax.legend(loc="lower right")

    ax.set_xlabel(x)
    ax.set_ylabel(y)
    ax.set_title(f"{y} vs {x}")
    ax.grid(True, alpha=0.3)
    return _save(fig, output_path)


def plot_boxplot_by(
    df: pd.DataFrame,
    value: str,
    group: str,
    output_path: Path,
    *,
    max_groups: int = 12,
) -> Path:
    """Boxplots of a numeric column per level of a nominal column."""
    _require(df, value, group)
    frame = df[[value, group]].dropna()
    levels = frame[group].value_counts().head(max_groups).index

    data = [frame.loc[frame[group] == level, value].astype(float) for level in levels]
    fig, ax = plt.subplots(figsize=(max(8, len(levels) * 0.8), 6))
    if data:
        boxes = ax.boxplot(data, patch_artist=True)
        for box in boxes["boxes"]:
            box.set_facecolor("lightgreen")
        ax.set_xticks(range(1, len(levels) + 1))
        ax.set_xticklabels([str(level) for level in levels], rotation=45, ha="right")
    ax.set_xlabel(group)
    ax.set_ylabel(value)
    ax.set_title(f"{value} by {group}")
    ax.grid(True, alpha=0.3)
    return _save(fig, output_path)


def plot_locations(
    df: pd.DataFrame,
    output_path: Path,
    *,
    color_by: str | None = None,
    latitude: str = "latitude",
    longitude: str = "longitude",
) -> Path:
    """Map-like scatter of device coordinates, colored by a numeric column."""
    _require(df, latitude, longitude)
    columns = [longitude, latitude] + ([color_by] if color_by else [])
    frame = df[columns].dropna()

    fig, ax = plt.subplots(figsize=(8, 8))
    if color_by:
        points = ax.scatter(
            frame[longitude],
            frame[latitude],
            c=frame[color_by],
            s=4,
            alpha=0.5,
            cmap="viridis",
        )
        fig.colorbar(points, ax=ax, label=color_by)
    else:
        ax.scatter(frame[longitude], frame[latitude], s=4, alpha=0.5, c="steelblue")

    ax.set_xlabel(longitude)
    ax.set_ylabel(latitude)
    ax.set_aspect("equal", adjustable="datalim")
    ax.set_title(f"Device locations (n = {len(frame)})")
    return _save(fig, output_path)


def generate_eda_plots(
    df: pd.DataFrame,
    target: str,
    output_dir: Path,
    *,
    max_nominal_levels: int = 30,
) -> list[Path]:
    """
    Write the standard set of exploratory plots.

    A histogram of the target, a scatter of the target against every
    other numeric column, a boxplot for every nominal column with at most
    ``max_nominal_levels`` levels, and a location map when coordinates are
    present.

    Returns:
        Paths of the written PNG files.
    """
    _require(df, target)
    paths = [plot_histogram(df, target, output_dir / f"hist_{target}.png")]

    numeric = [c for c in df.select_dtypes(include="number").columns if c != target]
    for col in numeric:
        if col in ("latitude", "longitude"):
            continue
        path = output_dir / f"scatter_{target}_{col}.png"
        paths.append(plot_scatter(df, col, target, path))

    nominal = df.select_dtypes(include=["object", "category", "string"]).columns
    for col in nominal:
        if 1 < df[col].nunique() <= max_nominal_levels:
            path = output_dir / f"box_{target}_{col}.png"
            paths.append(plot_boxplot_by(df, target, col, path))

    if {"latitude", "longitude"} <= set(df.columns):
        paths.append(plot_locations(df, output_dir / "locations.png", color_by=target))

    log.info("Generated EDA plots", n_plots=len(paths), output_dir=str(output_dir))
    return paths
