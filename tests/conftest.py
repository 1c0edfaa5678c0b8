"""Pytest configuration and shared fixtures."""

from collections.abc import Iterator
from pathlib import Path
from typing import Any

import matplotlib

matplotlib.use("Agg")

import numpy as np  # noqa: E402
import pandas as pd  # noqa: E402
import pytest  # noqa: E402
import structlog  # noqa: E402
import yaml  # noqa: E402

BOROUGHS = ["Manhattan", "Brooklyn", "Queens", "Bronx", "Staten Island"]
MANUFACTURERS = ["OTIS", "SCHINDLER", "KONE", " THYSSEN "]


def make_raw_elevators(n: int = 120, seed: int = 7) -> pd.DataFrame:
    """
    Build a raw extract with the published NYC column headers.

    Speed grows with the top floor and capacity. A few rows carry the
    quirks of the real extract: floor labels, missing speeds, an
    implausible speed and an implausible capacity.
    """
    rng = np.random.default_rng(seed)
    floors = rng.integers(2, 60, size=n)
    capacity = rng.choice([2000, 2500, 3000, 3500, 4000, 5000], size=n).astype(float)
    speed = np.round(50 + 8 * floors + 0.05 * capacity + rng.normal(0, 40, size=n))
    speed = speed.clip(min=25)

    speed[[3, 17, 42]] = np.nan
    speed[60] = 9999.0
    capacity[[5, 25, 45, 65, 85]] = np.nan
    capacity[90] = 120_000.0

    return pd.DataFrame(
        {
            "DV_DEVICE_NUMBER": [f"1P{i:04d}" for i in range(n)],
            "BIN": rng.integers(1_000_000, 1_000_040, size=n),
            "BOROUGH": rng.choice(BOROUGHS, size=n),
            "DV_MANUFACTURER": rng.choice(MANUFACTURERS, size=n),
            "DV_SPEED_FPM": speed,
            "DV_CAPACITY_LBS": capacity,
            "DV_FLOOR_FROM": ["B" if i % 10 == 0 else "1" for i in range(n)],
            "DV_FLOOR_TO": floors,
            "DV_APPROVAL_DATE": pd.date_range("1960-01-01", periods=n, freq="90D").strftime(
                "%m/%d/%Y"
            ),
            "DV_DEVICE_STATUS_DESCRIPTION": "ACTIVE",
            "LATITUDE": rng.uniform(40.55, 40.9, size=n),
            "LONGITUDE": rng.uniform(-74.1, -73.75, size=n),
        }
    )


def make_modeling_data(n: int = 120, seed: int = 11) -> pd.DataFrame:
    """Build a cleaned, log-scaled modeling table."""
    rng = np.random.default_rng(seed)
    floor_to = rng.integers(2, 60, size=n).astype(float)
    capacity = np.log(rng.choice([2000, 2500, 3000, 3500, 4000], size=n) + 0.5)
    speed = np.log(60 + 9 * floor_to + rng.normal(0, 30, size=n).clip(-50, 50) + 0.5)

    borough = rng.choice(BOROUGHS, size=n).astype(object)
    borough[[4, 9]] = np.nan
    capacity[[2, 12, 22]] = np.nan

    return pd.DataFrame(
        {
            "speed_fpm": speed,
            "capacity_lbs": capacity,
            "floor_from": rng.choice([1.0, 1.0, 1.0, np.nan], size=n),
            "floor_to": floor_to,
            "borough": borough,
            "elevators_per_building": rng.integers(1, 6, size=n),
            "approval_year": rng.integers(1950, 2020, size=n).astype(float),
        }
    )


@pytest.fixture(autouse=True)
def reset_logging() -> Iterator[None]:
    """Drop logging configured by a test (e.g. bound to a CLI runner stream)."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def raw_elevators() -> pd.DataFrame:
    """Raw elevator records with the original headers."""
    return make_raw_elevators()


@pytest.fixture
def raw_csv(tmp_path: Path, raw_elevators: pd.DataFrame) -> Path:
    """Raw elevator extract written as CSV under a data root."""
    path = tmp_path / "data" / "elevators.csv"
    path.parent.mkdir(parents=True)
    raw_elevators.to_csv(path, index=False)
    return path


@pytest.fixture
def modeling_data() -> pd.DataFrame:
    """Cleaned modeling table."""
    return make_modeling_data()


@pytest.fixture
def config_dict(tmp_path: Path) -> dict[str, Any]:
    """Small but complete project configuration."""
    return {
        "project": "test-elevators",
        "random_state": 42,
        "data": {"root": str(tmp_path / "data"), "elevators": "elevators.csv"},
        "split": {"prop": 0.75, "strata": "speed_fpm"},
        "resampling": {"method": "vfold", "v": 3},
        "models": {
            "baseline_predictors": ["capacity_lbs", "floor_to"],
            "tuned": [
                {"name": "linear_reg", "engine": "glmnet", "tune": ["penalty", "mixture"]},
                {"name": "rand_forest", "args": {"trees": 10}, "tune": ["mtry", "min_n"]},
            ],
        },
        "tuning": {"levels": 2, "metrics": ["rmse", "rsq"], "select_metric": "rmse"},
        "output": {"root": str(tmp_path / "output")},
    }


@pytest.fixture
def config_file(tmp_path: Path, config_dict: dict[str, Any]) -> Path:
    """Configuration YAML written to a folder without a base.yaml."""
    config_dir = tmp_path / "configs"
    config_dir.mkdir()
    path = config_dir / "test.yaml"
    path.write_text(yaml.safe_dump(config_dict), encoding="utf-8")
    return path


@pytest.fixture
def project_config(config_file: Path) -> Any:
    """Loaded ProjectConfig for the test configuration."""
    from liftspeed.config import load_config

    return load_config(config_file)
