"""
Evaluation metrics for regression models.

Provides named metrics, metric sets that produce tidy result frames, and
scikit-learn scorers so the same metrics drive resampling and grid search.
"""

from collections.abc import Callable
from dataclasses import dataclass

import numpy as np
import pandas as pd
from sklearn.metrics import (
    make_scorer,
    mean_absolute_error,
    mean_absolute_percentage_error,
    mean_squared_error,
    r2_score,
)

from liftspeed.utils.logging import get_logger

log = get_logger(__name__)


def rmse(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    """Root mean squared error."""
    return float(np.sqrt(mean_squared_error(y_true, y_pred)))


def rsq(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    """
    Squared Pearson correlation between observed and predicted values.

    Unlike the traditional R² this is always in [0, 1]. Constant inputs
    have no defined correlation and yield NaN.
    """
    y_true = np.asarray(y_true, dtype=float).ravel()
    y_pred = np.asarray(y_pred, dtype=float).ravel()
    if len(y_true) < 2 or np.std(y_true) == 0 or np.std(y_pred) == 0:
        return float("nan")
    return float(np.corrcoef(y_true, y_pred)[0, 1] ** 2)


def rsq_trad(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    """Traditional R² (1 - SSE/SST); can be negative."""
    return float(r2_score(y_true, y_pred))


def mae(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    """Mean absolute error."""
    return float(mean_absolute_error(y_true, y_pred))


def mape(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    """Mean absolute percentage error, in percent."""
    return float(mean_absolute_percentage_error(y_true, y_pred) * 100.0)


@dataclass(frozen=True)
class Metric:
    """
    A named regression metric.

    Attributes:
        name: Metric name used in result frames.
        func: Callable (y_true, y_pred) -> float.
        direction: 'minimize' or 'maximize'.
    """

    name: str
    func: Callable[[np.ndarray, np.ndarray], float]
    direction: str

    @property
    def greater_is_better(self) -> bool:
        """Whether larger values are better."""
        return self.direction == "maximize"

    def scorer(self) -> Callable[..., float]:
        """Wrap as a scikit-learn scorer (sign-flipped when minimizing)."""
        return make_scorer(self.func, greater_is_better=self.greater_is_better)

    def from_score(self, score: float | np.ndarray) -> float | np.ndarray:
        """Undo the scorer sign flip to recover the metric value."""
        return score if self.greater_is_better else -score


METRICS: dict[str, Metric] = {
    "rmse": Metric("rmse", rmse, "minimize"),
    "rsq": Metric("rsq", rsq, "maximize"),
    "rsq_trad": Metric("rsq_trad", rsq_trad, "maximize"),
    "mae": Metric("mae", mae, "minimize"),
    "mape": Metric("mape", mape, "minimize"),
}


class MetricSet:
    """
    An ordered collection of metrics evaluated together.

    Calling the set returns a tidy frame with one row per metric:

        .metric  .estimator  .estimate
        rmse     standard    0.412
        rsq      standard    0.655
    """

    def __init__(self, metrics: list[Metric]) -> None:
        if not metrics:
            msg = "A metric set needs at least one metric"
            raise ValueError(msg)
        self.metrics = metrics

    @property
    def names(self) -> list[str]:
        """Metric names in order."""
        return [m.name for m in self.metrics]

    def get(self, name: str) -> Metric:
        """Look up a metric of this set by name."""
        for metric in self.metrics:
            if metric.name == name:
                return metric
        msg = f"Metric '{name}' is not part of this set ({self.names})"
        raise KeyError(msg)

    def scorers(self) -> dict[str, Callable[..., float]]:
        """Scorer dictionary for cross_validate / GridSearchCV."""
        return {m.name: m.scorer() for m in self.metrics}

    def __call__(self, y_true: np.ndarray, y_pred: np.ndarray) -> pd.DataFrame:
        y_true = np.asarray(y_true, dtype=float).ravel()
        y_pred = np.asarray(y_pred, dtype=float).ravel()
        complete = ~(np.isnan(y_true) | np.isnan(y_pred))
        if not complete.all():
            log.debug("Dropping incomplete pairs from metrics", n=int((~complete).sum()))
        y_true, y_pred = y_true[complete], y_pred[complete]

        rows = []
        for metric in self.metrics:
            estimate = metric.func(y_true, y_pred) if len(y_true) else float("nan")
            rows.append(
                {".metric": metric.name, ".estimator": "standard", ".estimate": estimate}
            )
        return pd.DataFrame(rows)

    def __repr__(self) -> str:
        return f"MetricSet({', '.join(self.names)})"


def metric_set(*names: str) -> MetricSet:
    """
    Build a metric set from metric names.

    Args:
        *names: Metric names (default: rmse, rsq).

    Raises:
        KeyError: If a metric name is unknown.
    """
    names = names or ("rmse", "rsq")
    unknown = [n for n in names if n not in METRICS]
    if unknown:
        available = ", ".join(METRICS)
        msg = f"Unknown metric(s) {unknown}. Available: {available}"
        raise KeyError(msg)
    return MetricSet([METRICS[n] for n in dict.fromkeys(names)])


@dataclass(frozen=True)
class RegressionMetrics:
    """
    Standard regression metrics for a set of predictions.

    Attributes:
        rmse: Root Mean Squared Error
        rsq: Squared correlation
        rsq_trad: Traditional R²
        mae: Mean Absolute Error
        n_samples: Number of samples
    """

    rmse: float
    rsq: float
    rsq_trad: float
    mae: float
    n_samples: int

    def to_dict(self) -> dict[str, float]:
        """Convert to dictionary."""
        return {
            "rmse": self.rmse,
            "rsq": self.rsq,
            "rsq_trad": self.rsq_trad,
            "mae": self.mae,
            "n_samples": self.n_samples,
        }

    def __str__(self) -> str:
        """String representation."""
        return (
            f"RMSE={self.rmse:.4f}, R²(cor)={self.rsq:.4f}, "
            f"R²={self.rsq_trad:.4f}, MAE={self.mae:.4f}"
        )


def compute_metrics(y_true: np.ndarray, y_pred: np.ndarray) -> RegressionMetrics:
    """
    Compute regression metrics.

    Args:
        y_true: True values.
        y_pred: Predicted values.

    Returns:
        RegressionMetrics object (all zeros for empty input).
    """
    y_true = np.asarray(y_true, dtype=float).ravel()
    y_pred = np.asarray(y_pred, dtype=float).ravel()

    if len(y_true) == 0 or len(y_pred) == 0:
        log.warning("Empty arrays provided for metrics")
        return RegressionMetrics(rmse=0.0, rsq=0.0, rsq_trad=0.0, mae=0.0, n_samples=0)

    metrics = RegressionMetrics(
        rmse=rmse(y_true, y_pred),
        rsq=rsq(y_true, y_pred),
        rsq_trad=rsq_trad(y_true, y_pred),
        mae=mae(y_true, y_pred),
        n_samples=len(y_true),
    )

    log.debug("Computed metrics", **metrics.to_dict())
    return metrics


def compute_residual_stats(y_true: np.ndarray, y_pred: np.ndarray) -> dict[str, float]:
    """Summary statistics of residuals (observed - predicted)."""
    residuals = np.asarray(y_true, dtype=float) - np.asarray(y_pred, dtype=float)

    return {
        "residual_mean": float(np.mean(residuals)),
        "residual_std": float(np.std(residuals)),
        "residual_median": float(np.median(residuals)),
        "residual_min": float(np.min(residuals)),
        "residual_max": float(np.max(residuals)),
    }
