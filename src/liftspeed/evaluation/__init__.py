"""
Evaluation layer: metrics, reporting and experiment tracking.
"""

from liftspeed.evaluation.metrics import (
    METRICS,
    Metric,
    MetricSet,
    RegressionMetrics,
    compute_metrics,
    compute_residual_stats,
    metric_set,
)

__all__ = [
    "METRICS",
    "Metric",
    "MetricSet",
    "RegressionMetrics",
    "compute_metrics",
    "compute_residual_stats",
    "metric_set",
]
