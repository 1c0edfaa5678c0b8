"""
Resampling: v-fold cross-validation and bootstraps.

Resamples are computed once, up front, and stored as positional index
pairs. The Resamples object doubles as a scikit-learn CV splitter, so it
can be handed to cross_validate or GridSearchCV directly.
"""

import time
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any

import numpy as np
import pandas as pd
from sklearn.base import clone
from sklearn.model_selection import KFold, StratifiedKFold, cross_validate

from liftspeed.config.settings import ResamplingConfig, ResamplingMethod
from liftspeed.evaluation.metrics import MetricSet, metric_set
from liftspeed.modeling.data import make_strata
from liftspeed.modeling.workflow import Workflow
from liftspeed.utils.logging import get_logger, log_context

log = get_logger(__name__)


@dataclass
class Resamples:
    """
    A set of analysis/assessment partitions of one dataset.

    Attributes:
        data: The resampled dataset (usually the training set).
        splits: (analysis positions, assessment positions) per resample.
        ids: Resample labels, e.g. 'Fold01' or 'Repeat2/Fold03'.
        method: 'vfold' or 'bootstrap'.
    """

    data: pd.DataFrame
    splits: list[tuple[np.ndarray, np.ndarray]]
    ids: list[str]
    method: str

    def split(
        self, X: Any = None, y: Any = None, groups: Any = None
    ) -> Iterator[tuple[np.ndarray, np.ndarray]]:
        """Yield (train, test) positions; scikit-learn splitter protocol."""
        if X is not None and len(X) != len(self.data):
            msg = (
                f"Resamples were built on {len(self.data)} rows "
                f"but got {len(X)} rows to split"
            )
            raise ValueError(msg)
        yield from self.splits

    def get_n_splits(self, X: Any = None, y: Any = None, groups: Any = None) -> int:
        """Number of resamples; scikit-learn splitter protocol."""
        return len(self.splits)

    def __len__(self) -> int:
        return len(self.splits)

    def analysis(self, i: int) -> pd.DataFrame:
        """Analysis (fitting) rows of resample i."""
        return self.data.iloc[self.splits[i][0]]

    def assessment(self, i: int) -> pd.DataFrame:
        """Assessment (held-out) rows of resample i."""
        return self.data.iloc[self.splits[i][1]]

    def summary(self) -> pd.DataFrame:
        """One row per resample with analysis/assessment sizes."""
        return pd.DataFrame(
            {
                "id": self.ids,
                "n_analysis": [len(a) for a, _ in self.splits],
                "n_assessment": [len(b) for _, b in self.splits],
            }
        )


def vfold_cv(
    data: pd.DataFrame,
    v: int = 10,
    repeats: int = 1,
    *,
    strata: str | None = None,
    breaks: int = 4,
    random_state: int | None = None,
) -> Resamples:
    """
    V-fold cross-validation.

    Args:
        data: Data to resample.
        v: Number of folds.
        repeats: Number of times the fold assignment is repeated.
        strata: Optional column to stratify fold assignment on.
        breaks: Quantile bins for numeric strata.
        random_state: Seed for reproducibility.

    Raises:
        ValueError: If v < 2 or v exceeds the number of rows.
    """
    if v < 2:
        msg = f"v must be at least 2, got: {v}"
        raise ValueError(msg)
    if v > len(data):
        msg = f"v ({v}) cannot exceed the number of rows ({len(data)})"
        raise ValueError(msg)
    if repeats < 1:
        msg = f"repeats must be at least 1, got: {repeats}"
        raise ValueError(msg)
    if strata is not None and strata not in data.columns:
        msg = f"Strata column '{strata}' not found in data"
        raise ValueError(msg)

    data = data.reset_index(drop=True)
    labels = make_strata(data[strata], breaks) if strata is not None else None
    if labels is not None and labels.value_counts().min() < v:
        log.warning("Strata smaller than v, folds are not stratified", strata=strata)
        labels = None

    rng = np.random.RandomState(random_state)
    splits: list[tuple[np.ndarray, np.ndarray]] = []
    ids: list[str] = []
    for repeat in range(1, repeats + 1):
        seed = rng.randint(np.iinfo(np.int32).max)
        if labels is not None:
            splitter = StratifiedKFold(n_splits=v, shuffle=True, random_state=seed)
            folds = splitter.split(np.zeros(len(data)), labels)
        else:
            folds = KFold(n_splits=v, shuffle=True, random_state=seed).split(data)

        for fold, (analysis, assessment) in enumerate(folds, start=1):
            splits.append((analysis, assessment))
            fold_id = f"Fold{fold:02d}"
            ids.append(f"Repeat{repeat}/{fold_id}" if repeats > 1 else fold_id)

    log.info("Created v-fold resamples", v=v, repeats=repeats, n=len(data))
    return Resamples(data=data, splits=splits, ids=ids, method="vfold")


def bootstraps(
    data: pd.DataFrame,
    times: int = 25,
    *,
    random_state: int | None = None,
) -> Resamples:
    """
    Bootstrap resamples; the assessment set is the out-of-bag rows.

    Raises:
        ValueError: If times < 1 or the data has fewer than two rows.
    """
    if times < 1:
        msg = f"times must be at least 1, got: {times}"
        raise ValueError(msg)
    if len(data) < 2:
        msg = "Bootstrapping needs at least two rows"
        raise ValueError(msg)

    data = data.reset_index(drop=True)
    n = len(data)
    rng = np.random.default_rng(random_state)
    splits: list[tuple[np.ndarray, np.ndarray]] = []
    while len(splits) < times:
        analysis = rng.integers(0, n, size=n)
        assessment = np.setdiff1d(np.arange(n), analysis)
        if len(assessment) == 0:
            # Every row drawn at least once: nothing to assess on
            continue
        splits.append((analysis, assessment))

    width = max(2, len(str(times)))
    ids = [f"Bootstrap{i:0{width}d}" for i in range(1, times + 1)]

    log.info("Created bootstrap resamples", times=times, n=n)
    return Resamples(data=data, splits=splits, ids=ids, method="bootstrap")


def summarize_metrics(
    per_resample: pd.DataFrame, by: list[str] | None = None
) -> pd.DataFrame:
    """
    Average per-resample metrics.

    Args:
        per_resample: Frame with columns ``id``, ``.metric``, ``.estimate``
            (plus any ``by`` columns).
        by: Extra grouping columns (e.g. tuning parameters and ``.config``).

    Returns:
        Frame with ``.metric``, ``mean``, ``n``, ``std_err`` per group.
    """
    keys = [*(by or []), ".metric"]
    grouped = per_resample.groupby(keys, sort=False, dropna=False)[".estimate"]
    summary = grouped.agg(mean="mean", n="count", std="std").reset_index()
    summary["std_err"] = summary["std"] / np.sqrt(summary["n"])
    summary = summary.drop(columns="std")
    summary.insert(len(keys), ".estimator", "standard")
    return summary


@dataclass
class ResampleResults:
    """
    Performance estimates of one workflow across resamples.

    Attributes:
        workflow: The evaluated workflow.
        metrics: Per-resample metrics (``id``, ``.metric``, ``.estimate``).
        predictions: Out-of-sample predictions (if saved).
        fit_time_s: Total wall time.
    """

    workflow: Workflow
    metrics: pd.DataFrame
    predictions: pd.DataFrame | None = None
    fit_time_s: float = 0.0

    def collect_metrics(self, summarize: bool = True) -> pd.DataFrame:
        """Averaged (default) or per-resample metrics."""
        if not summarize:
            return self.metrics.copy()
        return summarize_metrics(self.metrics)

    def collect_predictions(self) -> pd.DataFrame:
        """
        Out-of-sample predictions with ``id``, ``.row``, ``.pred`` and the outcome.

        Raises:
            ValueError: If predictions were not saved.
        """
        if self.predictions is None:
            msg = "Predictions were not saved; rerun fit_resamples(save_pred=True)"
            raise ValueError(msg)
        return self.predictions.copy()


def fit_resamples(
    workflow: Workflow,
    resamples: Resamples,
    metrics: MetricSet | None = None,
    *,
    save_pred: bool = False,
    n_jobs: int | None = None,
) -> ResampleResults:
    """
    Fit a workflow on every analysis set and evaluate on the assessment set.

    Args:
        workflow: Workflow to evaluate (no tuning placeholders).
        resamples: Resamples of the training data.
        metrics: Metrics to compute (default: rmse, rsq).
        save_pred: Keep the assessment-set predictions.
        n_jobs: Parallel jobs for scikit-learn.

    Returns:
        ResampleResults.
    """
    metrics = metrics or metric_set()
    spec = workflow._check_complete()
    if spec.tunable():
        msg = f"Arguments {spec.tunable()} are marked for tuning; use tune_grid()"
        raise ValueError(msg)

    X, y = workflow.xy(resamples.data)
    if len(X) != len(resamples.data):
        msg = (
            "Formula workflows with incomplete rows cannot be resampled; "
            "use a recipe that imputes missing values"
        )
        raise ValueError(msg)

    start = time.perf_counter()
    with log_context(model=spec.model, engine=spec.engine):
        log.info("Fitting resamples", n_resamples=len(resamples))
        scores = cross_validate(
            workflow.to_pipeline(),
            X,
            y,
            cv=resamples,
            scoring=metrics.scorers(),
            n_jobs=n_jobs,
            error_score="raise",
        )

    rows = []
    for metric in metrics.metrics:
        values = metric.from_score(scores[f"test_{metric.name}"])
        for resample_id, value in zip(resamples.ids, values):
            rows.append(
                {"id": resample_id, ".metric": metric.name, ".estimate": float(value)}
            )
    per_resample = pd.DataFrame(rows)

    predictions = _resample_predictions(workflow, resamples, X, y) if save_pred else None
    elapsed = time.perf_counter() - start

    summary = summarize_metrics(per_resample)
    log.info(
        "Resampling complete",
        **{row[".metric"]: f"{row['mean']:.4f}" for _, row in summary.iterrows()},
        time_s=f"{elapsed:.1f}",
    )
    return ResampleResults(
        workflow=workflow,
        metrics=per_resample,
        predictions=predictions,
        fit_time_s=elapsed,
    )


def _resample_predictions(
    workflow: Workflow,
    resamples: Resamples,
    X: pd.DataFrame,
    y: pd.Series,
) -> pd.DataFrame:
    """Refit per resample and collect assessment-set predictions."""
    template = workflow.to_pipeline()
    frames = []
    for resample_id, (analysis, assessment) in zip(resamples.ids, resamples.splits):
        pipeline = clone(template).fit(X.iloc[analysis], y.iloc[analysis])
        frames.append(
            pd.DataFrame(
                {
                    "id": resample_id,
                    ".row": assessment,
                    ".pred": pipeline.predict(X.iloc[assessment]),
                    workflow.outcome: y.iloc[assessment].to_numpy(),
                }
            )
        )
    return pd.concat(frames, ignore_index=True)


def resamples_from_config(
    data: pd.DataFrame,
    config: ResamplingConfig,
    *,
    random_state: int | None = None,
) -> Resamples:
    """Build v-fold or bootstrap resamples as configured."""
    if config.method == ResamplingMethod.BOOTSTRAP:
        return bootstraps(data, times=config.times, random_state=random_state)
    return vfold_cv(
        data,
        v=config.v,
        repeats=config.repeats,
        strata=config.strata,
        random_state=random_state,
    )
