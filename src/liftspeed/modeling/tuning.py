"""
Hyperparameter tuning by grid search over resamples.

Parameter ranges follow common defaults for each main argument. Log-scale
ranges are given in log10 units (``penalty`` in [-10, 0] means 1e-10 to 1).
Every candidate is evaluated on every resample with GridSearchCV; the
results are reshaped into tidy frames for inspection and selection.
"""

import time
from dataclasses import dataclass
from typing import Any

import numpy as np
import pandas as pd
from sklearn.base import clone
from sklearn.model_selection import GridSearchCV

from liftspeed.evaluation.metrics import MetricSet, metric_set
from liftspeed.modeling.data import DataSplit
from liftspeed.modeling.models import ModelSpec
from liftspeed.modeling.resampling import Resamples, summarize_metrics
from liftspeed.modeling.workflow import (
    PREPROCESSOR_STEP,
    FittedWorkflow,
    Workflow,
    finalize_workflow,
)
from liftspeed.utils.logging import get_logger, log_context

log = get_logger(__name__)


@dataclass(frozen=True)
class ParamRange:
    """
    Search range of one tuning argument.

    Attributes:
        lower: Lower bound (log10 units if log_scale).
        upper: Upper bound (log10 units if log_scale).
        integer: Whether values are whole numbers.
        log_scale: Whether bounds are log10 exponents.
        values: Fixed candidate values for qualitative arguments.
    """

    lower: float = 0.0
    upper: float = 1.0
    integer: bool = False
    log_scale: bool = False
    values: tuple[Any, ...] | None = None

    def regular(self, levels: int) -> list[Any]:
        """Evenly spaced candidate values."""
        if self.values is not None:
            return list(self.values)
        points = np.linspace(self.lower, self.upper, levels)
        return self._finish(points)

    def sample(self, size: int, rng: np.random.Generator) -> list[Any]:
        """Uniformly sampled candidate values."""
        if self.values is not None:
            return list(rng.choice(np.array(self.values, dtype=object), size=size))
        points = rng.uniform(self.lower, self.upper, size=size)
        return self._finish(points, dedupe=False)

    def _finish(self, points: np.ndarray, *, dedupe: bool = True) -> list[Any]:
        if self.log_scale:
            points = np.power(10.0, points)
        if self.integer:
            ints = [int(round(p)) for p in points]
            return list(dict.fromkeys(ints)) if dedupe else ints
        return [float(p) for p in points]


# Default ranges per main argument
PARAMETER_RANGES: dict[str, ParamRange] = {
    "penalty": ParamRange(-10.0, 0.0, log_scale=True),
    "mixture": ParamRange(0.0, 1.0),
    "trees": ParamRange(1, 2000, integer=True),
    "min_n": ParamRange(2, 40, integer=True),
    "tree_depth": ParamRange(1, 15, integer=True),
    "learn_rate": ParamRange(-10.0, -1.0, log_scale=True),
    "sample_size": ParamRange(0.1, 1.0),
    "loss_reduction": ParamRange(-10.0, 1.5, log_scale=True),
    "cost_complexity": ParamRange(-10.0, -1.0, log_scale=True),
    "neighbors": ParamRange(1, 10, integer=True),
    "weight_func": ParamRange(values=("uniform", "distance")),
}


def parameter_ranges(
    spec: ModelSpec,
    n_predictors: int | None = None,
    overrides: dict[str, tuple[float, float]] | None = None,
) -> dict[str, ParamRange]:
    """
    Search ranges for the tuning arguments of a model specification.

    Args:
        spec: Model specification with tune() placeholders.
        n_predictors: Number of predictors, needed to bound ``mtry``.
        overrides: Per-argument (lower, upper) replacing the defaults,
            in the same units (log10 for log-scale arguments).

    Raises:
        ValueError: If ``mtry`` is tuned without n_predictors, or an
            argument has no known range.
    """
    overrides = overrides or {}
    ranges: dict[str, ParamRange] = {}
    for arg in spec.tunable():
        if arg == "mtry":
            if n_predictors is None:
                msg = "Tuning mtry needs the number of predictors to set its range"
                raise ValueError(msg)
            base = ParamRange(1, max(1, n_predictors), integer=True)
        elif arg in PARAMETER_RANGES:
            base = PARAMETER_RANGES[arg]
        else:
            msg = f"No default range for tuning argument '{arg}'"
            raise ValueError(msg)

        if arg in overrides:
            lower, upper = overrides[arg]
            base = ParamRange(
                lower, upper, integer=base.integer, log_scale=base.log_scale
            )
        ranges[arg] = base
    return ranges


def count_model_predictors(workflow: Workflow, resamples: Resamples) -> int:
    """
    Smallest number of columns the model sees across analysis sets.

    Used to bound ``mtry``: the preprocessor is fitted on every analysis
    set, since encoding and zero-variance filtering can yield different
    column counts per resample.
    """
    X, y = workflow.xy(resamples.data)
    preprocessor = workflow.to_pipeline().named_steps[PREPROCESSOR_STEP]
    counts = []
    for analysis, _ in resamples.splits:
        fitted = clone(preprocessor).fit(X.iloc[analysis], y.iloc[analysis])
        counts.append(len(fitted.get_feature_names_out()))
    return max(1, min(counts))


def grid_regular(
    ranges: dict[str, ParamRange], levels: int | dict[str, int] = 3
) -> pd.DataFrame:
    """
    Full factorial grid of evenly spaced values.

    Args:
        ranges: Argument ranges (see parameter_ranges).
        levels: Values per argument (one number or per-argument dict).

    Returns:
        Frame with one column per argument and one row per candidate.
    """
    if not ranges:
        msg = "Cannot build a grid without parameters"
        raise ValueError(msg)

    axes = {}
    for arg, rng in ranges.items():
        n = levels.get(arg, 3) if isinstance(levels, dict) else levels
        axes[arg] = rng.regular(n)

    index = pd.MultiIndex.from_product(list(axes.values()), names=list(axes))
    grid = index.to_frame(index=False)
    log.debug("Built regular grid", n_candidates=len(grid), params=list(axes))
    return grid


def grid_random(
    ranges: dict[str, ParamRange],
    size: int = 10,
    *,
    random_state: int | None = None,
) -> pd.DataFrame:
    """
    Random grid of (up to) ``size`` distinct candidates.

    Duplicate candidates, which can occur for integer or qualitative
    arguments, are removed.
    """
    if not ranges:
        msg = "Cannot build a grid without parameters"
        raise ValueError(msg)

    rng = np.random.default_rng(random_state)
    grid = pd.DataFrame({arg: r.sample(size, rng) for arg, r in ranges.items()})
    grid = grid.drop_duplicates().reset_index(drop=True)
    log.debug("Built random grid", n_candidates=len(grid), params=list(ranges))
    return grid


def _config_labels(n: int) -> list[str]:
    width = len(str(n))
    return [f"Preprocessor1_Model{i:0{width}d}" for i in range(1, n + 1)]


@dataclass
class TuneResults:
    """
    Resampled performance of every grid candidate.

    Attributes:
        workflow: The tuned workflow (with tune() placeholders).
        grid: Candidate grid with a ``.config`` label column.
        metrics: Per-resample metrics (parameters, ``.config``, ``id``,
            ``.metric``, ``.estimate``).
        metric_set: Metrics that were computed.
        fit_time_s: Total wall time.
    """

    workflow: Workflow
    grid: pd.DataFrame
    metrics: pd.DataFrame
    metric_set: MetricSet
    fit_time_s: float = 0.0

    @property
    def params(self) -> list[str]:
        """Tuned argument names."""
        return [c for c in self.grid.columns if c != ".config"]

    def collect_metrics(self, summarize: bool = True) -> pd.DataFrame:
        """Averaged (default) or per-resample metrics per candidate."""
        if not summarize:
            return self.metrics.copy()
        return summarize_metrics(self.metrics, by=[*self.params, ".config"])

    def _default_metric(self, metric: str | None) -> str:
        name = metric or self.metric_set.names[0]
        self.metric_set.get(name)  # raises KeyError for unknown metrics
        return name

    def show_best(self, metric: str | None = None, n: int = 5) -> pd.DataFrame:
        """
        Top candidates for one metric.

        Args:
            metric: Metric to rank by (default: first metric of the set).
            n: Number of candidates.
        """
        name = self._default_metric(metric)
        summary = self.collect_metrics()
        summary = summary[summary[".metric"] == name]
        ascending = not self.metric_set.get(name).greater_is_better
        return (
            summary.sort_values("mean", ascending=ascending, na_position="last")
            .head(n)
            .reset_index(drop=True)
        )

    def select_best(self, metric: str | None = None) -> dict[str, Any]:
        """
        Parameters of the best candidate.

        Returns:
            Argument name -> value, plus ``.config``.
        """
        best = self.show_best(metric, n=1).iloc[0]
        selected = {p: _unwrap(best[p]) for p in self.params}
        selected[".config"] = best[".config"]
        log.info(
            "Selected best candidate",
            metric=self._default_metric(metric),
            config=selected[".config"],
            params={p: selected[p] for p in self.params},
        )
        return selected

    def select_by_one_std_err(
        self, metric: str | None = None, *order: str
    ) -> dict[str, Any]:
        """
        Simplest candidate within one standard error of the best.

        Args:
            metric: Metric to rank by.
            *order: Arguments sorted to define "simplest", ascending;
                prefix with ``-`` for descending (e.g. ``"-penalty"``).
        """
        name = self._default_metric(metric)
        summary = self.collect_metrics()
        summary = summary[summary[".metric"] == name].dropna(subset=["mean"])
        greater_is_better = self.metric_set.get(name).greater_is_better

        best = summary.loc[
            summary["mean"].idxmax() if greater_is_better else summary["mean"].idxmin()
        ]
        std_err = 0.0 if pd.isna(best["std_err"]) else best["std_err"]
        if greater_is_better:
            within = summary[summary["mean"] >= best["mean"] - std_err]
        else:
            within = summary[summary["mean"] <= best["mean"] + std_err]

        by = [o.lstrip("-") for o in order] or self.params
        ascending = [not o.startswith("-") for o in order] or [True] * len(by)
        chosen = within.sort_values(by, ascending=ascending).iloc[0]

        selected = {p: _unwrap(chosen[p]) for p in self.params}
        selected[".config"] = chosen[".config"]
        return selected


def _unwrap(value: Any) -> Any:
    return value.item() if isinstance(value, np.generic) else value


def tune_grid(
    workflow: Workflow,
    resamples: Resamples,
    grid: pd.DataFrame | int | None = None,
    metrics: MetricSet | None = None,
    *,
    ranges: dict[str, ParamRange] | None = None,
    n_jobs: int | None = None,
) -> TuneResults:
    """
    Evaluate every grid candidate on every resample.

    Args:
        workflow: Workflow whose model has tune() arguments.
        resamples: Resamples of the training data.
        grid: Candidate frame (one column per tuned argument), or an
            integer number of levels for a regular grid (default 3).
        metrics: Metrics to compute (default: rmse, rsq).
        ranges: Ranges used when the grid is generated here.
        n_jobs: Parallel jobs for scikit-learn.

    Returns:
        TuneResults.

    Raises:
        ValueError: If nothing is marked for tuning or the grid columns do
            not match the tuned arguments.
    """
    spec = workflow._check_complete()
    metrics = metrics or metric_set()
    tunable = spec.tunable()
    if not tunable:
        msg = "No arguments are marked for tuning; use fit_resamples() instead"
        raise ValueError(msg)

    X, y = workflow.xy(resamples.data)
    if len(X) != len(resamples.data):
        msg = "Formula workflows with incomplete rows cannot be tuned; use a recipe"
        raise ValueError(msg)

    if grid is None or isinstance(grid, int):
        if ranges is None:
            n_predictors = count_model_predictors(workflow, resamples)
            ranges = parameter_ranges(spec, n_predictors=n_predictors)
        grid = grid_regular(ranges, levels=grid or 3)

    unexpected = sorted(set(grid.columns) - set(tunable) - {".config"})
    missing = sorted(set(tunable) - set(grid.columns))
    if unexpected or missing:
        msg = (
            f"Grid columns do not match tuned arguments {tunable}: "
            f"missing {missing}, unexpected {unexpected}"
        )
        raise ValueError(msg)

    grid = grid[tunable].reset_index(drop=True)
    grid[".config"] = _config_labels(len(grid))

    param_grid = [
        {
            workflow.param_name(arg): [spec.convert_value(arg, _unwrap(row[arg]))]
            for arg in tunable
        }
        for _, row in grid.iterrows()
    ]

    start = time.perf_counter()
    with log_context(model=spec.model, engine=spec.engine):
        log.info(
            "Tuning grid",
            n_candidates=len(grid),
            n_resamples=len(resamples),
            params=tunable,
        )
        search = GridSearchCV(
            workflow.to_pipeline(),
            param_grid=param_grid,
            scoring=metrics.scorers(),
            refit=False,
            cv=resamples,
            n_jobs=n_jobs,
            error_score=np.nan,
        )
        search.fit(X, y)
    elapsed = time.perf_counter() - start

    per_resample = _reshape_cv_results(search.cv_results_, grid, resamples, metrics)
    results = TuneResults(
        workflow=workflow,
        grid=grid,
        metrics=per_resample,
        metric_set=metrics,
        fit_time_s=elapsed,
    )

    best = results.show_best(n=1)
    if not best.empty:
        log.info(
            "Tuning complete",
            metric=best.iloc[0][".metric"],
            best=f"{best.iloc[0]['mean']:.4f}",
            config=best.iloc[0][".config"],
            time_s=f"{elapsed:.1f}",
        )
    return results


def _reshape_cv_results(
    cv_results: dict[str, Any],
    grid: pd.DataFrame,
    resamples: Resamples,
    metrics: MetricSet,
) -> pd.DataFrame:
    """Turn GridSearchCV's wide cv_results_ into a long per-resample frame."""
    rows = []
    for candidate, (_, params) in enumerate(grid.iterrows()):
        for split_idx, resample_id in enumerate(resamples.ids):
            for metric in metrics.metrics:
                score = cv_results[f"split{split_idx}_test_{metric.name}"][candidate]
                rows.append(
                    {
                        **{p: _unwrap(params[p]) for p in grid.columns},
                        "id": resample_id,
                        ".metric": metric.name,
                        ".estimate": float(metric.from_score(score)),
                    }
                )
    return pd.DataFrame(rows)


@dataclass
class LastFitResult:
    """
    Final fit on the full training set, evaluated once on the test set.

    Attributes:
        fitted: Workflow fitted on the training set.
        predictions: Test-set rows with ``.row``, ``.pred`` and the outcome.
        metrics: Test-set metrics (``.metric``, ``.estimator``, ``.estimate``).
    """

    fitted: FittedWorkflow
    predictions: pd.DataFrame
    metrics: pd.DataFrame

    def collect_metrics(self) -> pd.DataFrame:
        """Test-set metrics."""
        return self.metrics.copy()

    def collect_predictions(self) -> pd.DataFrame:
        """Test-set predictions."""
        return self.predictions.copy()

    def extract_workflow(self) -> FittedWorkflow:
        """The workflow fitted on the training set."""
        return self.fitted


def last_fit(
    workflow: Workflow,
    split: DataSplit,
    metrics: MetricSet | None = None,
) -> LastFitResult:
    """
    Fit on the training set and evaluate on the test set.

    Args:
        workflow: Finalized workflow (no tune() placeholders).
        split: Initial train/test split.
        metrics: Metrics to compute (default: rmse, rsq).
    """
    metrics = metrics or metric_set()
    fitted = workflow.fit(split.training())

    testing = split.testing()
    preds = fitted.predict(testing)
    predictions = pd.DataFrame(
        {
            ".row": split.test_index,
            ".pred": preds[".pred"].to_numpy(),
            fitted.outcome: testing[fitted.outcome].to_numpy(),
        }
    )
    test_metrics = metrics(predictions[fitted.outcome], predictions[".pred"])

    log.info(
        "Last fit complete",
        n_train=split.n_train,
        n_test=split.n_test,
        **{r[".metric"]: f"{r['.estimate']:.4f}" for _, r in test_metrics.iterrows()},
    )
    return LastFitResult(fitted=fitted, predictions=predictions, metrics=test_metrics)


def tune_and_finalize(
    workflow: Workflow,
    resamples: Resamples,
    split: DataSplit,
    grid: pd.DataFrame | int | None = None,
    metrics: MetricSet | None = None,
    *,
    select_metric: str | None = None,
    ranges: dict[str, ParamRange] | None = None,
    n_jobs: int | None = None,
) -> tuple[TuneResults, dict[str, Any], LastFitResult]:
    """
    Tune, pick the best candidate, finalize, and run the last fit.

    Returns:
        Tuple of (tuning results, selected parameters, last fit result).
    """
    results = tune_grid(
        workflow, resamples, grid, metrics, ranges=ranges, n_jobs=n_jobs
    )
    best = results.select_best(select_metric)
    final = finalize_workflow(workflow, best)
    return results, best, last_fit(final, split, metrics)
