"""
End-to-end analysis of elevator speeds.

Runs the whole modeling sequence in order: clean, split, fit a baseline
linear model on two predictors, resample a recipe workflow, tune each
configured model, select the best configuration, and evaluate it once on
the test set.
"""

from dataclasses import dataclass, field
from typing import Any

import numpy as np
import pandas as pd

from liftspeed.config.settings import GridType, ModelEntry, ProjectConfig
from liftspeed.etl import clean_elevators
from liftspeed.evaluation.metrics import MetricSet, metric_set
from liftspeed.ingestion import load_elevators
from liftspeed.modeling.data import DataSplit, initial_split
from liftspeed.modeling.models import get_model_spec
from liftspeed.modeling.preprocessing import Recipe, build_recipe
from liftspeed.modeling.resampling import (
    ResampleResults,
    Resamples,
    fit_resamples,
    resamples_from_config,
)
from liftspeed.modeling.tuning import (
    LastFitResult,
    TuneResults,
    count_model_predictors,
    grid_random,
    grid_regular,
    last_fit,
    parameter_ranges,
    tune_grid,
)
from liftspeed.modeling.workflow import FittedWorkflow, Workflow, finalize_workflow
from liftspeed.utils.logging import get_logger

log = get_logger(__name__)


@dataclass
class TunedModel:
    """Tuning outcome for one configured model."""

    label: str
    results: TuneResults
    best: dict[str, Any]
    final: LastFitResult

    def cv_estimate(self, metric: str) -> float:
        """Resampled mean of a metric for the selected candidate."""
        summary = self.results.collect_metrics()
        row = summary[
            (summary[".config"] == self.best[".config"]) & (summary[".metric"] == metric)
        ]
        return float(row["mean"].iloc[0])


@dataclass
class AnalysisResult:
    """
    Everything the analysis produced.

    Attributes:
        data: Cleaned modeling table.
        split: Train/test split.
        resamples: Resamples of the training set.
        baseline: Baseline formula model fitted on the training set.
        baseline_metrics: Baseline test-set metrics.
        recipe: Preprocessing recipe shared by the recipe workflows.
        resampled: Resampled baseline model with the recipe.
        tuned: Tuned models by label.
        select_metric: Metric used to pick candidates.
    """

    data: pd.DataFrame
    split: DataSplit
    resamples: Resamples
    baseline: FittedWorkflow
    baseline_metrics: pd.DataFrame
    recipe: Recipe
    resampled: ResampleResults
    tuned: dict[str, TunedModel] = field(default_factory=dict)
    select_metric: str = "rmse"

    def comparison(self) -> pd.DataFrame:
        """One row per tuned model: resampled and test estimate of the select metric."""
        rows = []
        for label, model in self.tuned.items():
            test = model.final.collect_metrics()
            test_value = test.loc[test[".metric"] == self.select_metric, ".estimate"]
            rows.append(
                {
                    "model": label,
                    "config": model.best[".config"],
                    "cv": model.cv_estimate(self.select_metric),
                    "test": float(test_value.iloc[0]) if len(test_value) else float("nan"),
                }
            )
        return pd.DataFrame(rows, columns=["model", "config", "cv", "test"])

    @property
    def best_model(self) -> TunedModel | None:
        """
        Tuned model with the best resampled estimate of the select metric.

        Models whose estimate is missing are not ranked.
        """
        scored = [
            (model, model.cv_estimate(self.select_metric)) for model in self.tuned.values()
        ]
        scored = [(model, value) for model, value in scored if not np.isnan(value)]
        if not scored:
            return None
        greater_is_better = next(iter(self.tuned.values())).results.metric_set.get(
            self.select_metric
        ).greater_is_better
        ranked = sorted(scored, key=lambda pair: pair[1], reverse=greater_is_better)
        return ranked[0][0]


def model_label(entry: ModelEntry) -> str:
    """Readable label such as ``rand_forest_ranger``."""
    spec = get_model_spec(entry)
    return f"{spec.model}_{spec.engine}"


def model_labels(entries: list[ModelEntry]) -> list[str]:
    """
    Labels for several entries, unique within the list.

    Repeated labels get a numeric suffix in config order, so two random
    forests become ``rand_forest_ranger`` and ``rand_forest_ranger_2``.
    """
    seen: dict[str, int] = {}
    labels = []
    for entry in entries:
        label = model_label(entry)
        seen[label] = seen.get(label, 0) + 1
        labels.append(label if seen[label] == 1 else f"{label}_{seen[label]}")
    return labels


def prepare_data(config: ProjectConfig) -> pd.DataFrame:
    """Load and clean the raw elevator file."""
    raw = load_elevators(config.data.resolve())
    return clean_elevators(raw, config.cleaning).data


def fit_baseline(
    config: ProjectConfig, split: DataSplit, metrics: MetricSet
) -> tuple[FittedWorkflow, pd.DataFrame]:
    """
    Fit the baseline formula model (e.g. speed ~ capacity + floors).

    Returns:
        Tuple of (fitted workflow, test-set metrics).
    """
    workflow = (
        Workflow()
        .add_formula(config.target, config.models.baseline_predictors or None)
        .add_model(get_model_spec(config.models.baseline))
    )
    result = last_fit(workflow, split, metrics)
    return result.extract_workflow(), result.collect_metrics()


def tune_model(
    entry: ModelEntry,
    recipe: Recipe,
    resamples: Resamples,
    split: DataSplit,
    config: ProjectConfig,
    metrics: MetricSet,
    *,
    label: str | None = None,
) -> TunedModel:
    """
    Tune one configured model, finalize it with the best candidate, and
    run the last fit.

    The label defaults to ``model_label(entry)``.

    Raises:
        ValueError: If the entry has no arguments to tune.
    """
    spec = get_model_spec(entry)
    label = label or model_label(entry)
    if not spec.tunable():
        msg = f"Model '{label}' has no arguments to tune"
        raise ValueError(msg)

    workflow = Workflow().add_recipe(recipe).add_model(spec)
    n_predictors = (
        count_model_predictors(workflow, resamples) if "mtry" in spec.tunable() else None
    )
    ranges = parameter_ranges(spec, n_predictors=n_predictors, overrides=entry.ranges)

    if config.tuning.grid == GridType.RANDOM:
        grid = grid_random(ranges, config.tuning.size, random_state=config.random_state)
    else:
        grid = grid_regular(ranges, config.tuning.levels)

    results = tune_grid(workflow, resamples, grid, metrics, n_jobs=config.tuning.n_jobs)
    best = results.select_best(config.tuning.select_metric)
    final = last_fit(finalize_workflow(workflow, best), split, metrics)

    return TunedModel(label=label, results=results, best=best, final=final)


def run_analysis(
    config: ProjectConfig,
    data: pd.DataFrame | None = None,
    *,
    tune: bool = True,
) -> AnalysisResult:
    """
    Run the complete analysis.

    Args:
        config: Project configuration.
        data: Cleaned modeling table; loaded and cleaned from the raw file
            when omitted.
        tune: Tune the configured models (skip for a quick run).

    Returns:
        AnalysisResult.
    """
    if data is None:
        data = prepare_data(config)
    if config.target not in data.columns:
        msg = f"Target column '{config.target}' not found in data"
        raise ValueError(msg)

    metrics = metric_set(*config.tuning.metrics)

    split = initial_split(
        data,
        prop=config.split.prop,
        strata=config.split.strata,
        breaks=config.split.breaks,
        random_state=config.random_state,
    )

    baseline, baseline_metrics = fit_baseline(config, split, metrics)

    recipe = build_recipe(config.target, config.preprocessing)
    resamples = resamples_from_config(
        split.training(), config.resampling, random_state=config.random_state
    )

    recipe_workflow = (
        Workflow().add_recipe(recipe).add_model(get_model_spec(config.models.baseline))
    )
    resampled = fit_resamples(
        recipe_workflow, resamples, metrics, n_jobs=config.tuning.n_jobs
    )

    result = AnalysisResult(
        data=data,
        split=split,
        resamples=resamples,
        baseline=baseline,
        baseline_metrics=baseline_metrics,
        recipe=recipe,
        resampled=resampled,
        select_metric=config.tuning.select_metric,
    )

    if tune:
        entries = config.models.tuned
        for entry, label in zip(entries, model_labels(entries)):
            tuned = tune_model(
                entry, recipe, resamples, split, config, metrics, label=label
            )
            result.tuned[tuned.label] = tuned

    best = result.best_model
    log.info(
        "Analysis complete",
        n_rows=len(data),
        n_tuned=len(result.tuned),
        best=best.label if best else None,
    )
    return result
