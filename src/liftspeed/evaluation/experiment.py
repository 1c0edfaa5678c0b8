"""
MLflow experiment tracking.

Each tuning run becomes one MLflow run with the selected parameters and
test-set metrics and residuals; every grid candidate is logged as a nested run.
"""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

import mlflow
import mlflow.sklearn
import pandas as pd

from liftspeed.config.settings import ProjectConfig
from liftspeed.evaluation.metrics import RegressionMetrics, compute_residual_stats
from liftspeed.utils.logging import get_logger

if TYPE_CHECKING:
    from liftspeed.modeling.tuning import LastFitResult, TuneResults

log = get_logger(__name__)


@dataclass
class ExperimentConfig:
    """
    Metadata attached to every run of an experiment.

    Attributes:
        name: MLflow experiment name.
        question: Question the experiment answers.
        experiment_type: Category, e.g. 'hyperparameter'.
        tags: Extra run tags.
    """

    name: str
    question: str
    experiment_type: str
    tags: dict[str, str] = field(default_factory=dict)


class Experiment:
    """Thin wrapper around an MLflow experiment."""

    def __init__(self, config: ProjectConfig, experiment_config: ExperimentConfig) -> None:
        self.config = config
        self.experiment_config = experiment_config
        self._run_id: str | None = None

    @property
    def run_id(self) -> str | None:
        """ID of the active run, if any."""
        return self._run_id

    def setup(self) -> None:
        """Point MLflow at the tracking store and select the experiment."""
        mlflow.set_tracking_uri(self.config.mlflow.tracking_uri)
        mlflow.set_experiment(self.experiment_config.name)

        log.info(
            "Experiment setup",
            name=self.experiment_config.name,
            tracking_uri=self.config.mlflow.tracking_uri,
        )

    def start_run(self, run_name: str | None = None) -> str:
        """Start a run tagged with the experiment metadata; returns its ID."""
        from liftspeed import __version__

        self.setup()
        tags = {
            "experiment_type": self.experiment_config.experiment_type,
            "project": self.config.project,
            "question": self.experiment_config.question,
            "liftspeed_version": __version__,
            **self.experiment_config.tags,
        }
        run = mlflow.start_run(run_name=run_name, tags=tags)
        self._run_id = run.info.run_id

        log.info("Started MLflow run", run_id=self._run_id)
        return self._run_id

    def end_run(self) -> None:
        """End the active run."""
        mlflow.end_run()
        log.info("Ended MLflow run", run_id=self._run_id)
        self._run_id = None

    def log_params(self, params: dict[str, Any]) -> None:
        """Log parameters."""
        mlflow.log_params(params)

    def log_metrics(self, metrics: RegressionMetrics | dict[str, float]) -> None:
        """Log metrics."""
        if isinstance(metrics, RegressionMetrics):
            metrics = metrics.to_dict()
        mlflow.log_metrics(metrics)

    def log_artifact(self, path: Path, artifact_path: str | None = None) -> None:
        """Log a file."""
        mlflow.log_artifact(str(path), artifact_path)

    def log_model(self, model: Any, artifact_path: str = "model") -> None:
        """Log a fitted scikit-learn pipeline."""
        mlflow.sklearn.log_model(model, artifact_path)


class TuningExperiment(Experiment):
    """
    Hyperparameter tuning of one model type.

    Question: which hyperparameters give the lowest resampled error?
    """

    def __init__(self, config: ProjectConfig) -> None:
        exp_config = ExperimentConfig(
            name=f"{config.experiment_name}-tuning",
            question=(
                f"Which hyperparameters minimise resampled "
                f"{config.tuning.select_metric} for {config.target}?"
            ),
            experiment_type="hyperparameter",
        )
        super().__init__(config, exp_config)

    def run(
        self,
        model_name: str,
        results: "TuneResults",
        best: dict[str, Any],
        final: "LastFitResult",
        *,
        artifacts: list[Path] | None = None,
        log_model: bool = False,
    ) -> str:
        """
        Log one tuned model.

        Args:
            model_name: Label of the tuned model.
            results: Grid search results.
            best: Selected parameters.
            final: Last fit on the test set.
            artifacts: Files (plots, tables) to attach.
            log_model: Also log the fitted pipeline.

        Returns:
            Run ID of the parent run.
        """
        spec = results.workflow.model
        run_id = self.start_run(f"tune-{model_name}-{datetime.now():%Y%m%d-%H%M}")
        try:
            self.log_params(
                {
                    "model": spec.model if spec else model_name,
                    "engine": spec.engine if spec else "",
                    "n_candidates": len(results.grid),
                    "n_resamples": results.metrics["id"].nunique(),
                    **{f"best_{k}": v for k, v in best.items() if k != ".config"},
                }
            )

            summary = results.collect_metrics()
            for config_label, group in summary.groupby(".config", sort=False):
                with mlflow.start_run(run_name=str(config_label), nested=True):
                    first = group.iloc[0]
                    mlflow.log_params({p: first[p] for p in results.params})
                    mlflow.log_metrics(
                        {
                            f"cv_{row['.metric']}": float(row["mean"])
                            for _, row in group.iterrows()
                            if pd.notna(row["mean"])
                        }
                    )

            self.log_metrics(
                {
                    f"test_{row['.metric']}": float(row[".estimate"])
                    for _, row in final.collect_metrics().iterrows()
                }
            )
            observed = final.predictions[[results.workflow.outcome, ".pred"]].dropna()
            if len(observed):
                self.log_metrics(
                    compute_residual_stats(
                        observed[results.workflow.outcome], observed[".pred"]
                    )
                )
            for path in artifacts or []:
                self.log_artifact(path)
            if log_model:
                self.log_model(final.extract_workflow().pipeline)
        finally:
            self.end_run()

        return run_id
