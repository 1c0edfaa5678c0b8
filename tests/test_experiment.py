"""Tests for MLflow experiment tracking (MLflow itself is mocked)."""

from unittest.mock import MagicMock

import pandas as pd
import pytest

from liftspeed.config.settings import ProjectConfig
from liftspeed.evaluation import experiment as experiment_module
from liftspeed.evaluation.experiment import Experiment, ExperimentConfig, TuningExperiment
from liftspeed.evaluation.metrics import RegressionMetrics, metric_set
from liftspeed.modeling.models import linear_reg, tune
from liftspeed.modeling.tuning import LastFitResult, TuneResults
from liftspeed.modeling.workflow import Workflow


@pytest.fixture
def mock_mlflow(monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    """Replace the mlflow module used by the experiment layer."""
    mock = MagicMock()
    mock.start_run.return_value.info.run_id = "run-123"
    monkeypatch.setattr(experiment_module, "mlflow", mock)
    return mock


@pytest.fixture
def tune_results() -> TuneResults:
    """Hand-built results for two candidates on two folds."""
    wf = Workflow().add_formula("speed_fpm").add_model(
        linear_reg(penalty=tune(), engine="glmnet")
    )
    grid = pd.DataFrame(
        {"penalty": [0.01, 0.1], ".config": ["Preprocessor1_Model1", "Preprocessor1_Model2"]}
    )
    metrics = pd.DataFrame(
        {
            "penalty": [0.01, 0.01, 0.1, 0.1],
            ".config": ["Preprocessor1_Model1"] * 2 + ["Preprocessor1_Model2"] * 2,
            "id": ["Fold1", "Fold2"] * 2,
            ".metric": ["rmse"] * 4,
            ".estimate": [0.30, 0.34, 0.40, 0.42],
        }
    )
    return TuneResults(workflow=wf, grid=grid, metrics=metrics, metric_set=metric_set("rmse"))


@pytest.fixture
def final_fit() -> LastFitResult:
    """Last fit with a mocked fitted workflow."""
    return LastFitResult(
        fitted=MagicMock(),
        predictions=pd.DataFrame({".row": [0], ".pred": [1.0], "speed_fpm": [1.1]}),
        metrics=pd.DataFrame(
            {".metric": ["rmse"], ".estimator": ["standard"], ".estimate": [0.35]}
        ),
    )


class TestExperiment:
    """Tests for the base experiment wrapper."""

    def test_start_and_end_run(
        self, project_config: ProjectConfig, mock_mlflow: MagicMock
    ) -> None:
        """Runs should be tagged with the experiment metadata."""
        exp = Experiment(
            project_config,
            ExperimentConfig(name="elevators", question="How fast?", experiment_type="test"),
        )
        run_id = exp.start_run("first")

        assert run_id == "run-123"
        assert exp.run_id == "run-123"
        mock_mlflow.set_tracking_uri.assert_called_once_with(project_config.mlflow.tracking_uri)
        mock_mlflow.set_experiment.assert_called_once_with("elevators")
        tags = mock_mlflow.start_run.call_args.kwargs["tags"]
        assert tags["project"] == "test-elevators"
        assert tags["question"] == "How fast?"

        exp.end_run()
        mock_mlflow.end_run.assert_called_once()
        assert exp.run_id is None

    def test_log_metrics_object(
        self, project_config: ProjectConfig, mock_mlflow: MagicMock
    ) -> None:
        """RegressionMetrics should be logged as a dictionary."""
        exp = Experiment(
            project_config,
            ExperimentConfig(name="e", question="q", experiment_type="test"),
        )
        exp.log_metrics(RegressionMetrics(rmse=0.3, rsq=0.8, rsq_trad=0.7, mae=0.2, n_samples=9))
        logged = mock_mlflow.log_metrics.call_args.args[0]
        assert logged["rmse"] == 0.3
        assert logged["n_samples"] == 9


class TestTuningExperiment:
    """Tests for logging a tuning run."""

    def test_experiment_name(self, project_config: ProjectConfig) -> None:
        """The experiment should be named after the project."""
        exp = TuningExperiment(project_config)
        assert exp.experiment_config.name == "test-elevators-tuning"
        assert "speed_fpm" in exp.experiment_config.question

    def test_run(
        self,
        project_config: ProjectConfig,
        mock_mlflow: MagicMock,
        tune_results: TuneResults,
        final_fit: LastFitResult,
    ) -> None:
        """Parent params, nested candidate runs and test metrics should be logged."""
        exp = TuningExperiment(project_config)
        run_id = exp.run("glmnet", tune_results, {"penalty": 0.01, ".config": "x"}, final_fit)

        assert run_id == "run-123"
        params = mock_mlflow.log_params.call_args_list[0].args[0]
        assert params["model"] == "linear_reg"
        assert params["engine"] == "glmnet"
        assert params["n_candidates"] == 2
        assert params["n_resamples"] == 2
        assert params["best_penalty"] == 0.01
        assert "best_.config" not in params

        nested = [
            c for c in mock_mlflow.start_run.call_args_list if c.kwargs.get("nested")
        ]
        assert [c.kwargs["run_name"] for c in nested] == [
            "Preprocessor1_Model1",
            "Preprocessor1_Model2",
        ]
        test_metrics = mock_mlflow.log_metrics.call_args_list[-2].args[0]
        assert test_metrics == {"test_rmse": 0.35}
        mock_mlflow.end_run.assert_called_once()
        mock_mlflow.sklearn.log_model.assert_not_called()

    def test_run_ends_on_error(
        self,
        project_config: ProjectConfig,
        mock_mlflow: MagicMock,
        tune_results: TuneResults,
        final_fit: LastFitResult,
    ) -> None:
        """The run should be closed when logging fails."""
        mock_mlflow.log_params.side_effect = RuntimeError("store unavailable")
        exp = TuningExperiment(project_config)
        with pytest.raises(RuntimeError, match="store unavailable"):
            exp.run("glmnet", tune_results, {"penalty": 0.01}, final_fit)
        mock_mlflow.end_run.assert_called_once()

    def test_run_logs_residuals(
        self,
        project_config: ProjectConfig,
        mock_mlflow: MagicMock,
        tune_results: TuneResults,
        final_fit: LastFitResult,
    ) -> None:
        """Test-set residual statistics should be logged after the test metrics."""
        exp = TuningExperiment(project_config)
        exp.run("glmnet", tune_results, {"penalty": 0.01}, final_fit)

        residuals = mock_mlflow.log_metrics.call_args_list[-1].args[0]
        assert set(residuals) == {
            "residual_mean",
            "residual_std",
            "residual_median",
            "residual_min",
            "residual_max",
        }
        assert residuals["residual_mean"] == pytest.approx(0.1)
        assert residuals["residual_std"] == 0.0

    def test_run_skips_residuals_without_predictions(
        self,
        project_config: ProjectConfig,
        mock_mlflow: MagicMock,
        tune_results: TuneResults,
        final_fit: LastFitResult,
    ) -> None:
        """Missing test predictions should not produce residual metrics."""
        final_fit.predictions[".pred"] = float("nan")
        exp = TuningExperiment(project_config)
        exp.run("glmnet", tune_results, {"penalty": 0.01}, final_fit)

        assert mock_mlflow.log_metrics.call_args_list[-1].args[0] == {"test_rmse": 0.35}
