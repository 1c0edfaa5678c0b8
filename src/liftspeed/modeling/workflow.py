"""
Workflows: a model specification bundled with its preprocessing.

A workflow holds either a recipe or a formula (outcome plus predictor
columns) and a model specification, and fits them together as a single
scikit-learn Pipeline so that resampling and tuning re-estimate the
preprocessing inside every fold.
"""

from dataclasses import dataclass, field, replace
from typing import Any

import numpy as np
import pandas as pd
from sklearn.base import BaseEstimator
from sklearn.compose import ColumnTransformer
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import OneHotEncoder

from liftspeed.modeling.models import ModelSpec
from liftspeed.modeling.preprocessing import (
    Recipe,
    all_nominal_predictors,
    all_numeric_predictors,
)
from liftspeed.utils.logging import get_logger

log = get_logger(__name__)

PREPROCESSOR_STEP = "preprocessor"
MODEL_STEP = "model"


@dataclass(frozen=True)
class Formula:
    """
    Outcome and predictors, in the spirit of ``speed_fpm ~ capacity_lbs + floor_to``.

    Attributes:
        outcome: Outcome column.
        predictors: Predictor columns (None means every other column).
    """

    outcome: str
    predictors: tuple[str, ...] | None = None

    def __str__(self) -> str:
        rhs = " + ".join(self.predictors) if self.predictors else "."
        return f"{self.outcome} ~ {rhs}"


def model_matrix_preprocessor() -> ColumnTransformer:
    """
    Preprocessor used by formula workflows.

    Nominal predictors are dummy encoded with the first level as reference;
    numeric predictors pass through unchanged.
    """
    return ColumnTransformer(
        transformers=[
            (
                "dummy",
                OneHotEncoder(drop="first", handle_unknown="ignore", sparse_output=False),
                all_nominal_predictors(),
            ),
            ("numeric", "passthrough", all_numeric_predictors()),
        ],
        remainder="drop",
        verbose_feature_names_out=False,
    ).set_output(transform="pandas")


@dataclass(frozen=True)
class Workflow:
    """
    Container for a model specification and its preprocessor.

    Workflows are immutable; every ``add_*``/``update_*`` call returns a
    new workflow.
    """

    model: ModelSpec | None = None
    recipe: Recipe | None = None
    formula: Formula | None = None

    def add_model(self, spec: ModelSpec) -> "Workflow":
        """Attach a model specification."""
        if self.model is not None:
            msg = "Workflow already has a model; use update_model() to replace it"
            raise ValueError(msg)
        return replace(self, model=spec)

    def update_model(self, spec: ModelSpec) -> "Workflow":
        """Replace the model specification."""
        return replace(self, model=spec)

    def add_recipe(self, recipe: Recipe) -> "Workflow":
        """Attach a recipe as preprocessor."""
        if self.formula is not None:
            msg = "Workflow already has a formula; a recipe cannot be added"
            raise ValueError(msg)
        return replace(self, recipe=recipe)

    def add_formula(
        self, outcome: str, predictors: list[str] | None = None
    ) -> "Workflow":
        """Attach a formula (outcome and predictor columns) as preprocessor."""
        if self.recipe is not None:
            msg = "Workflow already has a recipe; a formula cannot be added"
            raise ValueError(msg)
        return replace(
            self,
            formula=Formula(outcome, tuple(predictors) if predictors else None),
        )

    @property
    def outcome(self) -> str:
        """Outcome column of the preprocessor."""
        if self.recipe is not None:
            return self.recipe.outcome
        if self.formula is not None:
            return self.formula.outcome
        msg = "Workflow has no preprocessor; add a recipe or a formula"
        raise ValueError(msg)

    def _check_complete(self) -> ModelSpec:
        if self.model is None:
            msg = "Workflow has no model; call add_model() first"
            raise ValueError(msg)
        if self.recipe is None and self.formula is None:
            msg = "Workflow has no preprocessor; add a recipe or a formula"
            raise ValueError(msg)
        return self.model

    def predictor_columns(self, data: pd.DataFrame) -> list[str]:
        """
        Columns passed to the preprocessor.

        Raises:
            ValueError: If the outcome or a formula predictor is missing.
        """
        if self.outcome not in data.columns:
            msg = f"Outcome column '{self.outcome}' not found in data"
            raise ValueError(msg)

        if self.formula is not None and self.formula.predictors:
            missing = [c for c in self.formula.predictors if c not in data.columns]
            if missing:
                msg = f"Predictor columns not found in data: {missing}"
                raise ValueError(msg)
            return list(self.formula.predictors)

        return [c for c in data.columns if c != self.outcome]

    def xy(self, data: pd.DataFrame) -> tuple[pd.DataFrame, pd.Series]:
        """
        Split data into predictors and outcome.

        Formula workflows drop rows with missing predictor values, like a
        model matrix would; recipe workflows leave missing values to the
        recipe.
        """
        columns = self.predictor_columns(data)
        X = data[columns]
        y = data[self.outcome]

        if self.formula is not None:
            complete = X.notna().all(axis=1) & y.notna()
            n_dropped = int((~complete).sum())
            if n_dropped:
                log.info("Dropped incomplete rows for formula fit", n=n_dropped)
            X, y = X[complete], y[complete]

        return X, y

    def to_pipeline(self) -> Pipeline:
        """Build the unfitted scikit-learn pipeline (preprocessor + model)."""
        spec = self._check_complete()
        preprocessor = (
            self.recipe.to_pipeline()
            if self.recipe is not None
            else model_matrix_preprocessor()
        )
        return Pipeline([(PREPROCESSOR_STEP, preprocessor), (MODEL_STEP, spec.translate())])

    def param_name(self, arg: str) -> str:
        """Pipeline parameter name for a model argument (e.g. ``model__alpha``)."""
        spec = self._check_complete()
        return f"{MODEL_STEP}__{spec.param_name(arg)}"

    def fit(self, data: pd.DataFrame) -> "FittedWorkflow":
        """
        Fit preprocessor and model on data.

        Raises:
            ValueError: If the workflow is incomplete or has tuning
                placeholders left (finalize it first).
        """
        spec = self._check_complete()
        if spec.tunable():
            msg = (
                f"Arguments {spec.tunable()} are marked for tuning; "
                "finalize the workflow with chosen values before fitting"
            )
            raise ValueError(msg)

        X, y = self.xy(data)
        if X.empty:
            msg = "No complete rows to fit on"
            raise ValueError(msg)

        pipeline = self.to_pipeline()
        pipeline.fit(X, y)

        log.info(
            "Fitted workflow",
            model=str(spec),
            preprocessor="recipe" if self.recipe is not None else str(self.formula),
            n=len(X),
        )
        return FittedWorkflow(workflow=self, pipeline=pipeline, predictors=list(X.columns))


@dataclass
class FittedWorkflow:
    """A workflow after fitting, ready to predict."""

    workflow: Workflow
    pipeline: Pipeline
    predictors: list[str] = field(default_factory=list)

    @property
    def outcome(self) -> str:
        """Outcome column."""
        return self.workflow.outcome

    def predict(self, new_data: pd.DataFrame) -> pd.DataFrame:
        """
        Predict the outcome for new data.

        Returns:
            Frame with a ``.pred`` column, aligned with new_data's index.
            For formula workflows, rows with missing predictors get NaN.
        """
        missing = [c for c in self.predictors if c not in new_data.columns]
        if missing:
            msg = f"Predictor columns not found in new data: {missing}"
            raise ValueError(msg)

        X = new_data[self.predictors]
        preds = pd.Series(np.nan, index=new_data.index, dtype=float)

        if self.workflow.formula is not None:
            complete = X.notna().all(axis=1)
            if complete.any():
                preds[complete] = self.pipeline.predict(X[complete])
        else:
            preds[:] = self.pipeline.predict(X)

        return pd.DataFrame({".pred": preds})

    def augment(self, new_data: pd.DataFrame) -> pd.DataFrame:
        """Return new_data with a ``.pred`` column (and ``.resid`` if observed)."""
        augmented = new_data.copy()
        augmented[".pred"] = self.predict(new_data)[".pred"]
        if self.outcome in augmented.columns:
            augmented[".resid"] = augmented[self.outcome] - augmented[".pred"]
        return augmented

    def extract_fit_engine(self) -> BaseEstimator:
        """The fitted scikit-learn estimator."""
        return self.pipeline.named_steps[MODEL_STEP]

    def extract_preprocessor(self) -> Any:
        """The fitted preprocessor."""
        return self.pipeline.named_steps[PREPROCESSOR_STEP]

    def feature_names(self) -> list[str]:
        """Column names seen by the model after preprocessing."""
        return list(self.extract_preprocessor().get_feature_names_out())

    def tidy(self) -> pd.DataFrame:
        """
        Model summary as a frame.

        Linear engines give ``term``/``estimate`` (intercept first), tree
        ensembles give ``term``/``importance`` sorted descending.

        Raises:
            ValueError: If the engine exposes neither coefficients nor
                feature importances.
        """
        engine = self.extract_fit_engine()
        terms = self.feature_names()

        if hasattr(engine, "coef_"):
            coefs = np.ravel(engine.coef_)
            intercept = float(np.ravel(engine.intercept_)[0])
            return pd.DataFrame(
                {
                    "term": ["(Intercept)", *terms],
                    "estimate": [intercept, *coefs.tolist()],
                }
            )

        if hasattr(engine, "feature_importances_"):
            return (
                pd.DataFrame({"term": terms, "importance": engine.feature_importances_})
                .sort_values("importance", ascending=False)
                .reset_index(drop=True)
            )

        msg = f"{type(engine).__name__} has no coefficients or importances to tidy"
        raise ValueError(msg)


def finalize_workflow(workflow: Workflow, params: dict[str, Any]) -> Workflow:
    """
    Replace tuning placeholders by chosen values.

    Args:
        workflow: Workflow whose model has tune() arguments.
        params: Argument name -> value (e.g. a row from select_best).
            Keys that are not tuning arguments (such as ``.config``) are ignored.

    Raises:
        ValueError: If a tuned argument has no value in params.
    """
    spec = workflow._check_complete()
    tunable = spec.tunable()
    missing = [name for name in tunable if name not in params]
    if missing:
        msg = f"No value given for tuned arguments: {missing}"
        raise ValueError(msg)

    values = {name: _as_python(params[name]) for name in tunable}
    log.info("Finalized workflow", model=spec.model, params=values)
    return workflow.update_model(spec.set_args(**values))


def _as_python(value: Any) -> Any:
    """Unwrap numpy scalars so estimators get plain Python values."""
    return value.item() if isinstance(value, np.generic) else value
