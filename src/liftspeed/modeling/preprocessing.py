"""
Recipe-style preprocessing pipelines.

A Recipe is an ordered list of column transformations (imputation,
lumping, encoding, normalization). Each step becomes its own
ColumnTransformer with pandas output, so later steps select columns
produced by earlier ones (e.g. normalizing the dummy columns).
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import numpy as np
import pandas as pd
from sklearn.base import BaseEstimator, OneToOneFeatureMixin, TransformerMixin
from sklearn.compose import ColumnTransformer, make_column_selector
from sklearn.feature_selection import VarianceThreshold
from sklearn.impute import SimpleImputer
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import FunctionTransformer, OneHotEncoder, StandardScaler

from liftspeed.config.settings import PreprocessingConfig
from liftspeed.utils.logging import get_logger

log = get_logger(__name__)

Selector = Callable[[pd.DataFrame], list[str]] | list[str] | str

# Dtypes treated as nominal predictors
NOMINAL_DTYPES = ["object", "category", "string"]


class AllPredictors:
    """Column selector matching every column reaching a step."""

    def __call__(self, df: pd.DataFrame) -> list[str]:
        return list(df.columns)


def all_predictors() -> AllPredictors:
    """Select every column reaching the step."""
    return AllPredictors()


def all_numeric_predictors() -> Callable[[pd.DataFrame], list[str]]:
    """Select numeric columns."""
    return make_column_selector(dtype_include="number")


def all_nominal_predictors() -> Callable[[pd.DataFrame], list[str]]:
    """Select text and categorical columns."""
    return make_column_selector(dtype_include=NOMINAL_DTYPES)


class OtherLumper(OneToOneFeatureMixin, TransformerMixin, BaseEstimator):
    """
    Pool infrequent levels of nominal columns into a single ``other`` level.

    Levels whose training frequency is below ``threshold`` (a proportion)
    are replaced by ``other``; levels never seen during fit are treated
    the same way. Missing values pass through unchanged.
    """

    def __init__(self, threshold: float = 0.05, other: str = "other") -> None:
        self.threshold = threshold
        self.other = other

    def fit(self, X: pd.DataFrame, y: Any = None) -> "OtherLumper":
        X = pd.DataFrame(X)
        self.n_features_in_ = X.shape[1]
        self.feature_names_in_ = np.asarray(X.columns, dtype=object)
        self.keep_levels_: dict[str, set[Any]] = {}
        for col in X.columns:
            freq = X[col].value_counts(normalize=True, dropna=True)
            self.keep_levels_[col] = set(freq[freq >= self.threshold].index)
        return self

    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        X = pd.DataFrame(X).copy()
        for col in X.columns:
            keep = self.keep_levels_.get(col, set())
            values = X[col].astype("object")
            lump = values.notna() & ~values.isin(keep)
            X[col] = values.mask(lump, self.other)
        return X


@dataclass
class RecipeStep:
    """
    One preprocessing step.

    Attributes:
        name: Step identifier (unique within a recipe).
        kind: Step type, e.g. 'impute_mean' or 'dummy'.
        selector: Columns the step applies to.
        transformer: Unfitted scikit-learn transformer ("drop" for step_rm).
        options: Step options, kept for summaries.
    """

    name: str
    kind: str
    selector: Selector
    transformer: Any
    options: dict[str, Any]

    def selector_label(self) -> str:
        """Human-readable description of the column selection."""
        if isinstance(self.selector, list):
            return ", ".join(self.selector)
        if isinstance(self.selector, AllPredictors):
            return "all_predictors()"
        if isinstance(self.selector, make_column_selector):
            include = self.selector.dtype_include
            if include == "number":
                return "all_numeric_predictors()"
            if include == NOMINAL_DTYPES:
                return "all_nominal_predictors()"
        return "<custom selector>"


class Recipe:
    """
    Ordered preprocessing steps for the predictors of one outcome.

    Example:
        recipe = (
            Recipe("speed_fpm")
            .step_impute_mean(all_numeric_predictors())
            .step_other(all_nominal_predictors(), threshold=0.01)
            .step_dummy(all_nominal_predictors())
            .step_normalize(all_numeric_predictors())
        )

    Steps see only predictors; the outcome is removed by the workflow.
    """

    def __init__(self, outcome: str) -> None:
        self.outcome = outcome
        self.steps: list[RecipeStep] = []
        self._prepped: Pipeline | None = None

    def _add(
        self,
        kind: str,
        selector: Selector,
        transformer: Any,
        **options: Any,
    ) -> "Recipe":
        if isinstance(selector, str):
            selector = [selector]
        name = f"{kind}_{len(self.steps) + 1}"
        self.steps.append(RecipeStep(name, kind, selector, transformer, options))
        self._prepped = None
        return self

    def step_rm(self, columns: list[str]) -> "Recipe":
        """Remove columns."""
        return self._add("rm", list(columns), "drop")

    def step_log(self, selector: Selector, offset: float = 0.0) -> "Recipe":
        """Natural log of ``x + offset``."""
        return self._add(
            "log",
            selector,
            FunctionTransformer(
                _log_offset,
                kw_args={"offset": offset},
                feature_names_out="one-to-one",
            ),
            offset=offset,
        )

    def step_impute_mean(self, selector: Selector | None = None) -> "Recipe":
        """Replace missing numeric values with the training mean."""
        return self._add(
            "impute_mean",
            selector or all_numeric_predictors(),
            SimpleImputer(strategy="mean", keep_empty_features=True),
        )

    def step_impute_median(self, selector: Selector | None = None) -> "Recipe":
        """Replace missing numeric values with the training median."""
        return self._add(
            "impute_median",
            selector or all_numeric_predictors(),
            SimpleImputer(strategy="median", keep_empty_features=True),
        )

    def step_impute_mode(self, selector: Selector | None = None) -> "Recipe":
        """Replace missing nominal values with the most frequent level."""
        return self._add(
            "impute_mode",
            selector or all_nominal_predictors(),
            SimpleImputer(strategy="most_frequent", keep_empty_features=True),
        )

    def step_unknown(
        self, selector: Selector | None = None, new_level: str = "unknown"
    ) -> "Recipe":
        """Turn missing nominal values into an explicit level."""
        return self._add(
            "unknown",
            selector or all_nominal_predictors(),
            SimpleImputer(
                strategy="constant", fill_value=new_level, keep_empty_features=True
            ),
            new_level=new_level,
        )

    def step_other(
        self,
        selector: Selector | None = None,
        threshold: float = 0.05,
        other: str = "other",
    ) -> "Recipe":
        """Pool infrequent nominal levels into ``other``."""
        return self._add(
            "other",
            selector or all_nominal_predictors(),
            OtherLumper(threshold=threshold, other=other),
            threshold=threshold,
        )

    def step_dummy(
        self, selector: Selector | None = None, *, one_hot: bool = False
    ) -> "Recipe":
        """
        Encode nominal columns as indicator columns.

        By default the first level is dropped (reference coding); with
        ``one_hot=True`` every level gets a column. Unseen levels encode
        as all zeros.
        """
        return self._add(
            "dummy",
            selector or all_nominal_predictors(),
            OneHotEncoder(
                drop=None if one_hot else "first",
                handle_unknown="ignore",
                sparse_output=False,
            ),
            one_hot=one_hot,
        )

    def step_zv(self, selector: Selector | None = None) -> "Recipe":
        """Remove zero-variance numeric columns."""
        return self._add(
            "zv",
            selector or all_numeric_predictors(),
            VarianceThreshold(threshold=0.0),
        )

    def step_normalize(self, selector: Selector | None = None) -> "Recipe":
        """Center and scale numeric columns."""
        return self._add(
            "normalize",
            selector or all_numeric_predictors(),
            StandardScaler(),
        )

    def to_pipeline(self) -> Pipeline:
        """
        Build the unfitted scikit-learn pipeline for this recipe.

        Each step is a ColumnTransformer that transforms its selection and
        passes all other columns through.
        """
        if not self.steps:
            # An empty recipe still needs to be a valid pipeline step
            identity = FunctionTransformer(feature_names_out="one-to-one")
            return Pipeline([("identity", identity)]).set_output(transform="pandas")

        pipeline_steps = []
        for step in self.steps:
            transformer = ColumnTransformer(
                transformers=[(step.kind, step.transformer, step.selector)],
                remainder="passthrough",
                verbose_feature_names_out=False,
            )
            pipeline_steps.append((step.name, transformer))

        return Pipeline(pipeline_steps).set_output(transform="pandas")

    def prep(self, training: pd.DataFrame) -> "Recipe":
        """Estimate all steps on training data (outcome column is ignored)."""
        predictors = training.drop(columns=[self.outcome], errors="ignore")
        self._prepped = self.to_pipeline().fit(predictors)
        log.info(
            "Prepped recipe",
            n_steps=len(self.steps),
            n_in=predictors.shape[1],
            n_out=len(self._prepped.get_feature_names_out()),
        )
        return self

    def bake(self, new_data: pd.DataFrame) -> pd.DataFrame:
        """
        Apply the prepped steps to new data.

        The outcome column, when present, is carried over unchanged.

        Raises:
            ValueError: If the recipe has not been prepped.
        """
        if self._prepped is None:
            msg = "Recipe must be prepped before baking; call prep(training) first"
            raise ValueError(msg)
        predictors = new_data.drop(columns=[self.outcome], errors="ignore")
        baked = self._prepped.transform(predictors)
        if self.outcome in new_data.columns:
            baked[self.outcome] = new_data[self.outcome].to_numpy()
        return baked

    def summary(self) -> pd.DataFrame:
        """One row per step: number, type, and column selection."""
        return pd.DataFrame(
            [
                {
                    "number": i,
                    "step": step.kind,
                    "columns": step.selector_label(),
                    "options": step.options,
                }
                for i, step in enumerate(self.steps, start=1)
            ],
            columns=["number", "step", "columns", "options"],
        )

    def __repr__(self) -> str:
        lines = [f"Recipe(outcome={self.outcome!r})"]
        for i, step in enumerate(self.steps, start=1):
            lines.append(f"  {i}. step_{step.kind}({step.selector_label()})")
        return "\n".join(lines)


def _log_offset(x: Any, offset: float = 0.0) -> Any:
    """Natural log of x + offset (module-level so pipelines pickle)."""
    return np.log(x + offset)


def build_recipe(outcome: str, config: PreprocessingConfig | None = None) -> Recipe:
    """
    Build the standard elevator recipe.

    Steps: impute numeric predictors, make missing levels explicit, pool
    rare levels, dummy-encode, drop zero-variance columns, normalize.

    Args:
        outcome: Outcome column name.
        config: Preprocessing options (defaults if omitted).

    Returns:
        Unprepped Recipe.
    """
    config = config or PreprocessingConfig()

    recipe = Recipe(outcome)
    if config.numeric_imputation == "median":
        recipe.step_impute_median(all_numeric_predictors())
    else:
        recipe.step_impute_mean(all_numeric_predictors())

    recipe.step_unknown(all_nominal_predictors())
    if config.other_threshold > 0:
        recipe.step_other(all_nominal_predictors(), threshold=config.other_threshold)
    recipe.step_dummy(all_nominal_predictors(), one_hot=config.one_hot)
    recipe.step_zv(all_numeric_predictors())
    if config.normalize:
        recipe.step_normalize(all_numeric_predictors())

    log.debug("Built recipe", steps=[s.kind for s in recipe.steps])
    return recipe
