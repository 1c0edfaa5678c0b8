"""
Model specifications and engine registry.

A model specification names an algorithm (``linear_reg``, ``rand_forest``,
...), its main arguments in engine-independent terms (``penalty``,
``trees``, ``min_n``, ...) and the engine that fits it. ``translate()``
turns the specification into an unfitted scikit-learn estimator.
"""

from dataclasses import dataclass, field, replace
from typing import Any

from sklearn.base import BaseEstimator
from sklearn.ensemble import GradientBoostingRegressor, RandomForestRegressor
from sklearn.linear_model import ElasticNet, LinearRegression
from sklearn.neighbors import KNeighborsRegressor
from sklearn.tree import DecisionTreeRegressor

from liftspeed.config.settings import ModelEntry
from liftspeed.utils.logging import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class TuneParameter:
    """Placeholder marking a model argument for tuning."""

    id: str | None = None

    def __repr__(self) -> str:
        return f"tune({self.id!r})" if self.id else "tune()"


def tune(id: str | None = None) -> TuneParameter:  # noqa: A002
    """Mark an argument for tuning, e.g. ``rand_forest(min_n=tune())``."""
    return TuneParameter(id)


def is_tune(value: Any) -> bool:
    """Whether a value is a tuning placeholder."""
    return isinstance(value, TuneParameter)


@dataclass(frozen=True)
class Engine:
    """
    How one engine fits one model type.

    Attributes:
        estimator: scikit-learn estimator class.
        arg_map: Main argument name -> estimator parameter name.
        defaults: Estimator parameters set unless overridden.
        required: Main arguments that must be given.
    """

    estimator: type[BaseEstimator]
    arg_map: dict[str, str]
    defaults: dict[str, Any] = field(default_factory=dict)
    required: tuple[str, ...] = ()


# Model type -> engine name -> Engine
MODEL_REGISTRY: dict[str, dict[str, Engine]] = {
    "linear_reg": {
        "lm": Engine(LinearRegression, arg_map={}),
        "glmnet": Engine(
            ElasticNet,
            arg_map={"penalty": "alpha", "mixture": "l1_ratio"},
            defaults={"l1_ratio": 1.0, "max_iter": 10_000},
            required=("penalty",),
        ),
    },
    "rand_forest": {
        "ranger": Engine(
            RandomForestRegressor,
            arg_map={
                "mtry": "max_features",
                "trees": "n_estimators",
                "min_n": "min_samples_split",
            },
            defaults={"n_estimators": 500, "min_samples_split": 5, "n_jobs": -1},
        ),
    },
    "boost_tree": {
        "sklearn": Engine(
            GradientBoostingRegressor,
            arg_map={
                "trees": "n_estimators",
                "tree_depth": "max_depth",
                "learn_rate": "learning_rate",
                "min_n": "min_samples_split",
                "sample_size": "subsample",
                "loss_reduction": "min_impurity_decrease",
            },
            defaults={"n_estimators": 15, "max_depth": 6, "learning_rate": 0.3},
        ),
    },
    "decision_tree": {
        "rpart": Engine(
            DecisionTreeRegressor,
            arg_map={
                "tree_depth": "max_depth",
                "min_n": "min_samples_split",
                "cost_complexity": "ccp_alpha",
            },
            defaults={"max_depth": 30, "min_samples_split": 2, "ccp_alpha": 0.01},
        ),
    },
    "nearest_neighbor": {
        "kknn": Engine(
            KNeighborsRegressor,
            arg_map={"neighbors": "n_neighbors", "weight_func": "weights"},
            defaults={"n_neighbors": 5},
        ),
    },
}

# Engine used when none is set
DEFAULT_ENGINES: dict[str, str] = {
    "linear_reg": "lm",
    "rand_forest": "ranger",
    "boost_tree": "sklearn",
    "decision_tree": "rpart",
    "nearest_neighbor": "kknn",
}

# Main arguments whose engine parameter must be an integer
INTEGER_ARGS = frozenset({"mtry", "trees", "min_n", "tree_depth", "neighbors"})


@dataclass(frozen=True)
class ModelSpec:
    """
    Declarative model specification: algorithm, arguments, and engine.

    Attributes:
        model: Model type (key of MODEL_REGISTRY).
        engine: Engine name.
        args: Main arguments (values may be tune() placeholders).
        engine_args: Extra estimator parameters passed through unchanged.
    """

    model: str
    engine: str
    args: dict[str, Any] = field(default_factory=dict)
    engine_args: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.model not in MODEL_REGISTRY:
            available = ", ".join(MODEL_REGISTRY)
            msg = f"Unknown model '{self.model}'. Available: {available}"
            raise KeyError(msg)
        engines = MODEL_REGISTRY[self.model]
        if self.engine not in engines:
            available = ", ".join(engines)
            msg = (
                f"Unknown engine '{self.engine}' for {self.model}. "
                f"Available: {available}"
            )
            raise KeyError(msg)
        unknown = [a for a in self.args if a not in engines[self.engine].arg_map]
        if unknown:
            supported = ", ".join(engines[self.engine].arg_map) or "none"
            msg = (
                f"Arguments {unknown} are not supported by {self.model} "
                f"({self.engine}). Supported: {supported}"
            )
            raise ValueError(msg)

    @property
    def engine_spec(self) -> Engine:
        """Registry entry for this model/engine combination."""
        return MODEL_REGISTRY[self.model][self.engine]

    def set_engine(self, engine: str, **engine_args: Any) -> "ModelSpec":
        """Return a copy fitted by another engine."""
        return ModelSpec(
            self.model, engine, dict(self.args), {**self.engine_args, **engine_args}
        )

    def set_args(self, **args: Any) -> "ModelSpec":
        """Return a copy with updated main arguments."""
        return replace(self, args={**self.args, **args})

    def tunable(self) -> list[str]:
        """Names of arguments marked with tune(), in declaration order."""
        return [name for name, value in self.args.items() if is_tune(value)]

    def param_name(self, arg: str) -> str:
        """Estimator parameter name for a main argument."""
        try:
            return self.engine_spec.arg_map[arg]
        except KeyError:
            msg = f"Argument '{arg}' is not supported by {self.model} ({self.engine})"
            raise KeyError(msg) from None

    def convert_value(self, arg: str, value: Any) -> Any:
        """Convert a main argument value to what the estimator expects."""
        if arg in INTEGER_ARGS and value is not None and not isinstance(value, str):
            return int(round(float(value)))
        return value

    def translate(self) -> BaseEstimator:
        """
        Build the unfitted scikit-learn estimator.

        Tuning placeholders are left at engine defaults so the estimator
        can be cloned into a grid search.

        Raises:
            ValueError: If a required argument is missing.
        """
        engine = self.engine_spec
        missing = [a for a in engine.required if a not in self.args]
        if missing:
            msg = f"{self.model} ({self.engine}) requires arguments: {missing}"
            raise ValueError(msg)

        params = dict(engine.defaults)
        for arg, value in self.args.items():
            if is_tune(value):
                continue
            params[self.param_name(arg)] = self.convert_value(arg, value)
        params.update(self.engine_args)

        log.debug("Translating model spec", model=self.model, engine=self.engine, params=params)
        return engine.estimator(**params)

    def __str__(self) -> str:
        args = ", ".join(f"{k}={v!r}" for k, v in self.args.items())
        return f"{self.model}({args}) [engine: {self.engine}]"


def _spec(model: str, engine: str | None, args: dict[str, Any]) -> ModelSpec:
    """Build a spec, dropping arguments left at None."""
    return ModelSpec(
        model=model,
        engine=engine or DEFAULT_ENGINES[model],
        args={k: v for k, v in args.items() if v is not None},
    )


def linear_reg(
    penalty: Any = None, mixture: Any = None, *, engine: str | None = None
) -> ModelSpec:
    """Linear regression (``lm``) or regularized regression (``glmnet``)."""
    return _spec("linear_reg", engine, {"penalty": penalty, "mixture": mixture})


def rand_forest(
    mtry: Any = None,
    trees: Any = None,
    min_n: Any = None,
    *,
    engine: str | None = None,
) -> ModelSpec:
    """Random forest."""
    return _spec("rand_forest", engine, {"mtry": mtry, "trees": trees, "min_n": min_n})


def boost_tree(
    trees: Any = None,
    tree_depth: Any = None,
    learn_rate: Any = None,
    min_n: Any = None,
    sample_size: Any = None,
    loss_reduction: Any = None,
    *,
    engine: str | None = None,
) -> ModelSpec:
    """Gradient boosted trees."""
    return _spec(
        "boost_tree",
        engine,
        {
            "trees": trees,
            "tree_depth": tree_depth,
            "learn_rate": learn_rate,
            "min_n": min_n,
            "sample_size": sample_size,
            "loss_reduction": loss_reduction,
        },
    )


def decision_tree(
    tree_depth: Any = None,
    min_n: Any = None,
    cost_complexity: Any = None,
    *,
    engine: str | None = None,
) -> ModelSpec:
    """Single regression tree."""
    return _spec(
        "decision_tree",
        engine,
        {"tree_depth": tree_depth, "min_n": min_n, "cost_complexity": cost_complexity},
    )


def nearest_neighbor(
    neighbors: Any = None, weight_func: Any = None, *, engine: str | None = None
) -> ModelSpec:
    """K-nearest neighbors regression."""
    return _spec(
        "nearest_neighbor", engine, {"neighbors": neighbors, "weight_func": weight_func}
    )


def get_model_spec(entry: ModelEntry) -> ModelSpec:
    """
    Build a model specification from a configuration entry.

    Fixed arguments come from ``entry.args``; every name in ``entry.tune``
    becomes a tune() placeholder.
    """
    if entry.name not in MODEL_REGISTRY:
        available = ", ".join(MODEL_REGISTRY)
        msg = f"Unknown model '{entry.name}'. Available: {available}"
        raise KeyError(msg)

    args: dict[str, Any] = dict(entry.args)
    args.update({name: tune() for name in entry.tune})
    return ModelSpec(
        model=entry.name,
        engine=entry.engine or DEFAULT_ENGINES[entry.name],
        args=args,
    )


def list_models() -> dict[str, list[str]]:
    """Available model types and their engines."""
    return {model: list(engines) for model, engines in MODEL_REGISTRY.items()}
