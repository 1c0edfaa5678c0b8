"""
Modeling layer: splitting, model specifications, recipes, workflows,
resampling and tuning.

Typical use:

    split = initial_split(data, prop=0.75, strata="speed_fpm")
    folds = vfold_cv(split.training(), v=10)
    wf = (
        Workflow()
        .add_recipe(build_recipe("speed_fpm"))
        .add_model(linear_reg(penalty=tune(), mixture=tune(), engine="glmnet"))
    )
    results = tune_grid(wf, folds, grid=3)
    final = last_fit(finalize_workflow(wf, results.select_best("rmse")), split)
"""

from liftspeed.modeling.data import DataSplit, initial_split
from liftspeed.modeling.models import (
    MODEL_REGISTRY,
    ModelSpec,
    boost_tree,
    decision_tree,
    get_model_spec,
    linear_reg,
    list_models,
    nearest_neighbor,
    rand_forest,
    tune,
)
from liftspeed.modeling.preprocessing import (
    OtherLumper,
    Recipe,
    all_nominal_predictors,
    all_numeric_predictors,
    all_predictors,
    build_recipe,
)
from liftspeed.modeling.resampling import (
    ResampleResults,
    Resamples,
    bootstraps,
    fit_resamples,
    vfold_cv,
)
from liftspeed.modeling.tuning import (
    LastFitResult,
    TuneResults,
    grid_random,
    grid_regular,
    last_fit,
    parameter_ranges,
    tune_grid,
)
from liftspeed.modeling.workflow import FittedWorkflow, Workflow, finalize_workflow

__all__ = [
    "MODEL_REGISTRY",
    "DataSplit",
    "FittedWorkflow",
    "LastFitResult",
    "ModelSpec",
    "OtherLumper",
    "Recipe",
    "ResampleResults",
    "Resamples",
    "TuneResults",
    "Workflow",
    "all_nominal_predictors",
    "all_numeric_predictors",
    "all_predictors",
    "boost_tree",
    "bootstraps",
    "build_recipe",
    "decision_tree",
    "finalize_workflow",
    "fit_resamples",
    "get_model_spec",
    "grid_random",
    "grid_regular",
    "initial_split",
    "last_fit",
    "linear_reg",
    "list_models",
    "nearest_neighbor",
    "parameter_ranges",
    "rand_forest",
    "tune",
    "tune_grid",
    "vfold_cv",
]
