"""Basic package tests to verify installation."""


def test_package_imports() -> None:
    """Verify the main package can be imported."""
    import liftspeed

    assert liftspeed.__version__


def test_config_module_imports() -> None:
    """Verify config module structure is correct."""
    from liftspeed.config import (
        CleaningConfig,
        MLflowConfig,
        ModelsConfig,
        ProjectConfig,
        ResamplingConfig,
        SplitConfig,
        TuningConfig,
        load_config,
    )

    assert ProjectConfig is not None
    assert CleaningConfig is not None
    assert SplitConfig is not None
    assert ResamplingConfig is not None
    assert ModelsConfig is not None
    assert TuningConfig is not None
    assert MLflowConfig is not None
    assert load_config is not None


def test_schemas_module_imports() -> None:
    """Verify schemas module structure is correct."""
    from liftspeed.schemas import (
        CleanedElevatorSchema,
        PredictionSchema,
        RawElevatorSchema,
        SchemaRegistry,
    )

    assert RawElevatorSchema is not None
    assert CleanedElevatorSchema is not None
    assert PredictionSchema is not None
    assert SchemaRegistry is not None


def test_modeling_module_imports() -> None:
    """Verify the modeling layer exports the workflow building blocks."""
    from liftspeed.modeling import (
        Recipe,
        Workflow,
        finalize_workflow,
        initial_split,
        last_fit,
        linear_reg,
        tune,
        tune_grid,
        vfold_cv,
    )

    assert Recipe is not None
    assert Workflow is not None
    assert finalize_workflow is not None
    assert initial_split is not None
    assert last_fit is not None
    assert linear_reg is not None
    assert tune is not None
    assert tune_grid is not None
    assert vfold_cv is not None


def test_cli_imports() -> None:
    """Verify the CLI app can be imported."""
    from liftspeed.cli import app

    assert app is not None
