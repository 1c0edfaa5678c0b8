"""
Typed configuration models using Pydantic.

Every tunable choice of the analysis (cleaning bounds, split proportion,
resampling scheme, recipe options, models and grids) lives here, so the
modeling code never hardcodes dataset-specific values.
"""

from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Identifier and address columns that carry no predictive signal
DEFAULT_DROP_COLUMNS: list[str] = [
    "device_number",
    "bin",
    "tax_block",
    "tax_lot",
    "house_number",
    "street_name",
    "zip_code",
    "device_status",
    "device_status_description",
    "lastper_insp_date",
    "lastper_insp_disp",
    "approval_date",
    "status_date",
    "travel_distance",
]


class ResamplingMethod(str, Enum):
    """Resampling scheme used for performance estimation."""

    VFOLD = "vfold"
    BOOTSTRAP = "bootstrap"


class GridType(str, Enum):
    """Candidate generation strategy for grid search."""

    REGULAR = "regular"
    RANDOM = "random"


class DataConfig(BaseModel):
    """Input data location.

    The elevators path is relative to data_root. Use resolve() for the full path.
    """

    model_config = ConfigDict(frozen=True)

    data_root: Path = Field(
        default=Path("./data"), description="Root directory for all data files"
    )
    elevators: Path = Field(description="Path to the raw elevators CSV")

    def resolve(self, path_attr: str = "elevators") -> Path:
        """Resolve a relative path against data_root."""
        rel_path = getattr(self, path_attr)
        if rel_path is None:
            msg = f"Path '{path_attr}' is not configured"
            raise ValueError(msg)
        return self.data_root / rel_path


class CleaningConfig(BaseModel):
    """Column cleaning applied before any modeling."""

    model_config = ConfigDict(frozen=True)

    target: str = Field(default="speed_fpm", description="Outcome column")
    log_columns: list[str] = Field(
        default_factory=lambda: ["speed_fpm", "capacity_lbs"],
        description="Columns replaced by log(x + log_offset)",
    )
    log_offset: float = Field(default=0.5, gt=0.0)
    drop_columns: list[str] = Field(default_factory=lambda: list(DEFAULT_DROP_COLUMNS))
    min_speed_fpm: float = Field(default=0.0, ge=0.0)
    max_speed_fpm: float | None = Field(
        default=4000.0, description="Upper plausibility bound on raw speed"
    )
    max_capacity_lbs: float | None = Field(
        default=50_000.0, description="Upper plausibility bound on raw capacity"
    )


class SplitConfig(BaseModel):
    """Initial train/test split."""

    model_config = ConfigDict(frozen=True)

    prop: float = Field(default=0.75, gt=0.0, lt=1.0)
    strata: str | None = Field(default=None, description="Column to stratify on")
    breaks: int = Field(default=4, ge=2, le=20)


class ResamplingConfig(BaseModel):
    """Resampling of the training set."""

    model_config = ConfigDict(frozen=True)

    method: ResamplingMethod = Field(default=ResamplingMethod.VFOLD)
    v: int = Field(default=10, ge=2, le=50)
    repeats: int = Field(default=1, ge=1, le=20)
    times: int = Field(default=25, ge=1, le=1000)
    strata: str | None = None


class PreprocessingConfig(BaseModel):
    """Options for the standard elevator recipe."""

    model_config = ConfigDict(frozen=True)

    numeric_imputation: str = Field(default="mean")
    other_threshold: float = Field(default=0.01, ge=0.0, lt=1.0)
    one_hot: bool = False
    normalize: bool = True

    @field_validator("numeric_imputation")
    @classmethod
    def validate_imputation(cls, v: str) -> str:
        """Only mean and median imputation are supported for numerics."""
        if v not in {"mean", "median"}:
            msg = f"numeric_imputation must be 'mean' or 'median', got: {v!r}"
            raise ValueError(msg)
        return v


class ModelEntry(BaseModel):
    """A model specification with optional tuning arguments."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Model type, e.g. 'linear_reg' or 'rand_forest'")
    engine: str | None = Field(default=None, description="Engine (default per model)")
    args: dict[str, Any] = Field(default_factory=dict, description="Fixed arguments")
    tune: list[str] = Field(default_factory=list, description="Arguments to tune")
    ranges: dict[str, tuple[float, float]] = Field(
        default_factory=dict, description="Range overrides for tuned arguments"
    )

    @model_validator(mode="after")
    def validate_tune_args(self) -> "ModelEntry":
        """A tuned argument cannot also be fixed."""
        overlap = set(self.tune) & set(self.args)
        if overlap:
            msg = f"Arguments both fixed and tuned: {sorted(overlap)}"
            raise ValueError(msg)
        return self


class ModelsConfig(BaseModel):
    """Baseline and tuned model specifications."""

    model_config = ConfigDict(frozen=True)

    baseline: ModelEntry = Field(
        default_factory=lambda: ModelEntry(name="linear_reg", engine="lm")
    )
    baseline_predictors: list[str] = Field(
        default_factory=lambda: ["capacity_lbs", "floor_to"],
        description="Predictors of the first, formula-based fit",
    )
    tuned: list[ModelEntry] = Field(default_factory=list)


class TuningConfig(BaseModel):
    """Hyperparameter grid search configuration."""

    model_config = ConfigDict(frozen=True)

    grid: GridType = Field(default=GridType.REGULAR)
    levels: int = Field(default=3, ge=1, le=20)
    size: int = Field(default=10, ge=1, le=500)
    metrics: list[str] = Field(default_factory=lambda: ["rmse", "rsq"])
    select_metric: str = Field(default="rmse")
    n_show: int = Field(default=5, ge=1)
    n_jobs: int | None = Field(default=None, description="Parallel jobs for sklearn")

    @model_validator(mode="after")
    def validate_select_metric(self) -> "TuningConfig":
        """The selection metric must be one of the computed metrics."""
        if self.select_metric not in self.metrics:
            msg = (
                f"select_metric '{self.select_metric}' must be one of "
                f"metrics {self.metrics}"
            )
            raise ValueError(msg)
        return self


class MLflowConfig(BaseModel):
    """MLflow experiment tracking configuration."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = False
    tracking_uri: str = Field(default="file:./mlruns")
    experiment_name: str | None = Field(
        default=None, description="MLflow experiment name (defaults to project name)"
    )


class OutputConfig(BaseModel):
    """Output paths configuration.

    Structure: ./output/{project}/plots, ./output/{project}/cache, ...
    """

    model_config = ConfigDict(frozen=True)

    output_root: Path = Field(
        default=Path("./output"), description="Root directory for all outputs"
    )


class ProjectConfig(BaseModel):
    """Complete analysis configuration.

    The project name drives the MLflow experiment name (if not set)
    and the output directory structure ./output/{project}/.
    """

    model_config = ConfigDict(frozen=True)

    project: str = Field(description="Project identifier (e.g., 'nyc-elevators')")
    random_state: int = Field(default=1234)

    data: DataConfig
    cleaning: CleaningConfig = Field(default_factory=CleaningConfig)
    split: SplitConfig = Field(default_factory=SplitConfig)
    resampling: ResamplingConfig = Field(default_factory=ResamplingConfig)
    preprocessing: PreprocessingConfig = Field(default_factory=PreprocessingConfig)
    models: ModelsConfig = Field(default_factory=ModelsConfig)
    tuning: TuningConfig = Field(default_factory=TuningConfig)
    mlflow: MLflowConfig = Field(default_factory=MLflowConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)

    @property
    def target(self) -> str:
        """Convenience accessor for the outcome column."""
        return self.cleaning.target

    @property
    def experiment_name(self) -> str:
        """MLflow experiment name (derived from project if not set)."""
        return self.mlflow.experiment_name or self.project

    @property
    def plots_dir(self) -> Path:
        """Path to plots output directory."""
        return self.output.output_root / self.project / "plots"

    @property
    def cache_dir(self) -> Path:
        """Path to cache directory (cleaned data)."""
        return self.output.output_root / self.project / "cache"

    @property
    def models_dir(self) -> Path:
        """Path to fitted workflow directory."""
        return self.output.output_root / self.project / "models"

    @property
    def cleaned_data_path(self) -> Path:
        """Default location of the cleaned dataset."""
        return self.cache_dir / "elevators_cleaned.csv"
