"""
Configuration management with typed Pydantic models.

Provides YAML loading with environment interpolation and
base-config inheritance.
"""

from liftspeed.config.loader import load_config
from liftspeed.config.settings import (
    CleaningConfig,
    DataConfig,
    MLflowConfig,
    ModelEntry,
    ModelsConfig,
    PreprocessingConfig,
    ProjectConfig,
    ResamplingConfig,
    SplitConfig,
    TuningConfig,
)

__all__ = [
    "CleaningConfig",
    "DataConfig",
    "MLflowConfig",
    "ModelEntry",
    "ModelsConfig",
    "PreprocessingConfig",
    "ProjectConfig",
    "ResamplingConfig",
    "SplitConfig",
    "TuningConfig",
    "load_config",
]
