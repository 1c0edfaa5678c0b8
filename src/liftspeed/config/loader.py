"""
Configuration loading.

Project YAML files inherit from a ``base.yaml`` next to them and may
reference environment variables as ``${VAR}`` or ``${VAR:default}``.
A minimal project file names the project and the raw elevator CSV.
"""

import os
import re
from pathlib import Path
from typing import Any

import yaml

from liftspeed.config.settings import (
    CleaningConfig,
    DataConfig,
    MLflowConfig,
    ModelEntry,
    ModelsConfig,
    OutputConfig,
    PreprocessingConfig,
    ProjectConfig,
    ResamplingConfig,
    SplitConfig,
    TuningConfig,
)

ENV_PATTERN = re.compile(r"\$\{(?P<name>[^}:]+)(?::(?P<default>[^}]*))?\}")


def _expand_env(value: Any) -> Any:
    """Substitute environment variables in every string of a YAML tree."""
    if isinstance(value, dict):
        return {key: _expand_env(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_expand_env(item) for item in value]
    if not isinstance(value, str):
        return value
    return ENV_PATTERN.sub(
        lambda m: os.environ.get(m["name"], m["default"] or ""), value
    )


def _merge(defaults: dict[str, Any], project: dict[str, Any]) -> dict[str, Any]:
    """Overlay project settings on the defaults, section by section."""
    merged = dict(defaults)
    for key, value in project.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = _merge(current, value)
        else:
            merged[key] = value
    return merged


def read_yaml(path: Path) -> dict[str, Any]:
    """Read one YAML file with environment variables expanded."""
    with path.open(encoding="utf-8") as f:
        content = yaml.safe_load(f) or {}
    return _expand_env(content)

def _build_models(models_data: dict[str, Any]) -> ModelsConfig:
    """Build model entries; a bare string is shorthand for {name: ...}."""

    def entry(raw: Any) -> ModelEntry:
        if isinstance(raw, str):
            return ModelEntry(name=raw)
        return ModelEntry(**raw)

    kwargs: dict[str, Any] = {
        "tuned": [entry(raw) for raw in models_data.get("tuned", [])],
    }
    if models_data.get("baseline"):
        kwargs["baseline"] = entry(models_data["baseline"])
    if models_data.get("baseline_predictors"):
        kwargs["baseline_predictors"] = models_data["baseline_predictors"]
    return ModelsConfig(**kwargs)


def load_config(
    config_path: Path,
    base_path: Path | None = None,
) -> ProjectConfig:
    """
    Load project configuration from YAML file(s).

    Minimal config requires only:
        - project: str
        - data.elevators: path to the raw CSV

    Args:
        config_path: Path to the main configuration file.
        base_path: Optional path to base configuration for inheritance.

    Returns:
        Fully validated ProjectConfig instance.
    """
    if base_path is not None:
        base_data = read_yaml(base_path)
    else:
        potential_base = config_path.parent / "base.yaml"
        if potential_base.exists() and potential_base.resolve() != config_path.resolve():
            base_data = read_yaml(potential_base)
        else:
            base_data = {}

    main_data = read_yaml(config_path)
    merged = _merge(base_data, main_data)

    project = merged.get("project")
    if not project:
        msg = "Config must specify 'project' name"
        raise ValueError(msg)

    data_data = merged.get("data", {})
    elevators = data_data.get("elevators")
    if not elevators:
        msg = "Config must specify 'data.elevators'"
        raise ValueError(msg)

    data = DataConfig(
        data_root=Path(data_data.get("root", "./data")),
        elevators=Path(elevators),
    )

    output_data = merged.get("output", {})

    return ProjectConfig(
        project=project,
        random_state=merged.get("random_state", 1234),
        data=data,
        cleaning=CleaningConfig(**merged.get("cleaning", {})),
        split=SplitConfig(**merged.get("split", {})),
        resampling=ResamplingConfig(**merged.get("resampling", {})),
        preprocessing=PreprocessingConfig(**merged.get("preprocessing", {})),
        models=_build_models(merged.get("models", {})),
        tuning=TuningConfig(**merged.get("tuning", {})),
        mlflow=MLflowConfig(**merged.get("mlflow", {})),
        output=OutputConfig(output_root=Path(output_data.get("root", "./output"))),
    )
