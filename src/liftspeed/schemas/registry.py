"""
Schema registry for versioning and discovery.

Provides centralized access to all schema definitions with version tracking.
"""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, ClassVar

import pandera.pandas as pa

from liftspeed.schemas.elevator import (
    CleanedElevatorSchema,
    PredictionSchema,
    RawElevatorSchema,
)

if TYPE_CHECKING:
    import pandas as pd


class DataRole(Enum):
    """Classification of data products by their role in the analysis."""

    SOURCE = "source"  # Raw external data
    MODELING = "modeling"  # Cleaned, model-ready data
    OUTPUT = "output"  # Predictions and results


@dataclass(frozen=True)
class SchemaInfo:
    """Metadata about a registered schema."""

    name: str
    schema: type[pa.DataFrameModel]
    version: str
    role: DataRole
    description: str


class SchemaRegistry:
    """
    Centralized registry for all data schemas.

    Provides version tracking and schema discovery.
    """

    _version = "1.0.0"

    _schemas: ClassVar[dict[str, SchemaInfo]] = {
        "raw_elevator": SchemaInfo(
            name="raw_elevator",
            schema=RawElevatorSchema,
            version="1.0.0",
            role=DataRole.SOURCE,
            description="NYC DOB elevator device records",
        ),
        "cleaned_elevator": SchemaInfo(
            name="cleaned_elevator",
            schema=CleanedElevatorSchema,
            version="1.0.0",
            role=DataRole.MODELING,
            description="Log-scaled, identifier-free elevator records",
        ),
        "prediction": SchemaInfo(
            name="prediction",
            schema=PredictionSchema,
            version="1.0.0",
            role=DataRole.OUTPUT,
            description="Augmented predictions with a .pred column",
        ),
    }

    @classmethod
    def registry_version(cls) -> str:
        """Get the registry version."""
        return cls._version

    @classmethod
    def get_info(cls, name: str) -> SchemaInfo:
        """
        Get full schema info by name.

        Raises:
            KeyError: If schema not found.
        """
        if name not in cls._schemas:
            available = ", ".join(cls._schemas.keys())
            msg = f"Unknown schema '{name}'. Available: {available}"
            raise KeyError(msg)
        return cls._schemas[name]

    @classmethod
    def get(cls, name: str) -> type[pa.DataFrameModel]:
        """Get a schema class by name."""
        return cls.get_info(name).schema

    @classmethod
    def list_schemas(cls) -> list[str]:
        """List all registered schema names."""
        return list(cls._schemas.keys())

    @classmethod
    def list_by_role(cls, role: DataRole) -> list[str]:
        """List schemas filtered by their data role."""
        return [name for name, info in cls._schemas.items() if info.role == role]

    @classmethod
    def validate(
        cls, df: "pd.DataFrame", schema_name: str, *, lazy: bool = False
    ) -> "pd.DataFrame":
        """
        Validate a DataFrame against a registered schema.

        Args:
            df: DataFrame to validate.
            schema_name: Name of schema to validate against.
            lazy: Collect all failures instead of stopping at the first.

        Returns:
            Validated (and coerced) DataFrame.

        Raises:
            pandera.errors.SchemaError: If validation fails (eager mode).
            pandera.errors.SchemaErrors: If validation fails (lazy mode).
        """
        schema = cls.get(schema_name)
        return schema.validate(df, lazy=lazy)
