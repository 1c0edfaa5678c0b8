"""
Schema definitions using Pandera for data validation.

All data contracts are defined here to ensure explicit,
validated data structures throughout the analysis.
"""

from liftspeed.schemas.elevator import (
    IDENTIFIER_COLUMNS,
    CleanedElevatorSchema,
    PredictionSchema,
    RawElevatorSchema,
)
from liftspeed.schemas.registry import DataRole, SchemaRegistry

__all__ = [
    "IDENTIFIER_COLUMNS",
    "CleanedElevatorSchema",
    "DataRole",
    "PredictionSchema",
    "RawElevatorSchema",
    "SchemaRegistry",
]
