"""
Data ingestion for the elevator dataset.

Loads raw extracts and hands them over with canonical column names.
"""

from liftspeed.ingestion.elevators import coerce_types, load_elevators

__all__ = ["coerce_types", "load_elevators"]
