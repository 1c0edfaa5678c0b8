"""
Liftspeed: NYC Elevator Speed Modeling.

This package provides data cleaning, exploratory analysis, and a tidy
modeling workflow (splits, model specifications, recipes, resampling,
and grid search) for predicting elevator speed from device attributes.
"""

from importlib.metadata import version

__version__ = version("liftspeed")

__all__ = ["__version__"]
