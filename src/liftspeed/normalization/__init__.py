"""
Column naming normalization.

Ensures consistent snake_case, prefix-free column names across the package.
"""

from liftspeed.normalization.columns import (
    clean_names,
    normalize_columns,
    to_snake_case,
    validate_required_columns,
)

__all__ = [
    "clean_names",
    "normalize_columns",
    "to_snake_case",
    "validate_required_columns",
]
