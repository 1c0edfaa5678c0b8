"""Data validation module."""

from liftspeed.validation.core import ValidationResult, ValidationRunner, validate_frame
from liftspeed.validation.reporter import ConsoleReporter

__all__ = ["ConsoleReporter", "ValidationResult", "ValidationRunner", "validate_frame"]
