"""
Core validation logic for data files.

Validates the raw extract and the cleaned dataset against registered
Pandera schemas.
"""

from dataclasses import dataclass
from pathlib import Path

import pandas as pd
from pandera.errors import SchemaError, SchemaErrors

from liftspeed.config.settings import ProjectConfig
from liftspeed.ingestion.elevators import load_elevators
from liftspeed.schemas.registry import SchemaRegistry
from liftspeed.utils.logging import get_logger

log = get_logger(__name__)

# Number of failure cases shown per dataset
MAX_REPORTED_FAILURES = 5


@dataclass
class ValidationResult:
    """Result of validating a single dataset."""

    dataset_name: str
    schema_name: str | None
    file_path: Path
    exists: bool
    schema_valid: bool | None
    row_count: int | None
    error_message: str | None


def format_schema_errors(error: SchemaErrors | SchemaError) -> str:
    """
    Format a Pandera error for display.

    Args:
        error: Eager or lazy Pandera validation error.

    Returns:
        Formatted message listing the first failure cases.
    """
    failures = getattr(error, "failure_cases", None)
    if isinstance(failures, pd.DataFrame) and not failures.empty:
        n_failures = len(failures)
        columns = [c for c in ("column", "check", "failure_case") if c in failures.columns]
        shown = failures[columns].head(MAX_REPORTED_FAILURES).to_string(index=False)
        if n_failures > MAX_REPORTED_FAILURES:
            return (
                f"{n_failures} validation errors "
                f"(showing first {MAX_REPORTED_FAILURES}):\n{shown}"
            )
        return f"{n_failures} validation error(s):\n{shown}"

    return str(error).split("\n")[0][:200]


def validate_frame(
    df: pd.DataFrame,
    schema_name: str,
    *,
    dataset_name: str = "dataframe",
    file_path: Path | None = None,
) -> ValidationResult:
    """
    Validate an in-memory DataFrame against a registered schema.

    Args:
        df: DataFrame to validate.
        schema_name: Registered schema name.
        dataset_name: Label used in reports.
        file_path: Source file, if any.

    Returns:
        ValidationResult with all failures collected (lazy validation).
    """
    try:
        SchemaRegistry.validate(df, schema_name, lazy=True)
    except (SchemaErrors, SchemaError) as e:
        error_msg = format_schema_errors(e)
        log.error(
            "Schema validation failed",
            dataset=dataset_name,
            schema=schema_name,
            error=error_msg,
        )
        return ValidationResult(
            dataset_name=dataset_name,
            schema_name=schema_name,
            file_path=file_path or Path("<memory>"),
            exists=True,
            schema_valid=False,
            row_count=len(df),
            error_message=error_msg,
        )

    log.info("Validation passed", dataset=dataset_name, schema=schema_name, rows=len(df))
    return ValidationResult(
        dataset_name=dataset_name,
        schema_name=schema_name,
        file_path=file_path or Path("<memory>"),
        exists=True,
        schema_valid=True,
        row_count=len(df),
        error_message=None,
    )


class ValidationRunner:
    """
    Runs validation for the configured datasets.

    The raw extract is checked against ``raw_elevator``; the cleaned
    dataset (if the ETL step has run) against ``cleaned_elevator``.
    """

    def __init__(self, config: ProjectConfig) -> None:
        """
        Initialize validation runner.

        Args:
            config: Project configuration containing data paths.
        """
        self.config = config

    def run(self) -> list[ValidationResult]:
        """
        Run validation for all datasets in config.

        Returns:
            List of validation results, one per dataset.
        """
        return [
            self._validate_file(
                "elevators", self.config.data.resolve(), "raw_elevator", raw=True
            ),
            self._validate_file(
                "elevators_cleaned",
                self.config.cleaned_data_path,
                "cleaned_elevator",
                raw=False,
            ),
        ]

    def _validate_file(
        self, dataset_name: str, file_path: Path, schema_name: str, *, raw: bool
    ) -> ValidationResult:
        """Load and validate a single file."""
        if not file_path.exists():
            log.warning("Data file not found", dataset=dataset_name, path=str(file_path))
            return ValidationResult(
                dataset_name=dataset_name,
                schema_name=schema_name,
                file_path=file_path,
                exists=False,
                schema_valid=None,
                row_count=None,
                error_message="File not found",
            )

        try:
            df = load_elevators(file_path) if raw else pd.read_csv(file_path)
        except (ValueError, pd.errors.ParserError, UnicodeDecodeError) as e:
            error_msg = f"{type(e).__name__}: {e!s}"
            log.error("Validation error", dataset=dataset_name, error=error_msg)
            return ValidationResult(
                dataset_name=dataset_name,
                schema_name=schema_name,
                file_path=file_path,
                exists=True,
                schema_valid=False,
                row_count=None,
                error_message=error_msg,
            )

        return validate_frame(
            df, schema_name, dataset_name=dataset_name, file_path=file_path
        )
