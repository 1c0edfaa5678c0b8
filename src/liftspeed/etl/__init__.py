"""
Cleaning pipeline for the elevator dataset.

Orchestrates loading, column cleaning, validation, and saving of the
model-ready table.
"""

from liftspeed.etl.pipeline import ETLResult, clean_elevators, load_cleaned, run_etl

__all__ = ["ETLResult", "clean_elevators", "load_cleaned", "run_etl"]
