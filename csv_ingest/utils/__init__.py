"""
Utilities package for csv-ingest.

Exports shared helpers for logging and profiling.
Keep this package lightweight and free of ingestion logic.
"""

from csv_ingest.utils.logging import configure_logging, get_logger
from csv_ingest.utils.profiler import ProfileStats, profile_block

__all__ = [
    "configure_logging",
    "get_logger",
    "ProfileStats",
    "profile_block",
]
