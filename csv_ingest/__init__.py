"""
csv-ingest - load a CSV file into a PostgreSQL table from the command line.

The pipeline has three stages run in sequence:

- argument resolution (`resolve_input`): argv -> input path
- record parsing (`open_records`): a single-pass stream of header-keyed rows
- ingestion (`IngestionWriter`): per-column transforms, one parameterized
  INSERT per row, commits per the configured policy

`run_ingest` wires them together with scoped connection handling, logging,
and run profiling; `csv-ingest` is the console entry point.
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from csv_ingest.config import Settings, get_settings
from csv_ingest.domain.models import IngestResult, InputSpec, Record
from csv_ingest.errors import (
    CommitError,
    EmptyFileError,
    IngestError,
    InputFileError,
    MalformedRowError,
    StoreUnavailableError,
    UsageError,
    WriteError,
)
from csv_ingest.orchestrator import run_ingest
from csv_ingest.parser import RecordStream, iter_records, open_records
from csv_ingest.resolver import resolve_input
from csv_ingest.transforms import DEFAULT_TRANSFORMS, parse_transform_spec, yes_no_flag
from csv_ingest.utils.logging import configure_logging, get_logger
from csv_ingest.writer import IngestionWriter, WriteSummary

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Domain
    "IngestResult",
    "InputSpec",
    "Record",
    # Errors
    "CommitError",
    "EmptyFileError",
    "IngestError",
    "InputFileError",
    "MalformedRowError",
    "StoreUnavailableError",
    "UsageError",
    "WriteError",
    # Pipeline stages
    "resolve_input",
    "RecordStream",
    "iter_records",
    "open_records",
    "DEFAULT_TRANSFORMS",
    "parse_transform_spec",
    "yes_no_flag",
    "IngestionWriter",
    "WriteSummary",
    "run_ingest",
    # Logging
    "configure_logging",
    "get_logger",
]
