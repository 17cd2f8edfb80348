"""
Domain models for csv-ingest.

`InputSpec` is the resolved invocation, `Record` is one parsed data row, and
`IngestResult` is the summary contract returned by the orchestrator and
rendered by the reporter.
"""
from __future__ import annotations

from typing import Dict, Optional, TypedDict

from pydantic import BaseModel, Field

# Header name -> raw field value, in header order.
Record = Dict[str, str]


class InputSpec(BaseModel):
    """
    The input file path taken from the process arguments.
    """

    path: str = Field(..., min_length=1, description="Path of the CSV file to ingest.")
    program: str = Field("csv-ingest", description="Program identifier (argv[0]).")

    model_config = {
        "frozen": True,
    }


class IngestResult(TypedDict, total=False):
    """
    Summary of one ingestion run.

    `failed_row` and `error` are only set when the run stopped early.
    """

    path: str
    table: str
    rows_read: int
    rows_written: int
    rows_committed: int
    rows_skipped: int
    failed_row: Optional[int]
    error: Optional[str]
    duration_seconds: float
    throughput_rows_per_sec: float
    peak_rss_bytes: Optional[int]


__all__ = ["InputSpec", "IngestResult", "Record"]
