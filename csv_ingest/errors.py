"""
Error taxonomy for csv-ingest.

Every failure the tool can report maps to one exception class carrying the
process exit code the CLI should use. Nothing below is meant to be caught and
ignored; the CLI is the single place that turns these into messages.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from csv_ingest.domain.models import IngestResult


class IngestError(Exception):
    """
    Base exception for all csv-ingest failures.

    `result` is attached by the orchestrator when the failure happened after
    ingestion started, so callers can still report partial progress.
    """

    exit_code: int = 1
    result: Optional["IngestResult"] = None


class UsageError(IngestError):
    """Raised for a missing or invalid command-line argument or option."""

    exit_code = 2


class InputFileError(IngestError, OSError):
    """Raised when the input file cannot be opened, read, or decoded."""

    exit_code = 3


class EmptyFileError(InputFileError):
    """Raised when the input file has no header line."""


class MalformedRowError(IngestError):
    """Raised for a data line carrying more fields than the header declares."""

    exit_code = 4

    def __init__(self, message: str, row_number: int, line_number: int) -> None:
        super().__init__(message)
        self.row_number = row_number
        self.line_number = line_number


class StoreUnavailableError(IngestError):
    """Raised when no database connection could be established."""

    exit_code = 6


class WriteError(IngestError):
    """
    Raised when the store rejects a record (insert, transform, or commit).

    Attributes
    ----------
    row_number : int
        1-based position of the failing record among data rows.
    rows_committed : int
        Records durably committed before the failure.
    cause_message : str
        The underlying store or conversion message.
    line_number : int or None
        File line of the failing record, when known.
    """

    exit_code = 5

    def __init__(
        self,
        row_number: int,
        rows_committed: int,
        cause_message: str,
        table: Optional[str] = None,
        line_number: Optional[int] = None,
    ) -> None:
        self.row_number = row_number
        self.rows_committed = rows_committed
        self.cause_message = cause_message
        self.table = table
        self.line_number = line_number
        target = f" into {table}" if table else ""
        super().__init__(f"{self._headline()}{target}: {cause_message}")

    def _headline(self) -> str:
        where = f" (line {self.line_number})" if self.line_number is not None else ""
        return f"failed to write row {self.row_number}{where}"


class CommitError(WriteError):
    """
    Raised when committing already-inserted records fails.

    No single record was rejected: the rows `row_number` through `last_row`
    were inserted but their transaction could not be committed and is rolled
    back.
    """

    def __init__(
        self,
        row_number: int,
        last_row: int,
        rows_committed: int,
        cause_message: str,
        table: Optional[str] = None,
    ) -> None:
        self.last_row = last_row
        super().__init__(row_number, rows_committed, cause_message, table=table)

    def _headline(self) -> str:
        if self.last_row == self.row_number:
            return f"failed to commit row {self.row_number}"
        return f"failed to commit rows {self.row_number}-{self.last_row}"


__all__ = [
    "IngestError",
    "UsageError",
    "InputFileError",
    "EmptyFileError",
    "MalformedRowError",
    "StoreUnavailableError",
    "WriteError",
    "CommitError",
]
