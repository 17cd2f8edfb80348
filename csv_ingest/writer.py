"""
Ingestion writer: transform records and insert them with bound parameters.

One INSERT statement is composed up front from the target table and column
names (quoted as identifiers by `psycopg.sql`); every record is executed
against it with its values passed as parameters, never spliced into the SQL
text.

Commit policy is `commit_every`:
- 1 (default): commit after each record, so a later failure leaves every
  earlier row durable;
- N > 1: commit every N records;
- 0: a single commit once the whole input has been written.

Each record is echoed once the commit covering it succeeds, so an echoed
line always stands for a durable row. Under batched or end-of-run commits the
lines of the open transaction are held until it commits.

On the first failing record the open transaction is rolled back and a
`WriteError` naming the record's row number is raised; remaining records are
not read. A failed commit raises `CommitError`, naming the uncommitted rows.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Optional, Sequence, Tuple

import psycopg
import typer
from psycopg import Connection, sql

from csv_ingest.domain.models import Record
from csv_ingest.errors import CommitError, UsageError, WriteError
from csv_ingest.parser import RecordStream
from csv_ingest.transforms import DEFAULT_TRANSFORMS, TransformTable, apply_transforms
from csv_ingest.utils.logging import get_logger

log = get_logger(__name__)

Echo = Callable[[str], Any]


@dataclass
class WriteSummary:
    """Counters for one `IngestionWriter.write` call."""

    rows_written: int = 0
    rows_committed: int = 0
    commits: int = 0


def resolve_columns(header: Sequence[str], requested: Optional[Sequence[str]] = None) -> List[str]:
    """
    Pick the columns to insert: every header column, or `requested` in its order.

    Raises
    ------
    UsageError
        If `requested` is empty or names a column missing from the header.
    """
    if requested is None:
        return list(header)
    columns = [name.strip() for name in requested if name.strip()]
    if not columns:
        raise UsageError("no columns selected for insert")
    missing = [name for name in columns if name not in header]
    if missing:
        raise UsageError(
            f"column(s) not present in the CSV header: {', '.join(missing)} "
            f"(header: {', '.join(header)})"
        )
    return columns


def build_insert(table: str, columns: Sequence[str], schema: Optional[str] = None) -> sql.Composed:
    """Compose ``INSERT INTO schema.table (cols...) VALUES (%s, ...)``."""
    target = sql.Identifier(schema, table) if schema else sql.Identifier(table)
    return sql.SQL("INSERT INTO {} ({}) VALUES ({})").format(
        target,
        sql.SQL(", ").join(sql.Identifier(name) for name in columns),
        sql.SQL(", ").join(sql.Placeholder() * len(columns)),
    )


def _display(value: Any) -> str:
    return "NULL" if value is None else str(value)


def _position(records: Iterable[Record], index: int) -> Tuple[int, Optional[int]]:
    """Row and line number of the record just read."""
    if isinstance(records, RecordStream):
        return records.row_number, records.line_number
    return index, None


class IngestionWriter:
    """
    Writes records into one table over an open connection.

    The writer does not own the connection: it commits and rolls back, but
    closing is the caller's job (see `connection_scope`).
    """

    def __init__(
        self,
        connection: Connection,
        table: str,
        columns: Sequence[str],
        transforms: Optional[TransformTable] = None,
        *,
        schema: Optional[str] = None,
        commit_every: int = 1,
        echo: Optional[Echo] = None,
    ) -> None:
        if not columns:
            raise UsageError("no columns to insert")
        if commit_every < 0:
            raise UsageError(f"commit_every must be >= 0, got {commit_every}")
        self._conn = connection
        self._table = f"{schema}.{table}" if schema else table
        self._columns = list(columns)
        self._transforms = DEFAULT_TRANSFORMS if transforms is None else transforms
        self._commit_every = commit_every
        self._echo = echo if echo is not None else typer.echo
        self.statement = build_insert(table, self._columns, schema=schema)
        self._summary = WriteSummary()
        self._pending = 0
        self._first_pending = 0
        self._unechoed: List[str] = []

    def write(self, records: Iterable[Record]) -> WriteSummary:
        """
        Insert every record, committing per `commit_every`.

        Returns
        -------
        WriteSummary
            Rows written and committed by this call.

        Raises
        ------
        WriteError
            For the first record whose conversion or insert fails, or as
            `CommitError` when a commit fails. `rows_committed` on the error
            tells how many rows are durable.
        """
        self._summary = WriteSummary()
        self._pending = 0
        self._first_pending = 0
        self._unechoed = []
        log.info(
            f"[WRITE START] {self._table}",
            extra={"table": self._table, "columns": self._columns, "commit_every": self._commit_every},
        )
        try:
            self._write_all(records)
        except WriteError:
            raise
        except Exception:
            # Reading the input failed mid-stream; uncommitted rows must not linger.
            self._rollback()
            raise

        log.info(
            f"[WRITE SUCCESS] {self._table}",
            extra={
                "table": self._table,
                "rows": self._summary.rows_written,
                "commits": self._summary.commits,
            },
        )
        return self._summary

    @property
    def summary(self) -> WriteSummary:
        """Counters of the current or last `write` call, including after a failure."""
        return self._summary

    def _write_all(self, records: Iterable[Record]) -> None:
        row_number = 0
        with self._conn.cursor() as cur:
            for index, record in enumerate(records, start=1):
                row_number, line_number = _position(records, index)
                try:
                    values = list(apply_transforms(record, self._transforms, self._columns).values())
                except (ValueError, TypeError) as exc:
                    raise self._abort(
                        self._write_error(row_number, line_number, f"cannot convert value: {exc}")
                    ) from exc

                try:
                    cur.execute(self.statement, values)
                except psycopg.Error as exc:
                    raise self._abort(
                        self._write_error(row_number, line_number, _store_message(exc))
                    ) from exc

                if not self._pending:
                    self._first_pending = row_number
                self._pending += 1
                self._summary.rows_written += 1
                self._unechoed.append(" ".join(_display(value) for value in values))

                if self._commit_every and self._pending >= self._commit_every:
                    self._commit(row_number)

        if self._pending:
            self._commit(row_number)

    def _commit(self, last_row: int) -> None:
        """Commit the open transaction, then echo the rows it made durable."""
        try:
            self._conn.commit()
        except psycopg.Error as exc:
            error = CommitError(
                row_number=self._first_pending,
                last_row=last_row,
                rows_committed=self._summary.rows_committed,
                cause_message=_store_message(exc),
                table=self._table,
            )
            raise self._abort(error) from exc
        self._summary.rows_committed += self._pending
        self._summary.commits += 1
        self._pending = 0
        for line in self._unechoed:
            self._echo(line)
        self._unechoed.clear()

    def _rollback(self) -> None:
        try:
            self._conn.rollback()
        except psycopg.Error as exc:
            log.warning(
                "Rollback failed",
                extra={"table": self._table, "error": _store_message(exc)},
            )
        if self._pending:
            log.warning(
                "Rolled back uncommitted rows",
                extra={"table": self._table, "rows": self._pending},
            )
        self._pending = 0
        self._unechoed.clear()

    def _write_error(self, row_number: int, line_number: Optional[int], message: str) -> WriteError:
        return WriteError(
            row_number=row_number,
            rows_committed=self._summary.rows_committed,
            cause_message=message,
            table=self._table,
            line_number=line_number,
        )

    def _abort(self, error: WriteError) -> WriteError:
        """Roll back uncommitted rows and log `error` before it is raised."""
        self._rollback()
        log.error(
            f"[WRITE FAILED] {self._table}",
            extra={
                "table": self._table,
                "row": error.row_number,
                "line": error.line_number,
                "rows_committed": error.rows_committed,
                "error": error.cause_message,
            },
        )
        return error


def _store_message(exc: psycopg.Error) -> str:
    """First line of the server's message, or the exception text."""
    primary = exc.diag.message_primary
    if primary:
        return primary
    text = str(exc).strip()
    return text.splitlines()[0] if text else type(exc).__name__


__all__ = [
    "IngestionWriter",
    "WriteSummary",
    "build_insert",
    "resolve_columns",
]
