"""
CSV record parsing.

`open_records` opens the input file, reads the header line eagerly, and yields
a `RecordStream`: a single-pass, forward-only iterator producing one
header-keyed `Record` per data line. Nothing is buffered beyond the current
line, so memory stays flat for arbitrarily large files.

Parsing goes through the stdlib `csv` reader, so RFC-4180 quoting (embedded
commas, quotes, and newlines inside quoted fields) is accepted on top of the
plain comma-split format.

Row policy:
- blank lines are skipped and not numbered;
- a line with fewer fields than the header is padded with empty strings;
- a line with more fields than the header is malformed: `on_malformed="fail"`
  raises `MalformedRowError`, `on_malformed="skip"` logs and drops it.
"""

from __future__ import annotations

import csv
from contextlib import contextmanager
from pathlib import Path
from typing import IO, Generator, Iterator, List, Literal

from csv_ingest.domain.models import Record
from csv_ingest.errors import EmptyFileError, InputFileError, MalformedRowError
from csv_ingest.utils.logging import get_logger

log = get_logger(__name__)

MalformedPolicy = Literal["fail", "skip"]
MALFORMED_POLICIES = ("fail", "skip")


class RecordStream:
    """
    Lazy, non-restartable sequence of records over an open CSV handle.

    Attributes
    ----------
    header : list[str]
        Column names from the first line, in file order.
    row_number : int
        1-based data-row number of the last row read (skipped rows included).
    records_read : int
        Records emitted so far.
    skipped : int
        Malformed rows dropped under the "skip" policy.
    """

    def __init__(
        self,
        handle: IO[str],
        *,
        path: str,
        on_malformed: MalformedPolicy = "fail",
        delimiter: str = ",",
    ) -> None:
        if on_malformed not in MALFORMED_POLICIES:
            raise ValueError(f"on_malformed must be one of {MALFORMED_POLICIES}, got {on_malformed!r}")
        self.path = path
        self._on_malformed = on_malformed
        self._reader = csv.reader(handle, delimiter=delimiter, strict=True)
        self._exhausted = False
        self.row_number = 0
        self.records_read = 0
        self.skipped = 0
        self.header = self._read_header()

    @property
    def line_number(self) -> int:
        """File line number the reader has consumed up to."""
        return self._reader.line_num

    def _next_fields(self) -> List[str]:
        try:
            return next(self._reader)
        except UnicodeDecodeError as exc:
            raise InputFileError(
                f"{self.path}: cannot decode input near line {self._reader.line_num + 1}: {exc.reason}"
            ) from exc
        except csv.Error as exc:
            raise MalformedRowError(
                f"{self.path}: line {self._reader.line_num}: {exc}",
                row_number=self.row_number + 1,
                line_number=self._reader.line_num,
            ) from exc

    def _read_header(self) -> List[str]:
        try:
            fields = self._next_fields()
            while not fields:
                fields = self._next_fields()
        except StopIteration:
            raise EmptyFileError(f"{self.path}: file is empty, expected a header line") from None

        header = [name.strip() for name in fields]
        if any(not name for name in header):
            raise MalformedRowError(
                f"{self.path}: header line contains an empty column name",
                row_number=0,
                line_number=self._reader.line_num,
            )
        duplicates = sorted({name for name in header if header.count(name) > 1})
        if duplicates:
            raise MalformedRowError(
                f"{self.path}: duplicate header column(s): {', '.join(duplicates)}",
                row_number=0,
                line_number=self._reader.line_num,
            )
        log.debug("Header read", extra={"path": self.path, "columns": header})
        return header

    def __iter__(self) -> Iterator[Record]:
        return self

    def __next__(self) -> Record:
        if self._exhausted:
            raise StopIteration
        width = len(self.header)
        while True:
            try:
                fields = self._next_fields()
            except StopIteration:
                self._exhausted = True
                raise
            if not fields:
                continue

            self.row_number += 1
            if len(fields) > width:
                message = (
                    f"{self.path}: row {self.row_number} (line {self._reader.line_num}) has "
                    f"{len(fields)} fields, header declares {width}"
                )
                if self._on_malformed == "fail":
                    raise MalformedRowError(
                        message, row_number=self.row_number, line_number=self._reader.line_num
                    )
                self.skipped += 1
                log.warning(
                    "Skipping malformed row",
                    extra={"row": self.row_number, "line": self._reader.line_num, "fields": len(fields)},
                )
                continue

            if len(fields) < width:
                fields = fields + [""] * (width - len(fields))
            self.records_read += 1
            return dict(zip(self.header, fields))


@contextmanager
def open_records(
    path: str | Path,
    *,
    on_malformed: MalformedPolicy = "fail",
    delimiter: str = ",",
    encoding: str = "utf-8-sig",
) -> Generator[RecordStream, None, None]:
    """
    Open a CSV file and yield a `RecordStream` over its data rows.

    The header is read before this returns control, so missing, unreadable,
    and empty files fail here rather than on first iteration. The file is
    closed when the block exits, whether or not the stream was exhausted.

    Raises
    ------
    InputFileError
        If the path cannot be opened (the original OSError is chained).
    EmptyFileError
        If the file has no header line.
    MalformedRowError
        If the header line is unusable (empty or duplicate column names).
    """
    file_path = Path(path).expanduser()
    try:
        handle = file_path.open("r", encoding=encoding, newline="")
    except FileNotFoundError as exc:
        raise InputFileError(f"input file not found: {file_path}") from exc
    except OSError as exc:
        raise InputFileError(f"cannot open input file {file_path}: {exc.strerror or exc}") from exc

    try:
        yield RecordStream(handle, path=str(file_path), on_malformed=on_malformed, delimiter=delimiter)
    finally:
        handle.close()


def iter_records(
    path: str | Path,
    *,
    on_malformed: MalformedPolicy = "fail",
    delimiter: str = ",",
    encoding: str = "utf-8-sig",
) -> Iterator[Record]:
    """
    Generator form of `open_records` for callers that only need the records.

    Unlike `open_records`, file errors surface on the first `next()` call.
    """
    with open_records(path, on_malformed=on_malformed, delimiter=delimiter, encoding=encoding) as stream:
        yield from stream


__all__ = [
    "MALFORMED_POLICIES",
    "MalformedPolicy",
    "RecordStream",
    "iter_records",
    "open_records",
]
