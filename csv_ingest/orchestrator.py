"""
Orchestrator for one ingestion run: resolve -> parse -> write.

Usage (example from CLI):
    from csv_ingest.orchestrator import run_ingest
    from csv_ingest.resolver import resolve_input

    result = run_ingest(resolve_input(sys.argv))
    print(result["rows_committed"])

The input file is opened and its header read before any connection is made,
so file problems never touch the database. The connection is held for the
whole run and released exactly once on the way out.
"""

from __future__ import annotations

from typing import Optional, Sequence

from csv_ingest.config import Settings, get_settings
from csv_ingest.domain.models import IngestResult, InputSpec
from csv_ingest.errors import IngestError
from csv_ingest.infrastructure.db_factory import ConnectFn, connection_scope, get_sync_connection
from csv_ingest.parser import open_records
from csv_ingest.transforms import TransformTable, parse_transform_spec
from csv_ingest.utils.logging import get_logger
from csv_ingest.utils.profiler import ProfileStats, profile_block
from csv_ingest.writer import Echo, IngestionWriter, WriteSummary, resolve_columns

log = get_logger(__name__)


def _round_float(value: float, decimals: int = 2) -> float:
    """Round a float to specified decimal places for human-readable output."""
    return round(value, decimals)


def _build_result(
    input_spec: InputSpec,
    table: str,
    rows_read: int,
    rows_skipped: int,
    summary: WriteSummary,
    stats: ProfileStats,
) -> IngestResult:
    duration = stats.duration_seconds
    return IngestResult(
        path=input_spec.path,
        table=table,
        rows_read=rows_read,
        rows_written=summary.rows_written,
        rows_committed=summary.rows_committed,
        rows_skipped=rows_skipped,
        failed_row=None,
        error=None,
        duration_seconds=_round_float(duration),
        throughput_rows_per_sec=_round_float(summary.rows_written / duration) if duration else 0.0,
        peak_rss_bytes=stats.peak_rss_bytes,
    )


def run_ingest(
    input_spec: InputSpec,
    settings: Optional[Settings] = None,
    *,
    connect: Optional[ConnectFn] = None,
    echo: Optional[Echo] = None,
    columns: Optional[Sequence[str]] = None,
    transforms: Optional[TransformTable] = None,
) -> IngestResult:
    """
    Ingest one CSV file into the configured table.

    Parameters
    ----------
    input_spec : InputSpec
        Resolved input path.
    settings : Settings | None
        Effective settings. Defaults to `get_settings()`.
    connect : callable | None
        Zero-argument connection factory. Defaults to `get_sync_connection`
        with `settings`.
    echo : callable | None
        Receives one line per committed record. Defaults to `typer.echo`.
    columns : sequence[str] | None
        CSV columns to insert, in order. Defaults to the full header.
    transforms : mapping | None
        Column transform table. Defaults to `settings.ingest_transforms`.

    Returns
    -------
    IngestResult
        Counts, duration, and throughput of the run.

    Raises
    ------
    IngestError
        Any failure. Errors raised after the connection was opened carry the
        partial `IngestResult` on `exc.result`.
    """
    settings = settings or get_settings()
    table_transforms = (
        parse_transform_spec(settings.ingest_transforms) if transforms is None else transforms
    )
    table = f"{settings.ingest_schema}.{settings.ingest_table}"
    if connect is None:
        connect = lambda: get_sync_connection(settings=settings)  # noqa: E731

    log.info(f"[INGEST START] {input_spec.path}", extra={"path": input_spec.path, "table": table})

    with open_records(input_spec.path, on_malformed=settings.ingest_on_malformed) as stream:
        insert_columns = resolve_columns(stream.header, columns)
        unused = sorted(set(table_transforms) - set(insert_columns))
        if unused:
            log.warning("Transforms configured for columns not inserted", extra={"columns": unused})

        writer: Optional[IngestionWriter] = None
        with profile_block(input_spec.path) as stats:
            try:
                with connection_scope(connect) as conn:
                    writer = IngestionWriter(
                        conn,
                        settings.ingest_table,
                        insert_columns,
                        table_transforms,
                        schema=settings.ingest_schema,
                        commit_every=settings.ingest_commit_every,
                        echo=echo,
                    )
                    writer.write(stream)
            except IngestError as exc:
                failure = exc
            else:
                failure = None

        summary = writer.summary if writer is not None else WriteSummary()
        result = _build_result(
            input_spec, table, stream.records_read, stream.skipped, summary, stats
        )

    if failure is not None:
        result["failed_row"] = getattr(failure, "row_number", None)
        result["error"] = str(failure)
        failure.result = result
        log.error(
            f"[INGEST FAILED] {input_spec.path}",
            extra={
                "path": input_spec.path,
                "rows_committed": result["rows_committed"],
                "failed_row": result["failed_row"],
            },
        )
        raise failure

    log.info(
        f"[INGEST SUCCESS] {input_spec.path}",
        extra={
            "path": input_spec.path,
            "rows": result["rows_written"],
            "skipped": result["rows_skipped"],
            "duration": result["duration_seconds"],
            "throughput_rps": result["throughput_rows_per_sec"],
        },
    )
    return result


__all__ = ["run_ingest"]
