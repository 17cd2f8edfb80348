from __future__ import annotations

import logging
import sys
from typing import Any, Dict, List, Optional

import typer
from pydantic import ValidationError

from csv_ingest.config import Settings, get_settings
from csv_ingest.errors import IngestError, UsageError, WriteError
from csv_ingest.orchestrator import run_ingest
from csv_ingest.reporter import print_summary
from csv_ingest.resolver import DEFAULT_PROGRAM, resolve_input
from csv_ingest.utils.logging import configure_logging

app = typer.Typer(
    help="Load a CSV file into a PostgreSQL table, one parameterized insert per row.",
    add_completion=False,
)


def _describe_invalid(exc: ValidationError) -> str:
    problems = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
    )
    return f"invalid setting(s): {problems}"


def _effective_settings(overrides: Dict[str, Any]) -> Settings:
    """Layer CLI overrides (None means "not given") on top of env settings, revalidated."""
    update = {key: value for key, value in overrides.items() if value is not None}
    try:
        settings = get_settings()
        if update:
            settings = Settings.model_validate({**settings.model_dump(), **update})
    except ValidationError as exc:
        raise UsageError(_describe_invalid(exc)) from exc
    if not isinstance(logging.getLevelName(settings.log_level.upper()), int):
        raise UsageError(f"unknown log level {settings.log_level!r}")
    return settings


def _report_failure(exc: IngestError, show_summary: bool) -> None:
    typer.echo(f"error: {exc}", err=True)
    if isinstance(exc, WriteError):
        typer.echo(
            f"{exc.rows_committed} row(s) were committed before the failure; "
            f"row {exc.row_number} and later were not written.",
            err=True,
        )
    if show_summary and exc.result is not None:
        print_summary(exc.result)


@app.command()
def ingest(
    ctx: typer.Context,
    args: Optional[List[str]] = typer.Argument(
        None,
        metavar="CSV_PATH",
        help="Path of the CSV file to ingest (first line holds the column names).",
        show_default=False,
    ),
    table: Optional[str] = typer.Option(
        None, "--table", "-t", help="Target table (default from INGEST_TABLE)."
    ),
    schema: Optional[str] = typer.Option(
        None, "--schema", help="Target schema (default from INGEST_SCHEMA)."
    ),
    columns: Optional[str] = typer.Option(
        None,
        "--columns",
        help="Comma-separated CSV columns to insert, in order (default: every header column).",
    ),
    transform: Optional[List[str]] = typer.Option(
        None,
        "--transform",
        "-x",
        help="COLUMN=NAME column transform; repeatable, replaces INGEST_TRANSFORMS.",
    ),
    commit_every: Optional[int] = typer.Option(
        None,
        "--commit-every",
        "-c",
        min=0,
        help="Commit after this many rows; 0 commits once at the end (default 1).",
    ),
    on_malformed: Optional[str] = typer.Option(
        None,
        "--on-malformed",
        help="What to do with rows carrying extra fields: fail or skip.",
    ),
    dsn: Optional[str] = typer.Option(None, "--dsn", help="PostgreSQL DSN override."),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Logging level."),
    json_logs: Optional[bool] = typer.Option(
        None, "--json-logs/--plain-logs", help="Emit logs as JSON."
    ),
    summary: bool = typer.Option(
        True, "--summary/--no-summary", help="Print a run summary to stderr."
    ),
) -> None:
    """
    Ingest CSV_PATH into the target table and echo each written row.
    """
    try:
        settings = _effective_settings(
            {
                "ingest_table": table,
                "ingest_schema": schema,
                "ingest_commit_every": commit_every,
                "ingest_on_malformed": on_malformed,
                "ingest_transforms": ",".join(transform) if transform else None,
                "db_dsn": dsn,
                "log_level": log_level,
                "log_json": json_logs,
            }
        )
        configure_logging(level=settings.log_level, json_logs=settings.log_json)

        input_spec = resolve_input([ctx.info_name or DEFAULT_PROGRAM, *(args or [])])
        result = run_ingest(
            input_spec,
            settings,
            columns=columns.split(",") if columns is not None else None,
        )
    except IngestError as exc:
        _report_failure(exc, summary)
        raise typer.Exit(code=exc.exit_code)

    if summary:
        print_summary(result)


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
