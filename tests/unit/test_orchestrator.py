from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, List

import psycopg
import pytest

from csv_ingest import orchestrator
from csv_ingest.config import Settings
from csv_ingest.domain.models import InputSpec
from csv_ingest.errors import (
    EmptyFileError,
    InputFileError,
    MalformedRowError,
    StoreUnavailableError,
    UsageError,
    WriteError,
)
from csv_ingest.orchestrator import run_ingest

EXAMPLE_ROWS = 6
EXAMPLE_IS_ALIVE = [0, 1, 1, 1, 0, 1]


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None)


class _ConnectProbe:
    """Connection factory counting how often a connection was requested."""

    def __init__(self, conn: Any) -> None:
        self.conn = conn
        self.calls = 0

    def __call__(self) -> Any:
        self.calls += 1
        return self.conn


def test_example_dataset_end_to_end(settings: Settings, fake_connection, people_csv: Path) -> None:
    connect = _ConnectProbe(fake_connection)
    echoed: List[str] = []

    result = run_ingest(InputSpec(path=str(people_csv)), settings, connect=connect, echo=echoed.append)

    assert result["rows_read"] == EXAMPLE_ROWS
    assert result["rows_written"] == EXAMPLE_ROWS
    assert result["rows_committed"] == EXAMPLE_ROWS
    assert result["rows_skipped"] == 0
    assert result["table"] == "public.people"
    assert result["error"] is None
    assert [row[-1] for row in fake_connection.committed] == EXAMPLE_IS_ALIVE
    assert len(echoed) == EXAMPLE_ROWS
    assert connect.calls == 1
    assert fake_connection.close_calls == 1


def test_missing_file_never_connects(settings: Settings, fake_connection, tmp_path: Path) -> None:
    connect = _ConnectProbe(fake_connection)

    with pytest.raises(InputFileError):
        run_ingest(InputSpec(path=str(tmp_path / "missing.csv")), settings, connect=connect)

    assert connect.calls == 0


def test_empty_file_never_connects(settings: Settings, fake_connection, write_csv) -> None:
    connect = _ConnectProbe(fake_connection)

    with pytest.raises(EmptyFileError):
        run_ingest(InputSpec(path=str(write_csv(""))), settings, connect=connect)

    assert connect.calls == 0


def test_unknown_column_never_connects(settings: Settings, fake_connection, people_csv: Path) -> None:
    connect = _ConnectProbe(fake_connection)

    with pytest.raises(UsageError):
        run_ingest(InputSpec(path=str(people_csv)), settings, connect=connect, columns=["nope"])

    assert connect.calls == 0


def test_nth_insert_failure_reports_row_and_releases_once(
    settings: Settings, make_connection: Callable[..., Any], people_csv: Path
) -> None:
    conn = make_connection(fail_on_execute=3)

    with pytest.raises(WriteError) as excinfo:
        run_ingest(InputSpec(path=str(people_csv)), settings, connect=lambda: conn, echo=lambda _: None)

    error = excinfo.value
    assert error.row_number == 3
    assert error.line_number == 4
    assert len(conn.committed) == 2
    assert conn.close_calls == 1
    assert error.result is not None
    assert error.result["rows_committed"] == 2
    assert error.result["failed_row"] == 3
    assert "row 3" in error.result["error"]


def test_malformed_row_stops_run_and_keeps_committed_rows(
    settings: Settings, fake_connection, write_csv
) -> None:
    path = write_csv("first_name,is_alive\nGraham,no\nJohn,yes,extra\nEric,yes\n")

    with pytest.raises(MalformedRowError) as excinfo:
        run_ingest(InputSpec(path=str(path)), settings, connect=lambda: fake_connection, echo=lambda _: None)

    assert excinfo.value.row_number == 2
    assert fake_connection.committed == [["Graham", 0]]
    assert fake_connection.close_calls == 1
    assert excinfo.value.result["rows_committed"] == 1


def test_skip_policy_continues_past_malformed_rows(fake_connection, write_csv) -> None:
    settings = Settings(_env_file=None, ingest_on_malformed="skip")
    path = write_csv("first_name,is_alive\nGraham,no\nJohn,yes,extra\nEric,yes\n")

    result = run_ingest(InputSpec(path=str(path)), settings, connect=lambda: fake_connection, echo=lambda _: None)

    assert result["rows_written"] == 2
    assert result["rows_skipped"] == 1
    assert fake_connection.committed == [["Graham", 0], ["Eric", 1]]


def test_settings_drive_table_transforms_and_commits(fake_connection, people_csv: Path) -> None:
    settings = Settings(
        _env_file=None,
        ingest_table="monty",
        ingest_schema="python",
        ingest_commit_every=0,
        ingest_transforms="is_alive=yes_no,age=int",
    )

    result = run_ingest(
        InputSpec(path=str(people_csv)), settings, connect=lambda: fake_connection, echo=lambda _: None
    )

    assert result["table"] == "python.monty"
    assert fake_connection.commit_calls == 1
    assert fake_connection.committed[0] == ["Graham", "Chapman", 48, "Cambridge", 0]


def test_explicit_columns_and_transforms(settings: Settings, fake_connection, people_csv: Path) -> None:
    run_ingest(
        InputSpec(path=str(people_csv)),
        settings,
        connect=lambda: fake_connection,
        echo=lambda _: None,
        columns=["last_name", "is_alive"],
        transforms={},
    )

    assert fake_connection.committed[0] == ["Chapman", "no"]


def test_connection_failure_is_store_unavailable(settings: Settings, people_csv: Path) -> None:
    def refuse() -> Any:
        raise psycopg.OperationalError("connection refused")

    with pytest.raises(StoreUnavailableError) as excinfo:
        run_ingest(InputSpec(path=str(people_csv)), settings, connect=refuse)

    assert excinfo.value.exit_code == 6


def test_default_connect_uses_settings(
    monkeypatch: pytest.MonkeyPatch, settings: Settings, fake_connection, people_csv: Path
) -> None:
    seen: List[Settings] = []

    def fake_get_sync_connection(dsn: Any = None, settings: Any = None) -> Any:
        seen.append(settings)
        return fake_connection

    monkeypatch.setattr(orchestrator, "get_sync_connection", fake_get_sync_connection)

    run_ingest(InputSpec(path=str(people_csv)), settings, echo=lambda _: None)

    assert seen == [settings]
    assert fake_connection.close_calls == 1
