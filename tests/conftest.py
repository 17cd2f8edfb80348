"""
Pytest configuration for csv-ingest.

Provides fixtures for:
- Settings isolation (no `.env` leakage, fresh settings cache per test)
- Sample CSV files, including the six-row example dataset
- An in-memory fake of the psycopg connection used by the writer
- Database connection management for integration tests
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Callable, Generator, List, Optional

import psycopg
import pytest

from csv_ingest.config import Settings, get_settings

EXAMPLE_CSV = """\
first_name,last_name,age,education,is_alive
Graham,Chapman,48,Cambridge,no
John,Cleese,78,Cambridge,yes
Terry,Gilliam,77,Occidental,yes
Eric,Idle,75,Cambridge,yes
Terry,Jones,77,Oxford,no
Michael,Palin,75,Oxford,yes
"""


class FakeCursor:
    """Cursor double recording executed parameters on its connection."""

    def __init__(self, conn: "FakeConnection") -> None:
        self._conn = conn
        self.closed = False

    def __enter__(self) -> "FakeCursor":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        del exc_type, exc, tb
        self.closed = True

    def execute(self, query: Any, params: Optional[List[Any]] = None) -> None:
        self._conn.statements.append(query)
        self._conn.execute_calls += 1
        if self._conn.fail_on_execute == self._conn.execute_calls:
            raise psycopg.DataError(self._conn.failure_message)
        self._conn.pending.append(list(params or []))


class FakeConnection:
    """
    Minimal stand-in for `psycopg.Connection`.

    Rows sit in `pending` until `commit()` moves them to `committed`;
    `rollback()` discards them, mirroring a transaction.
    """

    def __init__(
        self,
        fail_on_execute: Optional[int] = None,
        fail_on_commit: Optional[int] = None,
        failure_message: str = 'invalid input syntax for type integer: "abc"',
    ) -> None:
        self.fail_on_execute = fail_on_execute
        self.fail_on_commit = fail_on_commit
        self.failure_message = failure_message
        self.statements: List[Any] = []
        self.pending: List[List[Any]] = []
        self.committed: List[List[Any]] = []
        self.execute_calls = 0
        self.commit_calls = 0
        self.rollback_calls = 0
        self.close_calls = 0
        self.closed = False

    def cursor(self) -> FakeCursor:
        if self.closed:
            raise psycopg.InterfaceError("the connection is closed")
        return FakeCursor(self)

    def commit(self) -> None:
        self.commit_calls += 1
        if self.fail_on_commit == self.commit_calls:
            raise psycopg.OperationalError("server closed the connection unexpectedly")
        self.committed.extend(self.pending)
        self.pending.clear()

    def rollback(self) -> None:
        self.rollback_calls += 1
        self.pending.clear()

    def close(self) -> None:
        self.close_calls += 1
        self.closed = True
        self.pending.clear()


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Generator[None, None, None]:
    """Run each test from an empty directory with a fresh settings cache."""
    monkeypatch.chdir(tmp_path)
    for name in (
        "INGEST_TABLE",
        "INGEST_SCHEMA",
        "INGEST_COMMIT_EVERY",
        "INGEST_ON_MALFORMED",
        "INGEST_TRANSFORMS",
        "LOG_JSON",
    ):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def write_csv(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing `content` to a CSV file under tmp_path."""

    def _write(content: str, name: str = "input.csv", encoding: str = "utf-8") -> Path:
        path = tmp_path / name
        path.write_bytes(content.encode(encoding))
        return path

    return _write


@pytest.fixture
def people_csv(write_csv: Callable[..., Path]) -> Path:
    """The six-row example dataset."""
    return write_csv(EXAMPLE_CSV, name="people.csv")


@pytest.fixture
def fake_connection() -> FakeConnection:
    return FakeConnection()


@pytest.fixture
def make_connection() -> Callable[..., FakeConnection]:
    """Factory for fake connections that fail on a chosen execute or commit call."""
    return FakeConnection


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """
    Settings fixture with test-specific overrides.

    Can be overridden via environment variables in CI or local testing.
    """
    return Settings(
        db_host=os.getenv("DB_HOST", "localhost"),
        db_port=int(os.getenv("DB_PORT", "5432")),
        db_user=os.getenv("DB_USER", "postgres"),
        db_password=os.getenv("DB_PASSWORD", "postgres"),
        db_name=os.getenv("DB_NAME", "csv_ingest"),
        db_dsn=os.getenv("DB_DSN"),
        log_level="DEBUG",
        _env_file=None,
    )


@pytest.fixture(scope="session")
def test_dsn(test_settings: Settings) -> str:
    """
    Database connection string for tests.
    """
    from csv_ingest.infrastructure.db_factory import build_dsn

    return build_dsn(test_settings)


@pytest.fixture(scope="session")
def db_connection_available(test_dsn: str) -> bool:
    """
    Check if database is reachable.

    Used to conditionally skip integration tests when DB is not available.
    """
    try:
        with psycopg.connect(test_dsn, connect_timeout=5) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1;")
                cur.fetchone()
        return True
    except psycopg.Error:
        return False


@pytest.fixture(scope="session")
def db_connection(
    test_dsn: str, db_connection_available: bool
) -> Generator[psycopg.Connection, None, None]:
    """
    Provide a session-scoped database connection for integration tests.

    Skips tests if database is not available.
    """
    if not db_connection_available:
        pytest.skip("Database not available for integration tests")

    conn = psycopg.connect(test_dsn)
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture(scope="session")
def db_schema_initialized(db_connection: psycopg.Connection) -> bool:
    """
    Ensure the `people` table exists by applying db/init.sql.
    """
    init_sql_path = Path(__file__).parent.parent / "db" / "init.sql"
    with db_connection.cursor() as cur:
        cur.execute(init_sql_path.read_text(encoding="utf-8"))
    db_connection.commit()
    return True


@pytest.fixture(scope="function")
def clean_people_table(db_connection: psycopg.Connection, db_schema_initialized: bool):
    """
    Empty the people table before and after each test function.
    """
    with db_connection.cursor() as cur:
        cur.execute("TRUNCATE TABLE public.people RESTART IDENTITY;")
    db_connection.commit()
    yield
    with db_connection.cursor() as cur:
        cur.execute("TRUNCATE TABLE public.people RESTART IDENTITY;")
    db_connection.commit()
