"""
Database connection factory for csv-ingest.

Builds the DSN from settings, opens a psycopg connection with retry for
transient connection failures (tenacity), and wraps it in a scoped context
manager that closes it exactly once on every exit path.

Only connection acquisition is retried; statements are never retried.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Callable, Generator, Optional

import psycopg
from psycopg import Connection
from psycopg.conninfo import make_conninfo
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from csv_ingest.config import Settings, get_settings
from csv_ingest.errors import StoreUnavailableError
from csv_ingest.utils.logging import get_logger

log = get_logger(__name__)

ConnectFn = Callable[[], Connection]


def build_dsn(settings: Optional[Settings] = None) -> str:
    """
    Compose a libpq conninfo string from settings; `DB_DSN` wins when set.

    Values are quoted by psycopg, so credentials may contain any character.
    """
    settings = settings or get_settings()
    if settings.db_dsn:
        return settings.db_dsn
    return make_conninfo(
        host=settings.db_host,
        port=settings.db_port,
        user=settings.db_user,
        password=settings.db_password,
        dbname=settings.db_name,
    )


def get_sync_connection(
    dsn: Optional[str] = None,
    settings: Optional[Settings] = None,
) -> Connection:
    """
    Acquire a dedicated synchronous connection with automatic retry.

    Retries `db_connect_retries` times with exponential backoff for transient
    connection errors. The connection starts outside autocommit, so every
    insert belongs to a transaction the caller commits explicitly.

    Returns
    -------
    Connection
        A new psycopg connection instance.

    Raises
    ------
    psycopg.OperationalError
        If connection fails after all retry attempts.
    """
    settings = settings or get_settings()
    conninfo = dsn or build_dsn(settings)
    retrying = Retrying(
        stop=stop_after_attempt(settings.db_connect_retries),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type((psycopg.OperationalError, psycopg.InterfaceError)),
        before_sleep=lambda state: log.warning(
            "Connection attempt failed, retrying",
            extra={"attempt": state.attempt_number, "error": str(state.outcome.exception())},
        ),
        reraise=True,
    )
    return retrying(
        psycopg.connect,
        conninfo,
        connect_timeout=settings.db_connect_timeout_s,
        autocommit=False,
    )


@contextmanager
def connection_scope(connect: Optional[ConnectFn] = None) -> Generator[Connection, None, None]:
    """
    Context manager owning one connection for the duration of a block.

    The connection is closed exactly once when the block exits, success or
    failure. Uncommitted work is not committed here; psycopg rolls it back on
    close. Connection failures surface as `StoreUnavailableError`.

    Example
    -------
        with connection_scope() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1")
    """
    try:
        conn = connect() if connect is not None else get_sync_connection()
    except psycopg.Error as exc:
        raise StoreUnavailableError(f"cannot connect to the database: {exc}") from exc
    log.debug("Connection opened")
    try:
        yield conn
    finally:
        conn.close()
        log.debug("Connection closed")


__all__ = [
    "ConnectFn",
    "build_dsn",
    "connection_scope",
    "get_sync_connection",
]
