"""
Infrastructure package for csv-ingest.

Centralizes database connectivity (DSN, connection acquisition, scoped
release). Keep this layer focused on I/O and resource management, decoupled
from parsing and writing logic.
"""

from csv_ingest.infrastructure.db_factory import (
    build_dsn,
    connection_scope,
    get_sync_connection,
)

__all__ = [
    "build_dsn",
    "connection_scope",
    "get_sync_connection",
]
