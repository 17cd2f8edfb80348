"""
Configuration settings for csv-ingest.

Uses Pydantic Settings to load environment variables for the database
connection, logging, and ingestion defaults. CLI options are layered on top of
these values by the entry point.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Database
    db_host: str = Field("localhost", alias="DB_HOST")
    db_port: int = Field(5432, alias="DB_PORT")
    db_user: str = Field("postgres", alias="DB_USER")
    db_password: str = Field("postgres", alias="DB_PASSWORD")
    db_name: str = Field("csv_ingest", alias="DB_NAME")
    db_dsn: Optional[str] = Field(None, alias="DB_DSN")
    db_connect_timeout_s: int = Field(10, alias="DB_CONNECT_TIMEOUT_S", ge=1)
    db_connect_retries: int = Field(3, alias="DB_CONNECT_RETRIES", ge=1)

    # Application
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    # Ingestion defaults
    ingest_table: str = Field("people", alias="INGEST_TABLE", min_length=1)
    ingest_schema: str = Field("public", alias="INGEST_SCHEMA", min_length=1)
    ingest_commit_every: int = Field(1, alias="INGEST_COMMIT_EVERY", ge=0)
    ingest_on_malformed: Literal["fail", "skip"] = Field("fail", alias="INGEST_ON_MALFORMED")
    ingest_transforms: str = Field("is_alive=yes_no", alias="INGEST_TRANSFORMS")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = ["Settings", "get_settings"]
