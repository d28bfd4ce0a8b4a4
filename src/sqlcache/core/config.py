# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Application configuration via environment variables and .env files."""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from sqlcache.core.constants import (
    DEFAULT_CACHE_NAME,
    DEFAULT_CONNECTION_STRING,
    DEFAULT_SCAN_FREQUENCY,
    DEFAULT_TABLE_NAME,
)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SQLCACHE_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
    )

    # Cache
    cache_name: str = DEFAULT_CACHE_NAME
    enable_logging: bool = False
    order: int = 0
    max_random_second: int = 0
    expiration_scan_frequency: int = DEFAULT_SCAN_FREQUENCY  # seconds

    # Database
    connection_string: str = DEFAULT_CONNECTION_STRING  # may hold {placeholders}
    connection_params: dict[str, str] = {}
    connections: dict[str, str] = {}  # extra logical backends by name
    schema_name: str = ""
    table_name: str = DEFAULT_TABLE_NAME
    auto_create_table: bool = True

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"

    @field_validator("max_random_second", "expiration_scan_frequency")
    @classmethod
    def _non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("must be zero or positive")
        return v


def get_settings() -> Settings:
    return Settings()
