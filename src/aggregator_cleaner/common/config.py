"""
Централизованная конфигурация проекта (ENV / .env).

Важно:
- настройки читаются из .env и переменных окружения
- типизированные значения через pydantic-settings
- ядро (domain/*) настройки не читает: job и CLI передают их явно
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # -------------------------------------------------------------------------
    # Storage
    # -------------------------------------------------------------------------
    storage_driver: str = Field(default="postgres", alias="STORAGE_DRIVER")  # postgres|sqlite3
    pg_username: str = Field(default="postgres", alias="PG_USERNAME")
    pg_password: str = Field(default="postgres", alias="PG_PASSWORD")
    pg_host: str = Field(default="localhost", alias="PG_HOST")
    pg_port: int = Field(default=5432, alias="PG_PORT")
    pg_db_name: str = Field(default="aggregator", alias="PG_DB_NAME")
    pg_params: str = Field(default="", alias="PG_PARAMS")  # sslmode=disable&...
    sqlite_datasource: str = Field(default="./aggregator.db", alias="SQLITE_DATASOURCE")

    # -------------------------------------------------------------------------
    # Cleaner / Retention
    # -------------------------------------------------------------------------
    max_age: str = Field(default="90 days", alias="MAX_AGE")
    cluster_list_file: str = Field(default="", alias="CLUSTER_LIST_FILE")
    cleanup_interval_sec: int = Field(default=3600, alias="CLEANUP_INTERVAL_SEC")
    metrics_textfile: str | None = Field(default=None, alias="METRICS_TEXTFILE")

    # -------------------------------------------------------------------------
    # Logging
    # -------------------------------------------------------------------------
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="json", alias="LOG_FORMAT")  # json|text

    def model_post_init(self, __context) -> None:
        _apply_file_overrides(self)

    def effective_log_level(self) -> str:
        if self.debug:
            return "DEBUG"
        return (self.log_level or "INFO").upper()


def _apply_file_overrides(settings: Settings) -> None:
    """
    <ALIAS>_FILE=/run/secrets/... -> значение поля берётся из файла.
    """
    alias_to_field = {}
    for name, field in type(settings).model_fields.items():
        alias = field.alias or name
        alias_to_field[str(alias)] = name

    for key, path in os.environ.items():
        if not key.endswith("_FILE"):
            continue
        base = key[: -len("_FILE")]
        target = alias_to_field.get(base)
        if not target:
            continue
        file_path = (path or "").strip()
        if not file_path:
            continue
        try:
            raw = Path(file_path).read_text(encoding="utf-8")
        except OSError as e:
            logging.getLogger("aggregator-cleaner").error(
                "config_file_read_failed",
                extra={"payload": {"env_key": key, "path": file_path, "error": str(e)[:200]}},
            )
            raise RuntimeError(f"Failed to read {key} from {file_path}") from e
        value: object = raw.strip()
        if type(settings).model_fields[target].annotation is int:
            value = int(value)
        setattr(settings, target, value)


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = Settings()
    return _SETTINGS
