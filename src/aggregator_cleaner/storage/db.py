"""
Инициализация базы данных и сессий SQLAlchemy.

Назначение:
- сборка URL из настроек (postgres | sqlite3)
- создание engine
- контекстный менеджер для сессий
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from urllib.parse import parse_qsl

from sqlalchemy import URL, Engine, create_engine, event
from sqlalchemy.orm import Session, sessionmaker

from aggregator_cleaner.common.config import Settings, get_settings
from aggregator_cleaner.common.errors import ConfigurationError

SUPPORTED_DRIVERS = ("postgres", "sqlite3")


# =============================================================================
# URL / ENGINE
# =============================================================================
def build_database_url(settings: Settings) -> URL:
    driver = (settings.storage_driver or "").strip().lower()
    if driver == "postgres":
        return URL.create(
            "postgresql+psycopg",
            username=settings.pg_username,
            password=settings.pg_password,
            host=settings.pg_host,
            port=settings.pg_port,
            database=settings.pg_db_name,
            query=dict(parse_qsl(settings.pg_params or "")),
        )
    if driver == "sqlite3":
        return URL.create("sqlite", database=settings.sqlite_datasource)
    raise ConfigurationError(
        "Неподдерживаемый драйвер хранилища",
        details={"driver": settings.storage_driver, "supported": list(SUPPORTED_DRIVERS)},
    )


def _enable_sqlite_foreign_keys(dbapi_connection, _record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_engine(settings: Settings) -> Engine:
    url = build_database_url(settings)
    engine = create_engine(url, pool_pre_ping=True)
    if url.get_backend_name() == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


_ENGINE: Engine | None = None


def get_engine() -> Engine:
    global _ENGINE
    if _ENGINE is None:
        _ENGINE = create_db_engine(get_settings())
    return _ENGINE


# =============================================================================
# CONTEXT MANAGER
# =============================================================================
@contextmanager
def db_session(engine: Engine | None = None) -> Iterator[Session]:
    """
    Контекстный менеджер для работы с БД.

    Использование:
        with db_session(engine) as session:
            apply_retention(session, predicate)
    """
    factory = sessionmaker(bind=engine or get_engine(), autoflush=False)
    session: Session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
