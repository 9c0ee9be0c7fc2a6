"""
Применение правила ретеншна к БД.

Назначение:
- выбор устаревших кластеров по RetentionPredicate
- удаление (или только подсчёт в dry-run) их строк во всех зависимых таблицах
- VACUUM после очистки
"""

from __future__ import annotations

from dataclasses import dataclass, field

from sqlalchemy import Engine, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from aggregator_cleaner.common.errors import StorageError
from aggregator_cleaner.common.logging import get_project_logger
from aggregator_cleaner.domain.retention import RetentionPredicate

from .repositories import ClusterReportRepository

log = get_project_logger()


@dataclass
class RetentionResult:
    clusters: list[str]
    rows_by_table: dict[str, int] = field(default_factory=dict)
    dry_run: bool = False

    @property
    def total_rows(self) -> int:
        return sum(self.rows_by_table.values())


def apply_retention(
    session: Session, predicate: RetentionPredicate, *, dry_run: bool = False
) -> RetentionResult:
    """
    Применение политики ретеншна.
    Коммит/откат — на стороне db_session().
    """
    repo = ClusterReportRepository(session)
    try:
        clusters = repo.eligible_clusters(predicate)
        if not clusters:
            return RetentionResult(clusters=[], dry_run=dry_run)
        if dry_run:
            rows = repo.count_cluster_rows(clusters)
        else:
            rows = repo.delete_cluster_rows(clusters)
    except SQLAlchemyError as e:
        raise StorageError(
            "Не удалось применить ретеншн",
            details={"err": str(e)[:300], "scope": predicate.scope},
        ) from e

    for table, count in rows.items():
        log.debug(
            "retention_table_processed",
            extra={"payload": {"table": table, "rows": count, "dry_run": dry_run}},
        )
    return RetentionResult(clusters=clusters, rows_by_table=rows, dry_run=dry_run)


def vacuum_database(engine: Engine) -> None:
    """
    VACUUM нельзя выполнять внутри транзакции -> AUTOCOMMIT.
    """
    statement = "VACUUM VERBOSE" if engine.dialect.name == "postgresql" else "VACUUM"
    try:
        with engine.connect().execution_options(isolation_level="AUTOCOMMIT") as conn:
            conn.execute(text(statement))
    except SQLAlchemyError as e:
        raise StorageError("Не удалось выполнить VACUUM", details={"err": str(e)[:300]}) from e
