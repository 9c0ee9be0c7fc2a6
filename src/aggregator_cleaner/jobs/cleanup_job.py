"""
Job очистки устаревших данных.

Алгоритм:
- список кластеров: --clusters (CLI) или CLUSTER_LIST_FILE, иначе без ограничения
- MAX_AGE -> cutoff, вместе со списком -> RetentionPredicate
- удаление (или dry-run подсчёт) через storage/retention.py

Любая ошибка источника/конфигурации останавливает прогон ДО обращения к БД.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from sqlalchemy import Engine

from aggregator_cleaner.common.config import Settings, get_settings
from aggregator_cleaner.common.errors import ConfigurationError, SourceAccessError
from aggregator_cleaner.common.logging import get_project_logger
from aggregator_cleaner.common.metrics import (
    record_deleted_rows,
    record_improper_clusters,
    record_run,
    write_metrics_textfile,
)
from aggregator_cleaner.common.time import utc_now
from aggregator_cleaner.domain.cluster_list import (
    EMPTY_CLUSTER_LIST,
    ClusterList,
    merge_cluster_lists,
    read_cluster_list_from_cli_argument,
    read_cluster_list_from_file,
)
from aggregator_cleaner.domain.max_age import parse_max_age
from aggregator_cleaner.domain.retention import RetentionPredicate, build_predicate
from aggregator_cleaner.storage.db import create_db_engine, db_session, get_engine
from aggregator_cleaner.storage.repositories import ClusterReportRepository
from aggregator_cleaner.storage.retention import RetentionResult, apply_retention, vacuum_database

log = get_project_logger()


@dataclass(frozen=True)
class OldReport:
    cluster: str
    org_id: int
    reported_at: datetime
    last_checked_at: datetime | None


# =============================================================================
# ВХОДНЫЕ ДАННЫЕ
# =============================================================================
def resolve_cluster_list(
    settings: Settings, cli_clusters: Sequence[str] | None = None
) -> ClusterList:
    if cli_clusters is not None:
        source = "cli"
        cluster_list = merge_cluster_lists(
            *(read_cluster_list_from_cli_argument(token) for token in cli_clusters)
        )
    elif settings.cluster_list_file:
        source = "file"
        cluster_list = read_cluster_list_from_file(settings.cluster_list_file)
    else:
        return EMPTY_CLUSTER_LIST

    record_improper_clusters(source=source, count=cluster_list.improper_count)
    log.info(
        "cluster_list_resolved",
        extra={
            "payload": {
                "source": source,
                "clusters": len(cluster_list.clusters),
                "improper": cluster_list.improper_count,
            }
        },
    )
    if cluster_list.improper_count:
        log.warning(
            "cluster_list_improper_entries",
            extra={"payload": {"source": source, "improper": cluster_list.improper_count}},
        )
    return cluster_list


def build_run_predicate(
    settings: Settings, cluster_list: ClusterList, now: datetime
) -> RetentionPredicate:
    # Пустой результат из-за сплошь битого списка нельзя трактовать как "все кластеры"
    if cluster_list.all_improper:
        raise ConfigurationError(
            "В списке кластеров нет ни одного корректного идентификатора",
            details={"improper": cluster_list.improper_count},
        )
    max_age = parse_max_age(settings.max_age)
    return build_predicate(now, max_age, cluster_list.clusters)


@contextmanager
def _engine_scope(settings: Settings | None, engine: Engine | None) -> Iterator[Engine]:
    if engine is not None:
        yield engine
        return
    if settings is None:
        yield get_engine()
        return
    own = create_db_engine(settings)
    try:
        yield own
    finally:
        own.dispose()


def _prepare(
    settings: Settings, cli_clusters: Sequence[str] | None, now: datetime | None
) -> RetentionPredicate:
    cluster_list = resolve_cluster_list(settings, cli_clusters)
    return build_run_predicate(settings, cluster_list, now or utc_now())


# =============================================================================
# ОПЕРАЦИИ
# =============================================================================
def list_old_reports(
    settings: Settings | None = None,
    *,
    cli_clusters: Sequence[str] | None = None,
    now: datetime | None = None,
    engine: Engine | None = None,
    output: str | None = None,
) -> list[OldReport]:
    s = settings or get_settings()
    ok = False
    try:
        predicate = _prepare(s, cli_clusters, now)
        with _engine_scope(settings, engine) as eng, db_session(eng) as session:
            rows = [
                OldReport(
                    cluster=r.cluster,
                    org_id=r.org_id,
                    reported_at=r.reported_at,
                    last_checked_at=r.last_checked_at,
                )
                for r in ClusterReportRepository(session).list_old_reports(predicate)
            ]
        if output:
            _write_cluster_list(output, rows)
        log.info(
            "old_reports_listed",
            extra={
                "payload": {
                    "count": len(rows),
                    "cutoff": predicate.cutoff.isoformat(),
                    "scope": predicate.scope,
                }
            },
        )
        ok = True
        return rows
    finally:
        record_run(operation="summary", ok=ok)
        write_metrics_textfile(s.metrics_textfile)


def _write_cluster_list(output: str, rows: Sequence[OldReport]) -> None:
    # Формат совместим с CLUSTER_LIST_FILE: один идентификатор на строку
    try:
        Path(output).write_text("".join(f"{r.cluster}\n" for r in rows), encoding="utf-8")
    except OSError as e:
        raise SourceAccessError(
            "Не удалось записать список кластеров", details={"path": output, "err": str(e)[:200]}
        ) from e


def run(
    settings: Settings | None = None,
    *,
    cli_clusters: Sequence[str] | None = None,
    dry_run: bool = False,
    now: datetime | None = None,
    engine: Engine | None = None,
) -> RetentionResult:
    s = settings or get_settings()
    ok = False
    log.info("cleanup_job_started", extra={"payload": {"dry_run": dry_run}})
    try:
        predicate = _prepare(s, cli_clusters, now)
        log.info(
            "cleanup_predicate_built",
            extra={
                "payload": {
                    "cutoff": predicate.cutoff.isoformat(),
                    "scope": predicate.scope,
                    "clusters": len(predicate.clusters or ()),
                }
            },
        )
        with _engine_scope(settings, engine) as eng, db_session(eng) as session:
            result = apply_retention(session, predicate, dry_run=dry_run)
        if not dry_run:
            record_deleted_rows(result.rows_by_table)
        log.info(
            "cleanup_job_finished",
            extra={
                "payload": {
                    "dry_run": dry_run,
                    "clusters": len(result.clusters),
                    "rows": result.total_rows,
                    "rows_by_table": result.rows_by_table,
                }
            },
        )
        ok = True
        return result
    finally:
        record_run(operation="cleanup", ok=ok)
        write_metrics_textfile(s.metrics_textfile)


def vacuum(settings: Settings | None = None, *, engine: Engine | None = None) -> None:
    s = settings or get_settings()
    ok = False
    log.info("vacuum_started")
    try:
        with _engine_scope(settings, engine) as eng:
            vacuum_database(eng)
        ok = True
        log.info("vacuum_finished")
    finally:
        record_run(operation="vacuum", ok=ok)
        write_metrics_textfile(s.metrics_textfile)
