"""
CLI cleaner'а.

Операции:
- --summary (по умолчанию): список устаревших отчётов
- --cleanup [--dry-run]: удаление данных устаревших кластеров
- --vacuum: VACUUM базы
- --show-version / --show-authors / --show-configuration
"""

from __future__ import annotations

import argparse
import enum
from collections.abc import Sequence
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError

from aggregator_cleaner.common.config import Settings, get_settings
from aggregator_cleaner.common.errors import (
    AppError,
    ConfigurationError,
    SourceAccessError,
    StorageError,
)
from aggregator_cleaner.common.logging import get_project_logger, setup_logging
from aggregator_cleaner.jobs import cleanup_job

log = get_project_logger()

VERSION = "1.0"
VERSION_BANNER = f"Aggregator Cleaner version {VERSION}"
AUTHORS_BANNER = "Authors: Aggregator Cleaner maintainers"


class ExitStatus(enum.IntEnum):
    OK = 0
    STORAGE_ERROR = 1
    CLEANUP_ERROR = 2
    CONFIGURATION_ERROR = 3
    CLUSTER_LIST_ERROR = 4


@dataclass(frozen=True)
class CliFlags:
    show_version: bool = False
    show_authors: bool = False
    show_configuration: bool = False
    summary: bool = False
    cleanup: bool = False
    dry_run: bool = False
    vacuum: bool = False
    clusters: str | None = None
    output: str | None = None

    def cluster_tokens(self) -> list[str] | None:
        # Разбиение по запятым — ответственность CLI, ядро получает по одному значению
        if self.clusters is None:
            return None
        return [token.strip() for token in self.clusters.split(",")]


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="aggregator-cleaner",
        description="Cleanup of outdated cluster data in the aggregator database",
    )
    p.add_argument("--show-version", action="store_true", help="Show cleaner version")
    p.add_argument("--show-authors", action="store_true", help="Show cleaner authors")
    p.add_argument(
        "--show-configuration", action="store_true", help="Show effective configuration"
    )
    p.add_argument("--summary", action="store_true", help="List outdated reports (default)")
    p.add_argument("--cleanup", action="store_true", help="Delete data of outdated clusters")
    p.add_argument(
        "--dry-run", action="store_true", help="With --cleanup: only count rows to delete"
    )
    p.add_argument("--vacuum", action="store_true", help="Run VACUUM on the database")
    p.add_argument(
        "--clusters",
        default=None,
        help="Comma-separated cluster IDs (overrides CLUSTER_LIST_FILE)",
    )
    p.add_argument("--output", default=None, help="With --summary: write cluster IDs to file")
    return p


def parse_flags(argv: Sequence[str] | None = None) -> CliFlags:
    ns = build_parser().parse_args(argv)
    return CliFlags(**vars(ns))


# =============================================================================
# BANNERS
# =============================================================================
def show_version() -> None:
    print(VERSION_BANNER)


def show_authors() -> None:
    print(AUTHORS_BANNER)


def show_configuration(settings: Settings) -> None:
    """Пароль в лог не попадает."""
    log.info(
        "storage_configuration",
        extra={
            "payload": {
                "driver": settings.storage_driver,
                "pg_username": settings.pg_username,
                "pg_password": "********" if settings.pg_password else "",
                "pg_host": settings.pg_host,
                "pg_port": settings.pg_port,
                "pg_db_name": settings.pg_db_name,
                "pg_params": settings.pg_params,
                "sqlite_datasource": settings.sqlite_datasource,
            }
        },
    )
    log.info(
        "logging_configuration",
        extra={
            "payload": {
                "debug": settings.debug,
                "level": settings.effective_log_level(),
                "format": settings.log_format,
            }
        },
    )
    log.info(
        "cleaner_configuration",
        extra={
            "payload": {
                "records_max_age": settings.max_age,
                "cluster_list_file": settings.cluster_list_file,
                "metrics_textfile": settings.metrics_textfile,
            }
        },
    )


def print_summary(reports: Sequence[cleanup_job.OldReport]) -> None:
    print(f"{'#':>5}  {'Org ID':>10}  {'Cluster':36}  {'Reported at':25}  Last checked at")
    for i, r in enumerate(reports, start=1):
        last_checked = r.last_checked_at.isoformat() if r.last_checked_at else "-"
        print(
            f"{i:>5}  {r.org_id:>10}  {r.cluster:36}  "
            f"{r.reported_at.isoformat():25}  {last_checked}"
        )
    print(f"Outdated reports: {len(reports)}")


# =============================================================================
# DISPATCH
# =============================================================================
def _run_operation(settings: Settings, flags: CliFlags) -> ExitStatus:
    if flags.vacuum:
        cleanup_job.vacuum(settings)
        return ExitStatus.OK

    if flags.cleanup:
        result = cleanup_job.run(
            settings, cli_clusters=flags.cluster_tokens(), dry_run=flags.dry_run
        )
        verb = "Would delete" if result.dry_run else "Deleted"
        for table, count in result.rows_by_table.items():
            print(f"{verb} {count} rows from {table}")
        print(f"{verb} data of {len(result.clusters)} clusters")
        return ExitStatus.OK

    reports = cleanup_job.list_old_reports(
        settings, cli_clusters=flags.cluster_tokens(), output=flags.output
    )
    print_summary(reports)
    return ExitStatus.OK


def do_selected_operation(settings: Settings, flags: CliFlags) -> ExitStatus:
    if flags.show_version:
        show_version()
        return ExitStatus.OK
    if flags.show_authors:
        show_authors()
        return ExitStatus.OK
    if flags.show_configuration:
        show_configuration(settings)
        return ExitStatus.OK

    try:
        return _run_operation(settings, flags)
    except ConfigurationError as e:
        log.error("configuration_error", extra={"payload": {"err": str(e), "details": e.details}})
        return ExitStatus.CONFIGURATION_ERROR
    except SourceAccessError as e:
        log.error("cluster_list_error", extra={"payload": {"err": str(e), "details": e.details}})
        return ExitStatus.CLUSTER_LIST_ERROR
    except (StorageError, SQLAlchemyError) as e:
        log.error("storage_error", extra={"payload": {"err": str(e)[:300]}})
        return ExitStatus.CLEANUP_ERROR if flags.cleanup else ExitStatus.STORAGE_ERROR
    except AppError as e:
        log.error("cleaner_error", extra={"payload": {"err": str(e), "details": e.details}})
        return ExitStatus.CLEANUP_ERROR


def main(argv: Sequence[str] | None = None) -> int:
    flags = parse_flags(argv)
    settings = get_settings()
    setup_logging(settings)
    return int(do_selected_operation(settings, flags))


if __name__ == "__main__":
    raise SystemExit(main())
