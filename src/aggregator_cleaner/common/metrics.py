"""
Метрики Prometheus для cleaner'а.

Назначение:
- счётчики некорректных идентификаторов кластеров
- количество удалённых строк по таблицам
- результаты прогонов (cleanup/summary/vacuum)
- выгрузка в textfile (node_exporter textfile collector), т.к. HTTP /metrics у CLI нет
"""

from __future__ import annotations

from prometheus_client import REGISTRY, CollectorRegistry, Counter, write_to_textfile

from aggregator_cleaner.common.logging import get_project_logger

log = get_project_logger()

# =============================================================================
# СЧЁТЧИКИ
# =============================================================================

IMPROPER_CLUSTERS_TOTAL = Counter(
    "cleaner_improper_clusters_total",
    "Количество некорректных идентификаторов кластеров во входных данных",
    ["source"],  # file|cli
)

DELETED_ROWS_TOTAL = Counter(
    "cleaner_deleted_rows_total",
    "Количество удалённых строк",
    ["table"],
)

RUNS_TOTAL = Counter(
    "cleaner_runs_total",
    "Количество прогонов cleaner'а",
    ["operation", "result"],  # result: ok|error
)


# =============================================================================
# HELPERS
# =============================================================================
def record_improper_clusters(*, source: str, count: int) -> None:
    if count > 0:
        IMPROPER_CLUSTERS_TOTAL.labels(source=source).inc(count)


def record_deleted_rows(rows_by_table: dict[str, int]) -> None:
    for table, count in rows_by_table.items():
        if count > 0:
            DELETED_ROWS_TOTAL.labels(table=table).inc(count)


def record_run(*, operation: str, ok: bool) -> None:
    RUNS_TOTAL.labels(operation=operation, result="ok" if ok else "error").inc()


def write_metrics_textfile(path: str | None, registry: CollectorRegistry = REGISTRY) -> None:
    """
    Пишем метрики в файл только если путь задан (METRICS_TEXTFILE).
    Ошибка записи метрик не должна ронять уже выполненную очистку.
    """
    if not path:
        return
    try:
        write_to_textfile(path, registry)
    except OSError as e:
        log.warning(
            "metrics_textfile_write_failed",
            extra={"payload": {"path": path, "err": str(e)[:200]}},
        )
