"""
Репозитории (DAO слой).

Правила:
- Никакой бизнес-логики
- Только запросы и удаление по готовому списку кластеров
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from aggregator_cleaner.domain.retention import RetentionPredicate

from .models import TABLES_AND_KEYS, Report

# Ограничение на размер IN (...) в одном запросе
IN_CHUNK_SIZE = 500


def _chunks(values: Iterable[str], size: int | None = None) -> Iterator[list[str]]:
    size = size or IN_CHUNK_SIZE
    batch: list[str] = []
    for v in sorted(values):
        batch.append(v)
        if len(batch) >= size:
            yield batch
            batch = []
    if batch:
        yield batch


# =============================================================================
# CLUSTER REPORT REPOSITORY
# =============================================================================
class ClusterReportRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def list_old_reports(self, predicate: RetentionPredicate) -> list[Report]:
        q = select(Report).where(Report.reported_at < predicate.cutoff)
        if predicate.clusters is None:
            return list(self.session.scalars(q.order_by(Report.reported_at, Report.cluster)))

        reports: list[Report] = []
        for batch in _chunks(predicate.clusters):
            reports.extend(self.session.scalars(q.where(Report.cluster.in_(batch))))
        reports.sort(key=lambda r: (r.reported_at, r.cluster))
        return reports

    def eligible_clusters(self, predicate: RetentionPredicate) -> list[str]:
        return [r.cluster for r in self.list_old_reports(predicate)]

    def count_cluster_rows(self, clusters: Iterable[str]) -> dict[str, int]:
        clusters = list(clusters)
        out: dict[str, int] = {}
        for model, key in TABLES_AND_KEYS:
            column = getattr(model, key)
            total = 0
            for batch in _chunks(clusters):
                q = select(func.count()).select_from(model).where(column.in_(batch))
                total += int(self.session.scalar(q) or 0)
            out[model.__tablename__] = total
        return out

    def delete_cluster_rows(self, clusters: Iterable[str]) -> dict[str, int]:
        """
        Удаление по всем таблицам из TABLES_AND_KEYS в заданном порядке.
        Транзакцией управляет вызывающий (db_session).
        """
        clusters = list(clusters)
        out: dict[str, int] = {}
        for model, key in TABLES_AND_KEYS:
            column = getattr(model, key)
            total = 0
            for batch in _chunks(clusters):
                res = self.session.execute(
                    delete(model).where(column.in_(batch)).execution_options(
                        synchronize_session=False
                    )
                )
                total += max(0, res.rowcount or 0)
            out[model.__tablename__] = total
        return out
