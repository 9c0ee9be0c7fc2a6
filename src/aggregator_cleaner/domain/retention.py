"""
Правило ретеншна (RetentionPredicate).

Назначение:
- cutoff = now - max_age (всегда в UTC)
- опциональный allow-list кластеров

Предикат — инертное значение: он только описывает, ЧТО удалять.
Удаление выполняет storage/retention.py.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from aggregator_cleaner.common.errors import ConfigurationError, ValidationError

from .cluster_ids import ClusterName


@dataclass(frozen=True)
class RetentionPredicate:
    cutoff: datetime
    # None -> ограничения по кластерам нет, решает только возраст
    clusters: frozenset[ClusterName] | None = None

    @property
    def scope(self) -> str:
        return "global" if self.clusters is None else "clusters"

    def is_eligible(self, cluster: str, timestamp: datetime) -> bool:
        """
        Запись подлежит удалению, если она строго старше cutoff
        и (при заданном allow-list) её кластер входит в список.
        """
        if not timestamp < self.cutoff:
            return False
        if self.clusters is None:
            return True
        return cluster in self.clusters


def build_predicate(
    now: datetime, max_age: timedelta, clusters: Iterable[ClusterName] = ()
) -> RetentionPredicate:
    if now.tzinfo is None or now.utcoffset() is None:
        raise ValidationError("now должен быть timezone-aware", details={"now": now.isoformat()})
    if max_age <= timedelta(0):
        raise ConfigurationError(
            "Максимальный возраст записей должен быть положительным",
            details={"max_age": str(max_age)},
        )

    try:
        # cutoff только в UTC: SQLite хранит и сравнивает время без смещения
        cutoff = now.astimezone(UTC) - max_age
    except OverflowError as e:
        raise ConfigurationError(
            "Максимальный возраст записей выходит за допустимый диапазон дат",
            details={"max_age": str(max_age)},
        ) from e

    allow_list = frozenset(clusters)
    return RetentionPredicate(cutoff=cutoff, clusters=allow_list or None)
