"""
Разбор списка кластеров.

Назначение:
- чтение списка из файла (один идентификатор на строку)
- чтение одного идентификатора из аргумента командной строки
- общий классификатор: валидные -> множество, невалидные -> improper_count

Семантика пустого ввода различается намеренно:
- пустой файл (или /dev/null) — "без ограничения по кластерам", improper_count = 0
- пустой аргумент CLI — ошибка пользователя, improper_count = 1
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from aggregator_cleaner.common.errors import SourceAccessError

from .cluster_ids import ClusterName, is_valid_uuid


@dataclass(frozen=True)
class ClusterList:
    clusters: frozenset[ClusterName]
    improper_count: int = 0

    @property
    def all_improper(self) -> bool:
        """Источник был, но ни одного валидного идентификатора в нём нет."""
        return not self.clusters and self.improper_count > 0


EMPTY_CLUSTER_LIST = ClusterList(clusters=frozenset())


def classify_candidates(candidates: Iterable[str]) -> ClusterList:
    """
    Общий классификатор для обоих источников.
    Кандидаты уже очищены от пробелов; пустые строки сюда не попадают.
    """
    valid: set[ClusterName] = set()
    improper = 0
    for candidate in candidates:
        if is_valid_uuid(candidate):
            valid.add(ClusterName(candidate))
        else:
            improper += 1
    return ClusterList(clusters=frozenset(valid), improper_count=improper)


def _non_blank_lines(lines: Iterable[str]) -> Iterable[str]:
    for line in lines:
        stripped = line.strip()
        if stripped:
            yield stripped


def read_cluster_list_from_file(path: str) -> ClusterList:
    """
    Список кластеров из файла.
    Ошибка открытия/чтения -> SourceAccessError, частичный результат не возвращается.
    """
    try:
        with open(path, encoding="utf-8-sig") as f:
            return classify_candidates(_non_blank_lines(f))
    except (OSError, UnicodeDecodeError) as e:
        raise SourceAccessError(
            "Не удалось прочитать файл со списком кластеров",
            details={"path": str(path), "err": str(e)[:200]},
        ) from e


def read_cluster_list_from_cli_argument(raw: str) -> ClusterList:
    """
    Один кандидат из аргумента CLI (разбиение по запятым делает вызывающий слой).
    Пустая строка считается одним некорректным значением.
    """
    return classify_candidates([(raw or "").strip()])


def merge_cluster_lists(*lists: ClusterList) -> ClusterList:
    clusters: set[ClusterName] = set()
    improper = 0
    for item in lists:
        clusters |= item.clusters
        improper += item.improper_count
    return ClusterList(clusters=frozenset(clusters), improper_count=improper)
