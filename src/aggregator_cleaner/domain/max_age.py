"""
Разбор максимального возраста записей (MAX_AGE).

Поддерживаемый формат — последовательность пар "<число> <единица>":
    "90 days", "1 day 12 hours", "2 weeks", "45 minutes"

Месяцы/годы не поддерживаются: их длина зависит от календаря.
Любая ошибка разбора -> ConfigurationError (очистка с неопределённым cutoff запрещена).
"""

from __future__ import annotations

import re
from datetime import timedelta

from aggregator_cleaner.common.errors import ConfigurationError

_UNITS: dict[str, str] = {
    "s": "seconds",
    "sec": "seconds",
    "secs": "seconds",
    "second": "seconds",
    "seconds": "seconds",
    "m": "minutes",
    "min": "minutes",
    "mins": "minutes",
    "minute": "minutes",
    "minutes": "minutes",
    "h": "hours",
    "hour": "hours",
    "hours": "hours",
    "d": "days",
    "day": "days",
    "days": "days",
    "w": "weeks",
    "week": "weeks",
    "weeks": "weeks",
}

_PART_RE = re.compile(r"\s*(\d+)\s*([a-zA-Z]+)\s*,?")


def parse_max_age(expr: str) -> timedelta:
    text = (expr or "").strip()
    if not text:
        raise ConfigurationError("Не задан максимальный возраст записей", details={"max_age": expr})

    parts: dict[str, int] = {}
    pos = 0
    while pos < len(text):
        m = _PART_RE.match(text, pos)
        if not m:
            raise ConfigurationError(
                "Не удалось разобрать максимальный возраст записей",
                details={"max_age": expr, "position": pos},
            )
        amount, unit = int(m.group(1)), m.group(2).lower()
        key = _UNITS.get(unit)
        if key is None:
            raise ConfigurationError(
                "Неизвестная единица времени в максимальном возрасте записей",
                details={"max_age": expr, "unit": unit},
            )
        parts[key] = parts.get(key, 0) + amount
        pos = m.end()

    try:
        age = timedelta(**parts)
    except OverflowError as e:
        raise ConfigurationError(
            "Слишком большой максимальный возраст записей", details={"max_age": expr}
        ) from e
    if age <= timedelta(0):
        raise ConfigurationError(
            "Максимальный возраст записей должен быть положительным",
            details={"max_age": expr},
        )
    return age
