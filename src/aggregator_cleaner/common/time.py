"""
Утилиты времени.

Назначение:
- единая точка чтения "сейчас" (UTC, aware datetime)
- ядро ретеншна само часы не читает: now передаётся снаружи
"""

from __future__ import annotations

from datetime import UTC, datetime


def utc_now() -> datetime:
    """
    Текущее время в UTC (datetime).
    """
    return datetime.now(UTC)
