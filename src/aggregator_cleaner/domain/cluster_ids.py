"""
Идентификаторы кластеров.

Формат: 8-4-4-4-12 шестнадцатеричных символов через дефис (36 символов).
Регистр hex-цифр не важен для валидации, но сами значения сравниваются как есть.
"""

from __future__ import annotations

import re
from typing import NewType

ClusterName = NewType("ClusterName", str)

_UUID_RE = re.compile(
    r"[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}"
)


def is_valid_uuid(candidate: str) -> bool:
    """Проверка формата идентификатора кластера. Никогда не бросает исключений."""
    if not isinstance(candidate, str):
        return False
    return _UUID_RE.fullmatch(candidate) is not None
