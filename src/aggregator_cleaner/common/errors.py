"""
Единые ошибки и коды ошибок.

Назначение:
- предсказуемые коды для CLI/job/логов
- единый стиль исключений по проекту

Правило:
- некорректный идентификатор кластера — НЕ исключение (считается в improper_count)
- недоступный источник списка / битая конфигурация — исключение, прогон останавливается
"""

from __future__ import annotations

from dataclasses import dataclass


class ErrCode:
    # Общие
    UNKNOWN = "unknown"
    VALIDATION = "validation"

    # Источники данных / конфигурация
    SOURCE_ACCESS = "source_access"
    CONFIGURATION = "configuration"

    # Инфра/хранилища
    DB_ERROR = "db_error"


@dataclass
class AppError(Exception):
    """
    Базовая ошибка приложения.
    - code: стабильный код ошибки
    - message: безопасное сообщение
    - details: доп. данные (без секретов)
    """

    code: str
    message: str
    details: dict | None = None

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.code}: {self.message}"


class ValidationError(AppError):
    def __init__(self, message: str = "Ошибка валидации", details: dict | None = None) -> None:
        super().__init__(ErrCode.VALIDATION, message, details)


class SourceAccessError(AppError):
    def __init__(
        self, message: str = "Источник недоступен", details: dict | None = None
    ) -> None:
        super().__init__(ErrCode.SOURCE_ACCESS, message, details)


class ConfigurationError(AppError):
    def __init__(
        self, message: str = "Некорректная конфигурация", details: dict | None = None
    ) -> None:
        super().__init__(ErrCode.CONFIGURATION, message, details)


class StorageError(AppError):
    def __init__(self, message: str = "Ошибка хранилища", details: dict | None = None) -> None:
        super().__init__(ErrCode.DB_ERROR, message, details)
