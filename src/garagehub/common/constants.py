# src/garagehub/common/constants.py
"""
Общие константы и перечисления.
"""

from enum import Enum


class TypeMsg(str, Enum):
    """Типы сообщений для логирования."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AccountRole(str, Enum):
    """Роль аккаунта. Назначается при регистрации и больше не меняется."""
    CUSTOMER = "customer"
    GARAGE = "garage"

    def __str__(self) -> str:
        return self.value


class ServiceHistoryStatus(str, Enum):
    """Статус записи в истории обслуживания клиента."""
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    def __str__(self) -> str:
        return self.value


# Рейтинг отзыва
MIN_RATING = 1
MAX_RATING = 5
