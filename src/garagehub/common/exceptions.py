# src/garagehub/common/exceptions.py
"""
Иерархия доменных ошибок.

Каждая ошибка несёт стабильный error_code (для программной обработки)
и человекочитаемое сообщение. status_code используется только слоем API.
"""

from __future__ import annotations


class DomainError(Exception):
    """Базовая доменная ошибка."""

    error_code: str = "domain_error"
    status_code: int = 400
    default_message: str = "Ошибка обработки запроса"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict[str, str]:
        """Представление ошибки для ответа клиенту."""
        return {"error_code": self.error_code, "message": self.message}


class ValidationError(DomainError):
    """Некорректные или выходящие за допустимый диапазон входные данные."""
    error_code = "validation_error"
    status_code = 400
    default_message = "Некорректные данные запроса"


class DuplicateError(DomainError):
    """Конфликт с уже существующим состоянием."""
    error_code = "duplicate"
    status_code = 409
    default_message = "Запись уже существует"


class DuplicateEmailError(DuplicateError):
    """Email уже занят аккаунтом любой роли."""
    error_code = "duplicate_email"
    default_message = "Email уже используется"


class DuplicateReviewError(DuplicateError):
    """Клиент уже оставлял отзыв этому гаражу."""
    error_code = "duplicate_review"
    default_message = "Вы уже оставили отзыв этому гаражу"


class InvalidCredentialsError(DomainError):
    """Неверная пара email/пароль. Не сообщает, какая часть неверна."""
    error_code = "invalid_credentials"
    status_code = 401
    default_message = "Неверные учётные данные"


class UnauthenticatedError(DomainError):
    """Токен отсутствует, повреждён, просрочен или ссылается на удалённый аккаунт."""
    error_code = "unauthenticated"
    status_code = 401
    default_message = "Требуется авторизация"


class ForbiddenError(DomainError):
    """Личность установлена, но роль не допускает операцию."""
    error_code = "forbidden"
    status_code = 403
    default_message = "Недостаточно прав для этой операции"


class NotFoundError(DomainError):
    """Запрошенная сущность не найдена."""
    error_code = "not_found"
    status_code = 404
    default_message = "Ресурс не найден"


class StorageUnavailableError(DomainError):
    """Хранилище недоступно или не ответило вовремя. Повторов внутри ядра нет."""
    error_code = "storage_unavailable"
    status_code = 503
    default_message = "Хранилище временно недоступно"
