# src/garagehub/api/responses.py
"""
Модели и помощники HTTP-ответов.

Успешный ответ: {"success": true, "message": ..., "count": ..., "data": ...}
Ошибка:         {"success": false, "error_code": ..., "message": ...}
"""

from __future__ import annotations

from typing import Any

from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from garagehub.common.exceptions import DomainError


class ErrorResponse(BaseModel):
    """Стандартный ответ с ошибкой."""

    success: bool = False
    error_code: str
    message: str


class HealthStatus(BaseModel):
    """Статус здоровья сервиса."""

    service: str
    status: str = "healthy"  # healthy, degraded
    version: str | None = None
    dependencies: dict[str, str] = Field(default_factory=dict)


def _encode(data: Any) -> Any:
    # camelCase-алиасы моделей, хэш пароля исключён на уровне модели
    return jsonable_encoder(data, by_alias=True)


def envelope(
    data: Any = None,
    *,
    message: str | None = None,
    count: int | None = None,
    status_code: int = status.HTTP_200_OK,
    **extra: Any,
) -> JSONResponse:
    """
    Успешный ответ в общем конверте.

    Args:
        data: Полезная нагрузка
        message: Сообщение для пользователя
        count: Количество элементов (для списков)
        status_code: HTTP-код
        **extra: Дополнительные поля верхнего уровня (token, user, ratings)
    """
    body: dict[str, Any] = {"success": True}
    if message is not None:
        body["message"] = message
    if count is not None:
        body["count"] = count
    body.update({key: _encode(value) for key, value in extra.items()})
    if data is not None:
        body["data"] = _encode(data)
    return JSONResponse(status_code=status_code, content=body)


def error_response(error: DomainError) -> JSONResponse:
    """Ответ для доменной ошибки."""
    payload = ErrorResponse(error_code=error.error_code, message=error.message)
    return JSONResponse(status_code=error.status_code, content=payload.model_dump())
