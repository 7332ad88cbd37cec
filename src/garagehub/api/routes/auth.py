# src/garagehub/api/routes/auth.py
"""
Регистрация, вход и информация о текущей сессии.

Endpoints:
- POST /api/auth/register/{role} - регистрация клиента или гаража
- POST /api/auth/login - вход по email и паролю
- GET /api/auth/me - профиль владельца токена
"""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from garagehub.api.dependencies import ServiceContainer, get_call_context, get_container
from garagehub.api.responses import envelope
from garagehub.core.auth.gates import CallContext

router = APIRouter(prefix="/auth", tags=["Auth"])


class LoginRequest(BaseModel):
    """Запрос на вход."""
    email: str | None = None
    password: str | None = None


@router.post("/register/{role}", status_code=status.HTTP_201_CREATED)
async def register(
    role: str,
    container: Annotated[ServiceContainer, Depends(get_container)],
    payload: Annotated[Any, Body()] = None,
) -> JSONResponse:
    """Регистрирует аккаунт и сразу выдаёт токен сессии."""
    result = await container.identity.register(role, payload)
    return envelope(
        message="Регистрация выполнена",
        status_code=status.HTTP_201_CREATED,
        token=result.token,
        user=result.user,
    )


@router.post("/login")
async def login(
    request: LoginRequest,
    container: Annotated[ServiceContainer, Depends(get_container)],
) -> JSONResponse:
    """Неизвестный email и неверный пароль дают одинаковый ответ."""
    result = await container.identity.login(request.email, request.password)
    return envelope(message="Вход выполнен", token=result.token, user=result.user)


@router.get("/me")
async def me(context: Annotated[CallContext, Depends(get_call_context)]) -> JSONResponse:
    """Профиль владельца токена (без учётных данных)."""
    return envelope(context.account)
