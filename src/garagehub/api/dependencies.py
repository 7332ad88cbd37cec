# src/garagehub/api/dependencies.py
"""
Dependency Injection для API.

ServiceContainer собирается один раз при создании приложения и хранится
в app.state; обработчики получают сервисы и шлюзы через Depends.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from garagehub.common.constants import AccountRole, TypeMsg
from garagehub.common.logger import log_info
from garagehub.core.accounts.security import PasswordHasher, TokenCodec
from garagehub.core.accounts.service import IdentityService
from garagehub.core.auth.gates import AuthenticationGate, AuthorizationGate, CallContext
from garagehub.core.discovery.service import DiscoveryService
from garagehub.core.profiles.service import ProfileService
from garagehub.core.ratings.service import RatingAggregator
from garagehub.infra.database import DatabaseManager
from garagehub.infra.repositories import (
    AccountRepository,
    InMemoryAccountRepository,
    PostgresAccountRepository,
)


@dataclass
class ServiceContainer:
    """Все сервисы приложения поверх одного хранилища."""

    repository: AccountRepository
    identity: IdentityService
    authentication: AuthenticationGate
    profiles: ProfileService
    discovery: DiscoveryService
    ratings: RatingAggregator
    db: Optional[DatabaseManager] = None
    db_connect_attempts: int = 3
    db_connect_retry_delay: float = 1.0

    async def startup(self) -> None:
        """Подключает PostgreSQL и применяет схему (для хранилища в памяти ничего не делает)."""
        if self.db is None:
            await log_info("Хранилище: память процесса", type_msg=TypeMsg.WARNING)
            return
        await self.db.connect(
            attempts=self.db_connect_attempts,
            delay=self.db_connect_retry_delay,
        )
        await self.db.apply_schema()

    async def shutdown(self) -> None:
        if self.db is not None:
            await self.db.disconnect()


def build_container(settings: Any, repository: Optional[AccountRepository] = None) -> ServiceContainer:
    """
    Собирает контейнер из настроек.

    Args:
        settings: Настройки приложения
        repository: Готовое хранилище (иначе выбирается по STORAGE_BACKEND)
    """
    db: Optional[DatabaseManager] = None
    if repository is None:
        if settings.system.STORAGE_BACKEND == "memory":
            repository = InMemoryAccountRepository(
                lock_timeout=settings.storage.STORE_TIMEOUT_SECONDS,
            )
        else:
            db = DatabaseManager.from_settings(settings)
            repository = PostgresAccountRepository(db)

    security = settings.security
    tokens = TokenCodec(
        secret_key=security.JWT_SECRET_KEY,
        algorithm=security.JWT_ALGORITHM,
        expire_minutes=security.ACCESS_TOKEN_EXPIRE_MINUTES,
    )

    return ServiceContainer(
        repository=repository,
        identity=IdentityService(
            repository,
            PasswordHasher(rounds=security.BCRYPT_ROUNDS),
            tokens,
            password_min_length=security.PASSWORD_MIN_LENGTH,
        ),
        authentication=AuthenticationGate(tokens, repository),
        profiles=ProfileService(repository),
        discovery=DiscoveryService(
            repository,
            default_max_distance_m=settings.discovery.DEFAULT_MAX_DISTANCE_M,
            max_distance_limit_m=settings.discovery.MAX_DISTANCE_LIMIT_M,
        ),
        ratings=RatingAggregator(repository),
        db=db,
        db_connect_attempts=settings.database.DB_CONNECT_ATTEMPTS,
        db_connect_retry_delay=settings.database.DB_CONNECT_RETRY_DELAY,
    )


# =============================================================================
# DEPENDS
# =============================================================================

bearer_scheme = HTTPBearer(auto_error=False)


def get_container(request: Request) -> ServiceContainer:
    """Контейнер сервисов текущего приложения."""
    return request.app.state.container


async def get_call_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    container: ServiceContainer = Depends(get_container),
) -> CallContext:
    """Аутентификация по заголовку Authorization: Bearer <token>."""
    token = credentials.credentials if credentials else None
    return await container.authentication.authenticate(token)


def require_role(*roles: AccountRole) -> Callable[..., Awaitable[CallContext]]:
    """Зависимость, пропускающая только перечисленные роли."""

    async def dependency(context: CallContext = Depends(get_call_context)) -> CallContext:
        return AuthorizationGate.require(context, *roles)

    return dependency


customer_only = require_role(AccountRole.CUSTOMER)
garage_only = require_role(AccountRole.GARAGE)
