# tests/conftest.py
"""
Общие фикстуры и настройки для тестов.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Awaitable, Callable
from unittest.mock import AsyncMock, MagicMock

import pytest

# Устанавливаем переменные окружения перед импортом модулей
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("DB_PASSWORD", "test_password")
os.environ.setdefault("STORAGE_BACKEND", "memory")

from garagehub.common.constants import AccountRole
from garagehub.core.accounts.models import AuthResult
from garagehub.core.accounts.security import PasswordHasher, TokenCodec
from garagehub.core.accounts.service import IdentityService
from garagehub.core.auth.gates import AuthenticationGate
from garagehub.core.discovery.service import DiscoveryService
from garagehub.core.profiles.service import ProfileService
from garagehub.core.ratings.service import RatingAggregator
from garagehub.infra.repositories.memory import InMemoryAccountRepository


TEST_SECRET = "test-secret-key"


# =============================================================================
# ФИКСТУРЫ КОНФИГУРАЦИИ
# =============================================================================

@pytest.fixture(scope="session")
def project_root() -> Path:
    """Корневая директория проекта."""
    return Path(__file__).parent.parent


@pytest.fixture
def mock_config() -> dict[str, Any]:
    """Мок конфигурации для тестов."""
    return {
        "_comment_system": "Системные настройки",
        "PROJECT_NAME": "garagehub_test",
        "VERSION": "1.0.0-test",
        "DEBUG": True,
        "ENVIRONMENT": "test",
        "STORAGE_BACKEND": "memory",
        "API_HOST": "127.0.0.1",
        "API_PORT": 3100,
        "LOG_LEVEL": "DEBUG",
        "LOG_FORMAT": "json",
        "LOG_TO_FILE": False,
        "LOG_FILE_PATH": "logs/test.log",
        "DB_HOST": "localhost",
        "DB_PORT": 5432,
        "DB_NAME": "garagehub_test",
        "DB_USER": "postgres",
        "DB_MIN_POOL_SIZE": 1,
        "DB_MAX_POOL_SIZE": 3,
        "DB_COMMAND_TIMEOUT": 5,
        "JWT_ALGORITHM": "HS256",
        "ACCESS_TOKEN_EXPIRE_MINUTES": 60,
        "BCRYPT_ROUNDS": 4,
        "PASSWORD_MIN_LENGTH": 6,
        "DEFAULT_MAX_DISTANCE_M": 10000,
        "MAX_DISTANCE_LIMIT_M": 50000,
        "STORE_TIMEOUT_SECONDS": 2.0,
    }


@pytest.fixture
def temp_config_file(tmp_path: Path, mock_config: dict[str, Any]) -> Path:
    """Создаёт временный файл конфигурации."""
    config_file = tmp_path / "config.json"
    config_file.write_text(json.dumps(mock_config, ensure_ascii=False, indent=2))
    return config_file


@pytest.fixture
def test_settings(temp_config_file: Path) -> Any:
    """Настройки, собранные из временного config.json."""
    from garagehub.config.loader import Settings

    return Settings.from_config_json(temp_config_file)


# =============================================================================
# ФИКСТУРЫ ИНФРАСТРУКТУРЫ
# =============================================================================

@pytest.fixture
def mock_db() -> AsyncMock:
    """Мок менеджера базы данных."""
    db = AsyncMock()
    db.fetchrow = AsyncMock(return_value=None)
    db.fetch = AsyncMock(return_value=[])
    db.execute = AsyncMock(return_value="UPDATE 1")
    db.fetchval = AsyncMock(return_value=None)
    db.health_check = AsyncMock(return_value=True)
    return db


@pytest.fixture
def mock_conn() -> AsyncMock:
    """Мок соединения asyncpg."""
    conn = AsyncMock()
    conn.fetchrow = AsyncMock(return_value=None)
    conn.fetch = AsyncMock(return_value=[])
    conn.execute = AsyncMock(return_value="UPDATE 1")
    conn.fetchval = AsyncMock(return_value=None)
    return conn


@pytest.fixture
def repository() -> InMemoryAccountRepository:
    """Хранилище аккаунтов в памяти."""
    return InMemoryAccountRepository(lock_timeout=2.0)


# =============================================================================
# ФИКСТУРЫ СЕРВИСОВ
# =============================================================================

@pytest.fixture(scope="session")
def hasher() -> PasswordHasher:
    """Хэширование с минимальной стоимостью bcrypt."""
    return PasswordHasher(rounds=4)


@pytest.fixture(scope="session")
def tokens() -> TokenCodec:
    return TokenCodec(secret_key=TEST_SECRET, expire_minutes=60)


@pytest.fixture
def identity(
    repository: InMemoryAccountRepository,
    hasher: PasswordHasher,
    tokens: TokenCodec,
) -> IdentityService:
    return IdentityService(repository, hasher, tokens, password_min_length=6)


@pytest.fixture
def auth_gate(repository: InMemoryAccountRepository, tokens: TokenCodec) -> AuthenticationGate:
    return AuthenticationGate(tokens, repository)


@pytest.fixture
def profiles(repository: InMemoryAccountRepository) -> ProfileService:
    return ProfileService(repository)


@pytest.fixture
def discovery(repository: InMemoryAccountRepository) -> DiscoveryService:
    return DiscoveryService(repository, default_max_distance_m=10000, max_distance_limit_m=200000)


@pytest.fixture
def ratings(repository: InMemoryAccountRepository) -> RatingAggregator:
    return RatingAggregator(repository)


# =============================================================================
# ФИКСТУРЫ МОДЕЛЕЙ
# =============================================================================

@pytest.fixture
def customer_payload() -> dict[str, Any]:
    """Пример данных регистрации клиента."""
    return {
        "email": "Driver@Example.com",
        "password": "secret123",
        "firstName": "Ahmed",
        "lastName": "Khan",
        "phone": "+971501234567",
        "address": {"street": "Sheikh Zayed Rd 1", "city": "Dubai"},
    }


@pytest.fixture
def garage_payload() -> dict[str, Any]:
    """Пример данных регистрации гаража."""
    return {
        "email": "garage@example.com",
        "password": "secret123",
        "firstName": "Omar",
        "lastName": "Saleh",
        "garageName": "Desert Auto",
        "businessLicense": "LIC-0001",
        "address": {
            "street": "Al Quoz 3",
            "city": "Dubai",
            "state": "Dubai",
            "zipCode": "00000",
        },
        "longitude": 0.0,
        "latitude": 0.0,
        "specialties": ["brakes"],
    }


RegisterFn = Callable[..., Awaitable[AuthResult]]


@pytest.fixture
def register_customer(identity: IdentityService) -> RegisterFn:
    """Фабрика: регистрирует клиента с уникальным email."""
    counter = {"n": 0}

    async def _register(**overrides: Any) -> AuthResult:
        counter["n"] += 1
        payload = {
            "email": f"customer{counter['n']}@example.com",
            "password": "secret123",
            "firstName": "Customer",
            "lastName": str(counter["n"]),
        }
        payload.update(overrides)
        return await identity.register(AccountRole.CUSTOMER, payload)

    return _register


@pytest.fixture
def register_garage(
    identity: IdentityService,
    repository: InMemoryAccountRepository,
) -> RegisterFn:
    """
    Фабрика: регистрирует гараж с уникальными email и лицензией.
    verified/active выставляются напрямую в хранилище.
    """
    counter = {"n": 0}

    async def _register(
        longitude: float | None = 0.0,
        latitude: float | None = 0.0,
        verified: bool = True,
        active: bool = True,
        **overrides: Any,
    ) -> AuthResult:
        counter["n"] += 1
        payload: dict[str, Any] = {
            "email": f"garage{counter['n']}@example.com",
            "password": "secret123",
            "garageName": f"Garage {counter['n']}",
            "businessLicense": f"LIC-{counter['n']:04d}",
            "address": {
                "street": "Main St 1",
                "city": "Springfield",
                "state": "IL",
                "zipCode": "62701",
            },
        }
        if longitude is not None:
            payload["longitude"] = longitude
        if latitude is not None:
            payload["latitude"] = latitude
        payload.update(overrides)

        result = await identity.register(AccountRole.GARAGE, payload)
        await repository.update_fields(
            result.user.id,
            AccountRole.GARAGE,
            {"is_verified": verified, "is_active": active},
        )
        return result

    return _register


@pytest.fixture
def mock_request() -> MagicMock:
    """Мок HTTP-запроса для обработчиков ошибок."""
    request = MagicMock()
    request.method = "GET"
    request.url.path = "/test"
    return request
