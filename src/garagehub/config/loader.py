# src/garagehub/config/loader.py
"""
Загрузчик конфигурации GarageHub.
Основной источник: config/config.json (путь можно переопределить через GARAGEHUB_CONFIG).
Секреты (пароль БД, ключ JWT) берутся из переменных окружения.
"""

from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# =============================================================================
# ПУТИ
# =============================================================================

def get_project_root() -> Path:
    """Возвращает корневую директорию проекта (src/garagehub/config -> корень)."""
    return Path(__file__).resolve().parents[3]


def get_config_path() -> Path:
    """Возвращает путь к файлу конфигурации."""
    override = os.getenv("GARAGEHUB_CONFIG")
    if override:
        return Path(override)
    return get_project_root() / "config" / "config.json"


def load_config_json(path: Path | None = None) -> dict[str, Any]:
    """
    Читает config.json и убирает служебные ключи _comment_*.

    Raises:
        FileNotFoundError: если файла нет
    """
    config_path = path or get_config_path()
    if not config_path.exists():
        raise FileNotFoundError(f"Файл конфигурации не найден: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        data = json.load(f)

    return {k: v for k, v in data.items() if not k.startswith("_comment_")}


# =============================================================================
# СЕКЦИИ НАСТРОЕК
# =============================================================================

class SystemSettings(BaseModel):
    """Системные настройки."""
    PROJECT_NAME: str = "garagehub"
    VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    STORAGE_BACKEND: str = "postgres"

    @field_validator("STORAGE_BACKEND")
    @classmethod
    def check_backend(cls, v: str) -> str:
        """Допустимы только postgres и memory."""
        v = v.lower()
        if v not in ("postgres", "memory"):
            raise ValueError(f"Неизвестный STORAGE_BACKEND: {v}")
        return v


class DeploymentSettings(BaseModel):
    """Адрес, на котором слушает API."""
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 3000


class LoggingSettings(BaseModel):
    """Настройки логирования."""
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "colored"
    LOG_TO_FILE: bool = False
    LOG_FILE_PATH: str = "logs/app.log"
    LOG_MAX_BYTES: int = 10485760
    LOG_BACKUP_COUNT: int = 5


class DatabaseSettings(BaseModel):
    """Настройки PostgreSQL."""
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_NAME: str = "garagehub"
    DB_USER: str = "postgres"
    DB_PASSWORD: str = Field("", validate_default=True)
    DB_MIN_POOL_SIZE: int = 2
    DB_MAX_POOL_SIZE: int = 10
    DB_COMMAND_TIMEOUT: int = 10
    DB_CONNECT_ATTEMPTS: int = 3
    DB_CONNECT_RETRY_DELAY: float = 1.0

    @field_validator("DB_PASSWORD", mode="before")
    @classmethod
    def get_from_env(cls, v: str) -> str:
        """Пароль по умолчанию берётся из окружения."""
        if not v:
            return os.getenv("DB_PASSWORD", "")
        return v

    @property
    def dsn(self) -> str:
        """DSN для asyncpg."""
        return (
            f"postgresql://{self.DB_USER}:{self.DB_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        )


# Ключ подписи для ENVIRONMENT=development, если JWT_SECRET_KEY не задан
DEV_JWT_SECRET = "dev-secret-change-me"


class SecuritySettings(BaseModel):
    """JWT и хэширование паролей."""
    JWT_SECRET_KEY: str = Field("", validate_default=True)
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 30
    BCRYPT_ROUNDS: int = 12
    PASSWORD_MIN_LENGTH: int = 6

    @field_validator("JWT_SECRET_KEY", mode="before")
    @classmethod
    def get_from_env(cls, v: str) -> str:
        """Ключ подписи по умолчанию берётся из окружения."""
        if not v:
            return os.getenv("JWT_SECRET_KEY", "")
        return v


class DiscoverySettings(BaseModel):
    """Поиск гаражей поблизости."""
    DEFAULT_MAX_DISTANCE_M: int = 10000
    MAX_DISTANCE_LIMIT_M: int = 200000


class StorageSettings(BaseModel):
    """Общие ограничения хранилища."""
    STORE_TIMEOUT_SECONDS: float = 10.0


# =============================================================================
# ГЛАВНЫЙ КЛАСС НАСТРОЕК
# =============================================================================

class Settings(BaseSettings):
    """Агрегирует все секции конфигурации."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    system: SystemSettings = Field(default_factory=SystemSettings)
    deployment: DeploymentSettings = Field(default_factory=DeploymentSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    discovery: DiscoverySettings = Field(default_factory=DiscoverySettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Settings":
        """
        Раскладывает плоский словарь config.json по секциям.
        Переменные окружения имеют приоритет для хостов, портов и секретов.
        """
        def pick(section: type[BaseModel], env_keys: tuple[str, ...] = ()) -> dict[str, Any]:
            values = {k: data[k] for k in section.model_fields if k in data}
            for key in env_keys:
                if os.getenv(key):
                    values[key] = os.environ[key]
            return values

        system = SystemSettings(**pick(SystemSettings, ("ENVIRONMENT", "STORAGE_BACKEND")))
        security = SecuritySettings(**pick(SecuritySettings, ("JWT_SECRET_KEY",)))
        # Заглушка ключа только для разработки; в остальных окружениях пустой ключ
        # остановит запуск в TokenCodec
        if not security.JWT_SECRET_KEY and system.ENVIRONMENT == "development":
            security = security.model_copy(update={"JWT_SECRET_KEY": DEV_JWT_SECRET})

        return cls(
            system=system,
            deployment=DeploymentSettings(**pick(DeploymentSettings, ("API_HOST", "API_PORT"))),
            logging=LoggingSettings(**pick(LoggingSettings, ("LOG_LEVEL", "LOG_FORMAT"))),
            database=DatabaseSettings(
                **pick(DatabaseSettings, ("DB_HOST", "DB_PORT", "DB_NAME", "DB_USER", "DB_PASSWORD"))
            ),
            security=security,
            discovery=DiscoverySettings(**pick(DiscoverySettings)),
            storage=StorageSettings(**pick(StorageSettings)),
        )

    @classmethod
    def from_config_json(cls, path: Path | None = None) -> "Settings":
        """Создаёт Settings из config.json (или из значений по умолчанию, если файла нет)."""
        try:
            data = load_config_json(path)
        except FileNotFoundError:
            data = {}
        return cls.from_dict(data)


@lru_cache()
def get_settings() -> Settings:
    """Синглтон настроек. Перед чтением подгружает .env из корня проекта."""
    from dotenv import load_dotenv

    env_path = get_project_root() / ".env"
    if env_path.exists():
        load_dotenv(env_path)

    return Settings.from_config_json()


settings = get_settings()
