# src/garagehub/infra/database.py
"""
Менеджер базы данных PostgreSQL.
Пул соединений, повтор только при первичном подключении, транзакции.
Ошибки недоступности хранилища переводятся в StorageUnavailableError.
"""

from __future__ import annotations

import asyncio
import json
from contextlib import asynccontextmanager
from functools import wraps
from typing import Any, AsyncGenerator, Callable, TypeVar

import asyncpg
from asyncpg import Connection, Pool, Record

from garagehub.common.constants import TypeMsg
from garagehub.common.exceptions import StorageUnavailableError
from garagehub.common.logger import log_error, log_info

T = TypeVar("T")

# Ошибки, означающие недоступность БД (а не ошибку в запросе)
UNAVAILABLE_ERRORS: tuple[type[BaseException], ...] = (
    asyncio.TimeoutError,
    asyncpg.PostgresConnectionError,
    asyncpg.InterfaceError,
    asyncpg.CannotConnectNowError,
    asyncpg.TooManyConnectionsError,
    OSError,
)

# Произвольный ID advisory lock для миграций
SCHEMA_LOCK_ID = 724011


def retry_on_connection_error(
    max_attempts: int = 3,
    delay: float = 1.0,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Декоратор для повторных попыток подключения.

    Args:
        max_attempts: Максимальное количество попыток
        delay: Базовая задержка между попытками (секунды)
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            last_error: BaseException | None = None

            for attempt in range(1, max_attempts + 1):
                try:
                    return await func(*args, **kwargs)
                except UNAVAILABLE_ERRORS as e:
                    last_error = e
                    if attempt < max_attempts:
                        await log_info(
                            f"Ошибка подключения к БД (попытка {attempt}/{max_attempts}): {e}",
                            type_msg=TypeMsg.WARNING,
                        )
                        await asyncio.sleep(delay * attempt)
                    else:
                        await log_error(f"Не удалось подключиться к БД после {max_attempts} попыток: {e}")

            raise StorageUnavailableError("Не удалось подключиться к базе данных") from last_error

        return wrapper  # type: ignore

    return decorator


async def _init_connection(conn: Connection) -> None:
    """JSONB-колонки читаются и пишутся как Python-объекты."""
    await conn.set_type_codec(
        "jsonb",
        encoder=lambda value: json.dumps(value, default=str),
        decoder=json.loads,
        schema="pg_catalog",
    )


class DatabaseManager:
    """
    Менеджер подключений к PostgreSQL.

    Экземпляр создаётся при старте приложения и передаётся репозиторию явно.
    """

    def __init__(
        self,
        dsn: str,
        min_size: int = 2,
        max_size: int = 10,
        command_timeout: float = 10,
    ) -> None:
        self._dsn = dsn
        self._min_size = min_size
        self._max_size = max_size
        self._command_timeout = command_timeout
        self._pool: Pool | None = None

    @classmethod
    def from_settings(cls, settings: Any) -> "DatabaseManager":
        """Создаёт менеджер из секции database настроек."""
        db = settings.database
        return cls(
            dsn=db.dsn,
            min_size=db.DB_MIN_POOL_SIZE,
            max_size=db.DB_MAX_POOL_SIZE,
            command_timeout=db.DB_COMMAND_TIMEOUT,
        )

    @property
    def pool(self) -> Pool:
        """Возвращает пул соединений."""
        if self._pool is None:
            raise StorageUnavailableError("Пул соединений не инициализирован")
        return self._pool

    async def connect(self, attempts: int = 3, delay: float = 1.0) -> None:
        """
        Создаёт пул соединений.

        Args:
            attempts: Количество попыток подключения
            delay: Базовая задержка между попытками (секунды)
        """
        if self._pool is not None:
            return

        @retry_on_connection_error(max_attempts=attempts, delay=delay)
        async def _create() -> Pool:
            return await asyncpg.create_pool(
                dsn=self._dsn,
                min_size=self._min_size,
                max_size=self._max_size,
                command_timeout=self._command_timeout,
                init=_init_connection,
            )

        await log_info("Подключение к PostgreSQL...", type_msg=TypeMsg.INFO)
        self._pool = await _create()
        await log_info("Подключение к PostgreSQL установлено", type_msg=TypeMsg.INFO)

    async def disconnect(self) -> None:
        """Закрывает пул соединений."""
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            await log_info("Соединение с PostgreSQL закрыто", type_msg=TypeMsg.INFO)

    @asynccontextmanager
    async def acquire(self) -> AsyncGenerator[Connection, None]:
        """
        Соединение из пула.

        Example:
            async with db.acquire() as conn:
                row = await conn.fetchrow("SELECT ...")
        """
        try:
            async with self.pool.acquire(timeout=self._command_timeout) as connection:
                yield connection
        except UNAVAILABLE_ERRORS as e:
            await log_error(f"PostgreSQL недоступен: {e}")
            raise StorageUnavailableError() from e

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[Connection, None]:
        """
        Транзакция: commit при успехе, rollback при любой ошибке.

        Example:
            async with db.transaction() as conn:
                await conn.execute("SELECT ... FOR UPDATE")
                await conn.execute("UPDATE ...")
        """
        async with self.acquire() as connection:
            async with connection.transaction():
                yield connection

    async def execute(self, query: str, *args: Any) -> str:
        """Выполняет запрос без возврата данных."""
        async with self.acquire() as conn:
            return await conn.execute(query, *args)

    async def fetch(self, query: str, *args: Any) -> list[Record]:
        """Выполняет запрос и возвращает все строки."""
        async with self.acquire() as conn:
            return await conn.fetch(query, *args)

    async def fetchrow(self, query: str, *args: Any) -> Record | None:
        """Выполняет запрос и возвращает одну строку."""
        async with self.acquire() as conn:
            return await conn.fetchrow(query, *args)

    async def fetchval(self, query: str, *args: Any, column: int = 0) -> Any:
        """Выполняет запрос и возвращает одно значение."""
        async with self.acquire() as conn:
            return await conn.fetchval(query, *args, column=column)

    async def health_check(self) -> bool:
        """
        Проверяет здоровье подключения к БД.

        Returns:
            True если подключение работает
        """
        try:
            return await self.fetchval("SELECT 1") == 1
        except StorageUnavailableError as e:
            await log_error(f"Health check PostgreSQL failed: {e}")
            return False

    async def apply_schema(self) -> None:
        """Применяет migrations/init.sql под advisory lock (безопасно при параллельном старте)."""
        from garagehub.config.loader import get_project_root

        schema_path = get_project_root() / "migrations" / "init.sql"
        if not schema_path.exists():
            await log_error(f"Файл схемы БД не найден: {schema_path}")
            return

        with open(schema_path, "r", encoding="utf-8") as f:
            schema_sql = f.read()

        await log_info("Применение схемы БД...", type_msg=TypeMsg.INFO)
        async with self.transaction() as conn:
            await conn.execute(f"SELECT pg_advisory_xact_lock({SCHEMA_LOCK_ID})")
            await conn.execute(schema_sql)
        await log_info("Схема БД успешно применена", type_msg=TypeMsg.INFO)
