# src/garagehub/infra/repositories/base.py
"""
Контракт хранилища аккаунтов.

Хранилище обязано предоставить: поиск по id и по уникальному полю,
атомарные частичные обновления, добавление в списки, запрос по близости
и сериализованную область для отзывов одного гаража.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from typing import Any, Optional

from garagehub.common.constants import AccountRole
from garagehub.core.accounts.models import (
    Account,
    GarageAccount,
    GarageService,
    OperatingHours,
    Ratings,
    Review,
    Vehicle,
)


class GarageReviewScope(ABC):
    """
    Область, в которой отзывы одного гаража меняются строго последовательно.

    Проверка на дубликат, добавление отзыва и пересчёт рейтинга выполняются
    внутри одной области; параллельная область для того же гаража ждёт выхода.
    """

    garage: Optional[GarageAccount]

    @abstractmethod
    async def commit(self, review: Review, ratings: Ratings) -> None:
        """Сохраняет отзыв и новый рейтинг одной операцией."""


class AccountRepository(ABC):
    """Репозиторий аккаунтов обеих ролей."""

    @abstractmethod
    async def get_by_id(self, account_id: str) -> Optional[Account]:
        """Аккаунт по id или None."""

    @abstractmethod
    async def get_by_email(self, email: str) -> Optional[Account]:
        """Аккаунт по email (среди всех ролей) или None."""

    @abstractmethod
    async def insert(self, account: Account) -> Account:
        """
        Сохраняет новый аккаунт.

        Raises:
            DuplicateEmailError: email уже занят аккаунтом любой роли
            DuplicateError: лицензия гаража уже зарегистрирована
        """

    @abstractmethod
    async def update_fields(
        self,
        account_id: str,
        role: AccountRole,
        fields: dict[str, Any],
    ) -> Optional[Account]:
        """Частичное обновление профиля. None, если аккаунт с такой ролью не найден."""

    @abstractmethod
    async def append_vehicle(self, customer_id: str, vehicle: Vehicle) -> bool:
        """Добавляет автомобиль клиенту. False, если клиент не найден."""

    @abstractmethod
    async def append_service(self, garage_id: str, service: GarageService) -> bool:
        """Добавляет услугу гаражу. False, если гараж не найден."""

    @abstractmethod
    async def replace_operating_hours(self, garage_id: str, hours: OperatingHours) -> bool:
        """Полностью заменяет расписание. False, если гараж не найден."""

    @abstractmethod
    async def replace_specialties(self, garage_id: str, specialties: list[str]) -> bool:
        """Полностью заменяет специализации. False, если гараж не найден."""

    @abstractmethod
    async def add_preferred_garage(self, customer_id: str, garage_id: str) -> Optional[list[str]]:
        """
        Атомарно добавляет гараж в избранное клиента.

        Returns:
            Новый список избранного или None, если клиент не найден

        Raises:
            DuplicateError: гараж уже в избранном
        """

    @abstractmethod
    async def find_nearby_garages(
        self,
        longitude: float,
        latitude: float,
        max_distance_m: float,
    ) -> list[tuple[GarageAccount, float]]:
        """
        Верифицированные и активные гаражи в радиусе, по возрастанию расстояния.

        Returns:
            Пары (гараж, расстояние в метрах)
        """

    @abstractmethod
    def review_scope(self, garage_id: str) -> AbstractAsyncContextManager[GarageReviewScope]:
        """Сериализованная область отзывов гаража (scope.garage = None, если гаража нет)."""

    @abstractmethod
    async def get_display_names(self, account_ids: list[str]) -> dict[str, str]:
        """Отображаемые имена для набора id. Отсутствующие аккаунты пропускаются."""

    @abstractmethod
    async def health_check(self) -> bool:
        """Доступно ли хранилище."""
