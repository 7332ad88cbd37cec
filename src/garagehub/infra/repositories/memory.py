# src/garagehub/infra/repositories/memory.py
"""
Хранилище аккаунтов в памяти процесса.

Используется в режиме разработки (STORAGE_BACKEND=memory) и в тестах.
Уникальность email и лицензии обеспечивается под общим замком регистрации,
изменения отдельного аккаунта сериализуются замком этого аккаунта.
Ожидание любого замка ограничено таймаутом.
"""

from __future__ import annotations

import asyncio
from collections import defaultdict
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

from garagehub.common.constants import AccountRole
from garagehub.common.exceptions import (
    DuplicateEmailError,
    DuplicateError,
    StorageUnavailableError,
)
from garagehub.core.accounts.models import (
    Account,
    GarageAccount,
    GarageService,
    OperatingHours,
    Ratings,
    Review,
    Vehicle,
    parse_id,
    utcnow,
)
from garagehub.core.discovery.geo import distance_meters
from garagehub.infra.repositories.base import AccountRepository, GarageReviewScope


class _MemoryReviewScope(GarageReviewScope):
    def __init__(self, repository: "InMemoryAccountRepository", garage: Optional[GarageAccount]) -> None:
        self._repository = repository
        self.garage = garage

    async def commit(self, review: Review, ratings: Ratings) -> None:
        stored = self._repository._accounts[self.garage.id]
        stored.reviews.append(review.model_copy(deep=True))
        stored.ratings = ratings.model_copy()
        stored.updated_at = utcnow()


class InMemoryAccountRepository(AccountRepository):
    """Реализация AccountRepository на словарях."""

    def __init__(self, lock_timeout: float = 10.0) -> None:
        self._accounts: dict[str, Account] = {}
        self._emails: dict[str, str] = {}
        self._licenses: dict[str, str] = {}
        self._lock_timeout = lock_timeout
        self._registration_lock = asyncio.Lock()
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    @asynccontextmanager
    async def _locked(self, lock: asyncio.Lock) -> AsyncIterator[None]:
        try:
            await asyncio.wait_for(lock.acquire(), timeout=self._lock_timeout)
        except asyncio.TimeoutError as e:
            raise StorageUnavailableError("Хранилище не ответило вовремя") from e
        try:
            yield
        finally:
            lock.release()

    def _get(self, account_id: str, role: AccountRole | None = None) -> Optional[Account]:
        if parse_id(account_id) is None:
            return None
        account = self._accounts.get(str(account_id))
        if account is None or (role is not None and account.role != role):
            return None
        return account

    @asynccontextmanager
    async def _mutating(self, account_id: str, role: AccountRole) -> AsyncIterator[Optional[Account]]:
        """Отдаёт актуальную запись аккаунта под его замком (None, если не найден)."""
        account = self._get(account_id, role)
        if account is None:
            yield None
            return
        async with self._locked(self._locks[account.id]):
            # update_fields заменяет объект, поэтому перечитываем под замком
            yield self._accounts[account.id]

    async def get_by_id(self, account_id: str) -> Optional[Account]:
        account = self._get(account_id)
        return account.model_copy(deep=True) if account else None

    async def get_by_email(self, email: str) -> Optional[Account]:
        account_id = self._emails.get(email.strip().lower())
        return await self.get_by_id(account_id) if account_id else None

    async def insert(self, account: Account) -> Account:
        async with self._locked(self._registration_lock):
            email = account.email.lower()
            if email in self._emails:
                raise DuplicateEmailError()
            license_key = getattr(account, "business_license", None)
            if license_key is not None and license_key in self._licenses:
                raise DuplicateError("Гараж с такой бизнес-лицензией уже зарегистрирован")

            stored = account.model_copy(deep=True)
            self._accounts[stored.id] = stored
            self._emails[email] = stored.id
            if license_key is not None:
                self._licenses[license_key] = stored.id
            return stored.model_copy(deep=True)

    async def update_fields(
        self,
        account_id: str,
        role: AccountRole,
        fields: dict[str, Any],
    ) -> Optional[Account]:
        async with self._mutating(account_id, role) as account:
            if account is None:
                return None
            data = {**account.model_dump(), **fields}
            data.update(password_hash=account.password_hash, updated_at=utcnow())
            updated = type(account).model_validate(data)
            self._accounts[account.id] = updated
            return updated.model_copy(deep=True)

    async def append_vehicle(self, customer_id: str, vehicle: Vehicle) -> bool:
        async with self._mutating(customer_id, AccountRole.CUSTOMER) as customer:
            if customer is None:
                return False
            customer.vehicles.append(vehicle.model_copy())
            customer.updated_at = utcnow()
            return True

    async def append_service(self, garage_id: str, service: GarageService) -> bool:
        async with self._mutating(garage_id, AccountRole.GARAGE) as garage:
            if garage is None:
                return False
            garage.services.append(service.model_copy())
            garage.updated_at = utcnow()
            return True

    async def replace_operating_hours(self, garage_id: str, hours: OperatingHours) -> bool:
        async with self._mutating(garage_id, AccountRole.GARAGE) as garage:
            if garage is None:
                return False
            garage.operating_hours = hours.model_copy(deep=True)
            garage.updated_at = utcnow()
            return True

    async def replace_specialties(self, garage_id: str, specialties: list[str]) -> bool:
        async with self._mutating(garage_id, AccountRole.GARAGE) as garage:
            if garage is None:
                return False
            garage.specialties = list(specialties)
            garage.updated_at = utcnow()
            return True

    async def add_preferred_garage(self, customer_id: str, garage_id: str) -> Optional[list[str]]:
        async with self._mutating(customer_id, AccountRole.CUSTOMER) as customer:
            if customer is None:
                return None
            if str(garage_id) in customer.preferred_garages:
                raise DuplicateError("Гараж уже в списке избранных")
            customer.preferred_garages.append(str(garage_id))
            customer.updated_at = utcnow()
            return list(customer.preferred_garages)

    async def find_nearby_garages(
        self,
        longitude: float,
        latitude: float,
        max_distance_m: float,
    ) -> list[tuple[GarageAccount, float]]:
        found: list[tuple[GarageAccount, float]] = []
        for account in self._accounts.values():
            if not isinstance(account, GarageAccount):
                continue
            if not (account.is_verified and account.is_active) or account.location is None:
                continue
            distance = distance_meters(
                longitude,
                latitude,
                account.location.longitude,
                account.location.latitude,
            )
            if distance <= max_distance_m:
                found.append((account.model_copy(deep=True), distance))
        found.sort(key=lambda item: item[1])
        return found

    @asynccontextmanager
    async def review_scope(self, garage_id: str) -> AsyncIterator[GarageReviewScope]:
        garage = self._get(garage_id, AccountRole.GARAGE)
        if garage is None:
            yield _MemoryReviewScope(self, None)
            return
        async with self._locked(self._locks[garage.id]):
            # Снимок читается уже под замком, чтобы видеть последний рейтинг
            snapshot = self._accounts[garage.id].model_copy(deep=True)
            yield _MemoryReviewScope(self, snapshot)

    async def get_display_names(self, account_ids: list[str]) -> dict[str, str]:
        names: dict[str, str] = {}
        for account_id in account_ids:
            account = self._get(account_id)
            if account is not None:
                names[account.id] = account.full_name
        return names

    async def health_check(self) -> bool:
        return True
