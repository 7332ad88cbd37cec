# src/garagehub/core/profiles/service.py
"""
Сервис профилей и списков.
Частичное обновление профиля, автомобили клиента, услуги, расписание
и специализации гаража, избранные гаражи клиента.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from garagehub.common.constants import AccountRole, TypeMsg
from garagehub.common.exceptions import NotFoundError, ValidationError
from garagehub.common.logger import log_info
from garagehub.core.accounts.models import (
    Account,
    CustomerAccount,
    CustomerProfileUpdate,
    GarageAccount,
    GarageProfileUpdate,
    GarageService,
    GeoPoint,
    OperatingHours,
    Vehicle,
    validate_payload,
)

if TYPE_CHECKING:
    from garagehub.infra.repositories.base import AccountRepository


# Поля, которые меняются только отдельными сценариями
PROTECTED_FIELDS = frozenset({"role", "password", "passwordHash", "password_hash"})

# Обязательные поля гаража: null в обновлении означает «не менять»
GARAGE_REQUIRED_FIELDS = ("garage_name", "address")


class ProfileService:
    """
    Сервис профилей.
    Все методы работают с аккаунтом, уже прошедшим шлюзы доступа.
    """

    def __init__(self, repository: AccountRepository) -> None:
        self._repository = repository

    # =========================================================================
    # ПРОФИЛЬ
    # =========================================================================

    async def get_profile(self, account_id: str) -> Account:
        """
        Полный профиль аккаунта (без хэша пароля при сериализации).

        Raises:
            NotFoundError: аккаунт не найден
        """
        account = await self._repository.get_by_id(account_id)
        if account is None:
            raise NotFoundError("Аккаунт не найден")
        return account

    def _collect_updates(self, role: AccountRole, fields: Any) -> dict[str, Any]:
        """Проверяет входные поля и оставляет только изменяемые."""
        if not isinstance(fields, dict):
            raise ValidationError("Ожидался JSON-объект с полями профиля")

        cleaned = {k: v for k, v in fields.items() if k not in PROTECTED_FIELDS}
        model = CustomerProfileUpdate if role == AccountRole.CUSTOMER else GarageProfileUpdate
        dto = validate_payload(model, cleaned)
        updates = {name: getattr(dto, name) for name in dto.model_fields_set}

        if role == AccountRole.GARAGE:
            longitude = updates.pop("longitude", None)
            latitude = updates.pop("latitude", None)
            # Одиночная координата отбрасывается
            if longitude is not None and latitude is not None:
                updates["location"] = validate_payload(
                    GeoPoint, {"coordinates": [longitude, latitude]}
                )
            for name in GARAGE_REQUIRED_FIELDS:
                if name in updates and updates[name] is None:
                    del updates[name]

        return updates

    async def update_profile(self, account_id: str, role: AccountRole, fields: Any) -> Account:
        """
        Частичное обновление профиля.

        role и password молча отбрасываются; для гаража пара longitude/latitude
        превращается в точку location.

        Raises:
            ValidationError: некорректные значения полей
            NotFoundError: аккаунт не найден
        """
        updates = self._collect_updates(role, fields)
        account = await self._repository.update_fields(account_id, role, updates)
        if account is None:
            raise NotFoundError("Аккаунт не найден")

        await log_info(
            f"Профиль {account_id} обновлён: {', '.join(sorted(updates)) or 'без изменений'}",
            type_msg=TypeMsg.DEBUG,
        )
        return account

    # =========================================================================
    # КЛИЕНТ
    # =========================================================================

    async def add_vehicle(self, customer_id: str, payload: Any) -> Vehicle:
        """Добавляет автомобиль в конец списка (без проверки на дубли)."""
        vehicle = validate_payload(Vehicle, payload)
        if not await self._repository.append_vehicle(customer_id, vehicle):
            raise NotFoundError("Клиент не найден")
        return vehicle

    async def list_vehicles(self, customer_id: str) -> list[Vehicle]:
        customer = await self._repository.get_by_id(customer_id)
        if not isinstance(customer, CustomerAccount):
            raise NotFoundError("Клиент не найден")
        return customer.vehicles

    async def add_preferred_garage(self, customer_id: str, garage_id: str) -> list[str]:
        """
        Добавляет гараж в избранное.

        Raises:
            NotFoundError: гараж или клиент не найден
            DuplicateError: гараж уже в избранном
        """
        garage = await self._repository.get_by_id(garage_id)
        if not isinstance(garage, GarageAccount):
            raise NotFoundError("Гараж не найден")

        preferred = await self._repository.add_preferred_garage(customer_id, garage.id)
        if preferred is None:
            raise NotFoundError("Клиент не найден")
        return preferred

    # =========================================================================
    # ГАРАЖ
    # =========================================================================

    async def add_service(self, garage_id: str, payload: Any) -> GarageService:
        """Добавляет услугу в каталог. Название может отсутствовать."""
        service = validate_payload(GarageService, payload)
        if not await self._repository.append_service(garage_id, service):
            raise NotFoundError("Гараж не найден")
        return service

    async def list_services(self, garage_id: str) -> list[GarageService]:
        garage = await self._repository.get_by_id(garage_id)
        if not isinstance(garage, GarageAccount):
            raise NotFoundError("Гараж не найден")
        return garage.services

    async def update_operating_hours(self, garage_id: str, payload: Any) -> OperatingHours:
        """
        Полностью заменяет недельное расписание.
        Не переданные дни получают значения по умолчанию, а не прежние.
        """
        hours = validate_payload(OperatingHours, payload)
        if not await self._repository.replace_operating_hours(garage_id, hours):
            raise NotFoundError("Гараж не найден")
        return hours

    async def update_specialties(self, garage_id: str, specialties: Any) -> list[str]:
        """
        Полностью заменяет список специализаций.

        Raises:
            ValidationError: передан не список строк
        """
        if not isinstance(specialties, list) or not all(isinstance(s, str) for s in specialties):
            raise ValidationError("Специализации должны быть списком строк")

        if not await self._repository.replace_specialties(garage_id, specialties):
            raise NotFoundError("Гараж не найден")
        return list(specialties)
