# src/garagehub/core/accounts/service.py
"""
Сервис учётных записей.
Регистрация, проверка учётных данных и выпуск токенов сессии.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from garagehub.common.constants import AccountRole, TypeMsg
from garagehub.common.exceptions import InvalidCredentialsError, ValidationError
from garagehub.common.logger import log_info
from garagehub.core.accounts.models import (
    Account,
    AuthResult,
    CustomerAccount,
    CustomerRegistration,
    GarageAccount,
    GarageRegistration,
    OperatingHours,
    to_public,
    validate_payload,
)
from garagehub.core.accounts.security import PasswordHasher, TokenCodec

if TYPE_CHECKING:
    from garagehub.infra.repositories.base import AccountRepository


class IdentityService:
    """
    Сервис учётных записей.
    Роль задаётся один раз при регистрации и далее только читается.
    """

    def __init__(
        self,
        repository: AccountRepository,
        hasher: PasswordHasher,
        tokens: TokenCodec,
        password_min_length: int = 6,
    ) -> None:
        """
        Args:
            repository: Хранилище аккаунтов
            hasher: Хэширование паролей
            tokens: Выпуск JWT
            password_min_length: Минимальная длина пароля при регистрации
        """
        self._repository = repository
        self._hasher = hasher
        self._tokens = tokens
        self._password_min_length = password_min_length

    # =========================================================================
    # РЕГИСТРАЦИЯ
    # =========================================================================

    def _parse_role(self, role: Any) -> AccountRole:
        try:
            return AccountRole(str(role).lower())
        except ValueError as e:
            raise ValidationError(f"Неизвестный тип аккаунта: {role}") from e

    def _parse_registration(self, role: AccountRole, payload: dict[str, Any]) -> Any:
        dto_model = CustomerRegistration if role == AccountRole.CUSTOMER else GarageRegistration
        dto = validate_payload(dto_model, payload)

        if len(dto.password) < self._password_min_length:
            raise ValidationError(
                f"Пароль должен содержать не менее {self._password_min_length} символов"
            )
        return dto

    def _build_account(self, role: AccountRole, dto: Any, password_hash: str) -> Account:
        """Собирает новый вариант аккаунта из входных данных регистрации."""
        common = {
            "email": dto.email,
            "password_hash": password_hash,
            "first_name": dto.first_name,
            "last_name": dto.last_name,
            "phone": dto.phone,
        }

        if role == AccountRole.CUSTOMER:
            return CustomerAccount(**common, address=dto.address, vehicles=dto.vehicles)

        return GarageAccount(
            **common,
            garage_name=dto.garage_name,
            business_license=dto.business_license,
            address=dto.address,
            location=dto.resolved_location(),
            operating_hours=dto.operating_hours or OperatingHours(),
            services=dto.services,
            specialties=dto.specialties,
        )

    async def register(self, role: Any, payload: dict[str, Any]) -> AuthResult:
        """
        Регистрирует аккаунт указанной роли.

        Args:
            role: customer | garage
            payload: Поля профиля и пароль

        Returns:
            Токен сессии и публичная проекция аккаунта

        Raises:
            ValidationError: некорректные данные или роль
            DuplicateEmailError: email уже занят
            DuplicateError: бизнес-лицензия уже зарегистрирована
        """
        account_role = self._parse_role(role)
        if isinstance(payload, dict):
            # Роль берётся только из выбора варианта
            payload = {k: v for k, v in payload.items() if k != "role"}
        dto = self._parse_registration(account_role, payload)
        # bcrypt считается в пуле потоков, цикл событий не блокируется
        password_hash = await asyncio.to_thread(self._hasher.hash, dto.password)
        account = await self._repository.insert(self._build_account(account_role, dto, password_hash))

        await log_info(
            f"Зарегистрирован аккаунт {account.id} ({account.role})",
            type_msg=TypeMsg.INFO,
        )
        return AuthResult(token=self.issue_token(account), user=to_public(account))

    # =========================================================================
    # ВХОД
    # =========================================================================

    async def authenticate_by_credentials(self, email: Any, password: Any) -> Account:
        """
        Проверяет пару email/пароль.

        Неизвестный email и неверный пароль дают одну и ту же ошибку,
        а для неизвестного email всё равно выполняется проверка хэша.

        Raises:
            InvalidCredentialsError: учётные данные не подошли
        """
        if not isinstance(email, str) or not isinstance(password, str) or not email or not password:
            raise ValidationError("Email и пароль обязательны")

        account = await self._repository.get_by_email(email.strip().lower())
        if account is None:
            await asyncio.to_thread(self._hasher.dummy_verify)
            await log_info("Неудачная попытка входа", type_msg=TypeMsg.WARNING)
            raise InvalidCredentialsError()

        if not await asyncio.to_thread(self._hasher.verify, password, account.password_hash):
            await log_info("Неудачная попытка входа", type_msg=TypeMsg.WARNING)
            raise InvalidCredentialsError()

        return account

    async def login(self, email: Any, password: Any) -> AuthResult:
        """Вход: токен и публичная проекция."""
        account = await self.authenticate_by_credentials(email, password)
        await log_info(f"Вход выполнен: {account.id}", type_msg=TypeMsg.DEBUG)
        return AuthResult(token=self.issue_token(account), user=to_public(account))

    def issue_token(self, account: Account) -> str:
        """Подписанный токен, связывающий id аккаунта и его роль."""
        return self._tokens.issue(account.id, account.role)
