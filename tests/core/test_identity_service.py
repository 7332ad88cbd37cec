# tests/core/test_identity_service.py
"""
Тесты для сервиса учётных записей.
"""

from __future__ import annotations

import threading
from typing import Any
from unittest.mock import MagicMock

import pytest

from garagehub.common.constants import AccountRole
from garagehub.common.exceptions import (
    DuplicateEmailError,
    DuplicateError,
    InvalidCredentialsError,
    ValidationError,
)
from garagehub.core.accounts.models import CustomerAccount, GarageAccount
from garagehub.core.accounts.security import PasswordHasher, TokenCodec
from garagehub.core.accounts.service import IdentityService
from garagehub.infra.repositories.memory import InMemoryAccountRepository


class TestRegister:
    """Тесты регистрации."""

    @pytest.mark.asyncio
    async def test_register_customer(
        self,
        identity: IdentityService,
        repository: InMemoryAccountRepository,
        tokens: TokenCodec,
        customer_payload: dict[str, Any],
    ) -> None:
        result = await identity.register("customer", customer_payload)

        assert result.user.role == AccountRole.CUSTOMER
        assert result.user.email == "driver@example.com"
        assert tokens.decode(result.token).sub == result.user.id

        stored = await repository.get_by_id(result.user.id)
        assert isinstance(stored, CustomerAccount)
        assert stored.address.city == "Dubai"
        assert stored.address.country == "UAE"

    @pytest.mark.asyncio
    async def test_password_is_hashed(
        self,
        identity: IdentityService,
        repository: InMemoryAccountRepository,
        hasher: PasswordHasher,
        customer_payload: dict[str, Any],
    ) -> None:
        result = await identity.register(AccountRole.CUSTOMER, customer_payload)

        stored = await repository.get_by_id(result.user.id)
        assert stored.password_hash != "secret123"
        assert hasher.verify("secret123", stored.password_hash)

    @pytest.mark.asyncio
    async def test_register_garage(
        self,
        identity: IdentityService,
        repository: InMemoryAccountRepository,
        garage_payload: dict[str, Any],
    ) -> None:
        result = await identity.register("garage", garage_payload)

        stored = await repository.get_by_id(result.user.id)
        assert isinstance(stored, GarageAccount)
        assert stored.location.coordinates == (0.0, 0.0)
        assert stored.is_verified is False
        assert stored.specialties == ["brakes"]
        assert stored.operating_hours.saturday.is_open is False

    @pytest.mark.asyncio
    async def test_role_field_in_payload_ignored(
        self,
        identity: IdentityService,
        customer_payload: dict[str, Any],
    ) -> None:
        """Роль определяется выбором варианта, а не телом запроса."""
        customer_payload["role"] = "garage"

        result = await identity.register("customer", customer_payload)

        assert result.user.role == AccountRole.CUSTOMER

    @pytest.mark.asyncio
    async def test_duplicate_email_across_roles(
        self,
        identity: IdentityService,
        customer_payload: dict[str, Any],
        garage_payload: dict[str, Any],
    ) -> None:
        await identity.register("customer", customer_payload)
        garage_payload["email"] = "DRIVER@example.com"

        with pytest.raises(DuplicateEmailError):
            await identity.register("garage", garage_payload)

    @pytest.mark.asyncio
    async def test_duplicate_business_license(
        self,
        identity: IdentityService,
        garage_payload: dict[str, Any],
    ) -> None:
        await identity.register("garage", garage_payload)
        garage_payload["email"] = "other@example.com"

        with pytest.raises(DuplicateError):
            await identity.register("garage", garage_payload)

    @pytest.mark.asyncio
    async def test_unknown_role(self, identity: IdentityService, customer_payload: dict[str, Any]) -> None:
        with pytest.raises(ValidationError):
            await identity.register("admin", customer_payload)

    @pytest.mark.asyncio
    async def test_short_password(self, identity: IdentityService, customer_payload: dict[str, Any]) -> None:
        customer_payload["password"] = "123"

        with pytest.raises(ValidationError):
            await identity.register("customer", customer_payload)

    @pytest.mark.asyncio
    async def test_garage_requires_full_address(
        self,
        identity: IdentityService,
        garage_payload: dict[str, Any],
    ) -> None:
        del garage_payload["address"]["zipCode"]

        with pytest.raises(ValidationError, match="zipCode|zip_code"):
            await identity.register("garage", garage_payload)

    @pytest.mark.asyncio
    async def test_invalid_email(self, identity: IdentityService, customer_payload: dict[str, Any]) -> None:
        customer_payload["email"] = "not-an-email"

        with pytest.raises(ValidationError):
            await identity.register("customer", customer_payload)


class TestAuthenticate:
    """Тесты входа."""

    @pytest.mark.asyncio
    async def test_login_success(
        self,
        identity: IdentityService,
        customer_payload: dict[str, Any],
    ) -> None:
        registered = await identity.register("customer", customer_payload)

        result = await identity.login("driver@example.com", "secret123")

        assert result.user.id == registered.user.id
        assert result.token

    @pytest.mark.asyncio
    async def test_email_case_insensitive(
        self,
        identity: IdentityService,
        customer_payload: dict[str, Any],
    ) -> None:
        await identity.register("customer", customer_payload)

        account = await identity.authenticate_by_credentials("  DRIVER@EXAMPLE.COM ", "secret123")

        assert account.email == "driver@example.com"

    @pytest.mark.asyncio
    async def test_unknown_email_and_wrong_password_identical(
        self,
        identity: IdentityService,
        customer_payload: dict[str, Any],
    ) -> None:
        """Неизвестный email и неверный пароль неразличимы для вызывающего."""
        await identity.register("customer", customer_payload)

        with pytest.raises(InvalidCredentialsError) as unknown:
            await identity.authenticate_by_credentials("nobody@example.com", "secret123")
        with pytest.raises(InvalidCredentialsError) as wrong:
            await identity.authenticate_by_credentials("driver@example.com", "wrong-pass")

        assert type(unknown.value) is type(wrong.value)
        assert unknown.value.to_dict() == wrong.value.to_dict()

    @pytest.mark.asyncio
    async def test_unknown_email_runs_dummy_verify(
        self,
        repository: InMemoryAccountRepository,
        tokens: TokenCodec,
    ) -> None:
        hasher = MagicMock(spec=PasswordHasher)
        service = IdentityService(repository, hasher, tokens)

        with pytest.raises(InvalidCredentialsError):
            await service.authenticate_by_credentials("nobody@example.com", "secret123")

        hasher.dummy_verify.assert_called_once()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("email,password", [(None, "x"), ("a@example.com", None), ("", "")])
    async def test_missing_credentials(
        self,
        identity: IdentityService,
        email: Any,
        password: Any,
    ) -> None:
        with pytest.raises(ValidationError):
            await identity.authenticate_by_credentials(email, password)


class ThreadRecordingHasher(PasswordHasher):
    """Запоминает, в каком потоке выполнялись операции bcrypt."""

    def __init__(self) -> None:
        super().__init__(rounds=4)
        self.threads: dict[str, int] = {}

    def hash(self, password: str) -> str:
        self.threads["hash"] = threading.get_ident()
        return super().hash(password)

    def verify(self, password: str, password_hash: str) -> bool:
        self.threads["verify"] = threading.get_ident()
        return super().verify(password, password_hash)

    def dummy_verify(self) -> None:
        self.threads["dummy_verify"] = threading.get_ident()
        super().dummy_verify()


class TestHashingOffLoop:
    """bcrypt не выполняется в потоке цикла событий."""

    @pytest.mark.asyncio
    async def test_hash_and_verify_in_worker_thread(
        self,
        repository: InMemoryAccountRepository,
        tokens: TokenCodec,
        customer_payload: dict[str, Any],
    ) -> None:
        hasher = ThreadRecordingHasher()
        service = IdentityService(repository, hasher, tokens)
        loop_thread = threading.get_ident()

        await service.register("customer", customer_payload)
        account = await service.authenticate_by_credentials("driver@example.com", "secret123")
        with pytest.raises(InvalidCredentialsError):
            await service.authenticate_by_credentials("nobody@example.com", "secret123")

        assert account.email == "driver@example.com"
        assert set(hasher.threads) == {"hash", "verify", "dummy_verify"}
        assert loop_thread not in hasher.threads.values()
