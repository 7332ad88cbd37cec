# src/garagehub/core/accounts/security.py
"""
Хэширование паролей (passlib/bcrypt) и подписанные токены сессии (JWT, python-jose).
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel, ValidationError as PydanticValidationError

from garagehub.common.constants import AccountRole
from garagehub.common.exceptions import UnauthenticatedError


class PasswordHasher:
    """Односторонний хэш пароля. Открытый пароль нигде не сохраняется."""

    def __init__(self, rounds: int = 12) -> None:
        self._context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=rounds,
        )

    def hash(self, password: str) -> str:
        return self._context.hash(password)

    def verify(self, password: str, password_hash: str) -> bool:
        """Проверяет пароль. Повреждённый хэш считается несовпадением."""
        try:
            return self._context.verify(password, password_hash)
        except (ValueError, TypeError):
            return False

    def dummy_verify(self) -> None:
        """Тратит столько же времени, сколько настоящая проверка (для неизвестного email)."""
        self._context.dummy_verify()


class TokenClaims(BaseModel):
    """Полезная нагрузка токена сессии."""
    sub: str
    role: AccountRole
    exp: int


class TokenCodec:
    """Выпуск и проверка JWT, привязывающих id аккаунта и роль."""

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        expire_minutes: int = 60 * 24 * 30,
    ) -> None:
        if not secret_key:
            raise ValueError("JWT secret key не задан")
        self._secret_key = secret_key
        self._algorithm = algorithm
        self._expire = timedelta(minutes=expire_minutes)

    def issue(self, account_id: str, role: AccountRole, now: datetime | None = None) -> str:
        """
        Создаёт подписанный токен с ограниченным сроком жизни.

        Args:
            account_id: ID аккаунта
            role: Роль аккаунта на момент выпуска
            now: Момент выпуска (для тестов)
        """
        issued_at = now or datetime.now(timezone.utc)
        claims = {
            "sub": account_id,
            "role": role.value,
            "iat": issued_at,
            "exp": issued_at + self._expire,
        }
        return jwt.encode(claims, self._secret_key, algorithm=self._algorithm)

    def decode(self, token: str) -> TokenClaims:
        """
        Проверяет подпись и срок действия.

        Raises:
            UnauthenticatedError: токен просрочен, повреждён или подписан другим ключом
        """
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[self._algorithm])
        except ExpiredSignatureError as e:
            raise UnauthenticatedError("Срок действия токена истёк") from e
        except JWTError as e:
            raise UnauthenticatedError("Недействительный токен") from e

        try:
            return TokenClaims.model_validate(payload)
        except PydanticValidationError as e:
            raise UnauthenticatedError("Недействительный токен") from e
