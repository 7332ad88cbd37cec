# tests/core/test_security.py
"""
Тесты для хэширования паролей и JWT.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from garagehub.common.constants import AccountRole
from garagehub.common.exceptions import UnauthenticatedError
from garagehub.core.accounts.security import PasswordHasher, TokenCodec


class TestPasswordHasher:
    """Тесты для PasswordHasher."""

    def test_hash_is_not_plaintext(self, hasher: PasswordHasher) -> None:
        hashed = hasher.hash("secret123")

        assert hashed != "secret123"
        assert hashed.startswith("$2")

    def test_verify(self, hasher: PasswordHasher) -> None:
        hashed = hasher.hash("secret123")

        assert hasher.verify("secret123", hashed) is True
        assert hasher.verify("wrong-pass", hashed) is False

    def test_verify_corrupted_hash(self, hasher: PasswordHasher) -> None:
        """Повреждённый хэш считается несовпадением, а не ошибкой."""
        assert hasher.verify("secret123", "not-a-hash") is False

    def test_dummy_verify_does_not_raise(self, hasher: PasswordHasher) -> None:
        hasher.dummy_verify()


class TestTokenCodec:
    """Тесты для TokenCodec."""

    def test_issue_and_decode(self, tokens: TokenCodec) -> None:
        token = tokens.issue("acc-1", AccountRole.GARAGE)

        claims = tokens.decode(token)

        assert claims.sub == "acc-1"
        assert claims.role == AccountRole.GARAGE

    def test_expired_token(self, tokens: TokenCodec) -> None:
        issued = datetime.now(timezone.utc) - timedelta(days=1)
        token = tokens.issue("acc-1", AccountRole.CUSTOMER, now=issued)

        with pytest.raises(UnauthenticatedError, match="истёк"):
            tokens.decode(token)

    def test_foreign_signature(self, tokens: TokenCodec) -> None:
        other = TokenCodec(secret_key="another-secret")
        token = other.issue("acc-1", AccountRole.CUSTOMER)

        with pytest.raises(UnauthenticatedError):
            tokens.decode(token)

    @pytest.mark.parametrize("token", ["", "garbage", "a.b.c"])
    def test_malformed_token(self, tokens: TokenCodec, token: str) -> None:
        with pytest.raises(UnauthenticatedError):
            tokens.decode(token)

    def test_token_without_role_rejected(self) -> None:
        """Подписанный токен без роли не принимается."""
        codec = TokenCodec(secret_key="k")
        exp = datetime.now(timezone.utc) + timedelta(minutes=5)
        token = jwt.encode({"sub": "acc-1", "exp": exp}, "k", algorithm="HS256")

        with pytest.raises(UnauthenticatedError):
            codec.decode(token)

    def test_empty_secret_rejected(self) -> None:
        with pytest.raises(ValueError):
            TokenCodec(secret_key="")
