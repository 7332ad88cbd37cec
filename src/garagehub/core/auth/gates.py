# src/garagehub/core/auth/gates.py
"""
Шлюзы доступа.

AuthenticationGate устанавливает личность по токену, AuthorizationGate
пропускает вызов только при точном совпадении роли. Роль всегда берётся
из сохранённого аккаунта, а не из токена или тела запроса.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from garagehub.common.constants import AccountRole
from garagehub.common.exceptions import ForbiddenError, UnauthenticatedError
from garagehub.core.accounts.models import Account
from garagehub.core.accounts.security import TokenCodec

if TYPE_CHECKING:
    from garagehub.infra.repositories.base import AccountRepository


@dataclass(frozen=True)
class CallContext:
    """Контекст вызова с установленной личностью."""
    account: Account

    @property
    def account_id(self) -> str:
        return self.account.id

    @property
    def role(self) -> AccountRole:
        return self.account.role


class AuthenticationGate:
    """Проверка токена сессии и загрузка живого аккаунта."""

    def __init__(self, tokens: TokenCodec, repository: AccountRepository) -> None:
        self._tokens = tokens
        self._repository = repository

    async def authenticate(self, token: Optional[str]) -> CallContext:
        """
        Raises:
            UnauthenticatedError: токена нет, он повреждён, просрочен,
                подписан чужим ключом или аккаунт удалён
        """
        if not token:
            raise UnauthenticatedError("Токен не передан")

        claims = self._tokens.decode(token)
        account = await self._repository.get_by_id(claims.sub)
        if account is None:
            raise UnauthenticatedError("Аккаунт не найден")
        return CallContext(account=account)


class AuthorizationGate:
    """Проверка роли вызывающего."""

    @staticmethod
    def require(context: CallContext, *roles: AccountRole) -> CallContext:
        """
        Пропускает вызов, если роль аккаунта входит в roles.

        Raises:
            ForbiddenError: роль не подходит
        """
        if context.role not in roles:
            allowed = ", ".join(r.value for r in roles)
            raise ForbiddenError(f"Операция доступна только для роли: {allowed}")
        return context
