# src/garagehub/core/accounts/__init__.py
"""
Домен аккаунтов.
Модели клиентов и гаражей, хэширование паролей, токены и регистрация.
"""

from garagehub.core.accounts.models import (
    Account,
    AuthResult,
    CustomerAccount,
    GarageAccount,
)
from garagehub.core.accounts.security import PasswordHasher, TokenCodec
from garagehub.core.accounts.service import IdentityService

__all__ = [
    "Account",
    "AuthResult",
    "CustomerAccount",
    "GarageAccount",
    "PasswordHasher",
    "TokenCodec",
    "IdentityService",
]
