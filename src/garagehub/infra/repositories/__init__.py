# src/garagehub/infra/repositories/__init__.py
"""Реализации хранилища аккаунтов."""

from garagehub.infra.repositories.base import AccountRepository, GarageReviewScope
from garagehub.infra.repositories.memory import InMemoryAccountRepository
from garagehub.infra.repositories.postgres import PostgresAccountRepository

__all__ = [
    "AccountRepository",
    "GarageReviewScope",
    "InMemoryAccountRepository",
    "PostgresAccountRepository",
]
