# src/garagehub/core/auth/__init__.py
"""Аутентификация и авторизация вызовов."""

from garagehub.core.auth.gates import AuthenticationGate, AuthorizationGate, CallContext

__all__ = ["AuthenticationGate", "AuthorizationGate", "CallContext"]
