# src/garagehub/core/profiles/__init__.py
"""Профили клиентов и гаражей."""

from garagehub.core.profiles.service import ProfileService

__all__ = ["ProfileService"]
