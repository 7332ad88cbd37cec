# src/garagehub/infra/__init__.py
"""Инфраструктура: PostgreSQL и хранилища."""
