# src/garagehub/common/__init__.py
"""Общие утилиты: константы, исключения, логирование."""
