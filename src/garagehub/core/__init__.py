# src/garagehub/core/__init__.py
"""Доменное ядро GarageHub."""
