# src/garagehub/api/__init__.py
"""HTTP API на FastAPI."""

from garagehub.api.app import create_app

__all__ = ["create_app"]
