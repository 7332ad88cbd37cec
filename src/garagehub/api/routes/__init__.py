# src/garagehub/api/routes/__init__.py
"""HTTP-маршруты API."""

from garagehub.api.routes.auth import router as auth_router
from garagehub.api.routes.customers import router as customers_router
from garagehub.api.routes.garages import router as garages_router

__all__ = ["auth_router", "customers_router", "garages_router"]
