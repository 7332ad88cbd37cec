# src/garagehub/core/discovery/__init__.py
"""Поиск гаражей поблизости."""

from garagehub.core.discovery.geo import EARTH_RADIUS_M, distance_meters
from garagehub.core.discovery.service import DiscoveryService

__all__ = ["EARTH_RADIUS_M", "distance_meters", "DiscoveryService"]
