# src/garagehub/core/discovery/geo.py
"""
Геометрия на сфере для поиска гаражей поблизости.
"""

from __future__ import annotations

import math

# Экваториальный радиус Земли, метры (тот же, что в SQL-запросе по близости)
EARTH_RADIUS_M = 6378100.0


def distance_meters(lon1: float, lat1: float, lon2: float, lat2: float) -> float:
    """
    Расстояние по большому кругу (формула гаверсинусов).

    Args:
        lon1, lat1: Первая точка, градусы
        lon2, lat2: Вторая точка, градусы

    Returns:
        Расстояние в метрах
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    # min() защищает asin от погрешности округления чуть выше 1
    return 2 * EARTH_RADIUS_M * math.asin(min(1.0, math.sqrt(a)))


def check_coordinates(longitude: float, latitude: float) -> bool:
    """Лежит ли пара (долгота, широта) в допустимых диапазонах."""
    return -180.0 <= longitude <= 180.0 and -90.0 <= latitude <= 90.0
