# src/garagehub/core/discovery/service.py
"""
Поиск верифицированных и активных гаражей рядом с точкой.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

from garagehub.common.exceptions import ValidationError
from garagehub.core.accounts.models import GarageSummary, to_summary
from garagehub.core.discovery.geo import check_coordinates

if TYPE_CHECKING:
    from garagehub.infra.repositories.base import AccountRepository


def _as_float(value: Any, name: str) -> float:
    if isinstance(value, bool):
        raise ValidationError(f"{name}: ожидалось число")
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"{name}: ожидалось число") from e


class DiscoveryService:
    """Поиск гаражей поблизости."""

    def __init__(
        self,
        repository: AccountRepository,
        default_max_distance_m: float = 10000,
        max_distance_limit_m: float = 200000,
    ) -> None:
        self._repository = repository
        self._default_max_distance_m = default_max_distance_m
        self._max_distance_limit_m = max_distance_limit_m

    async def find_nearby_garages(
        self,
        longitude: Any,
        latitude: Any,
        max_distance_m: Optional[Any] = None,
    ) -> list[GarageSummary]:
        """
        Гаражи в радиусе от точки, от ближнего к дальнему.

        Args:
            longitude: Долгота точки поиска
            latitude: Широта точки поиска
            max_distance_m: Радиус в метрах (по умолчанию из настроек)

        Returns:
            Публичные проекции гаражей с расстоянием

        Raises:
            ValidationError: нет координаты или значения вне диапазона
        """
        if longitude is None or latitude is None or longitude == "" or latitude == "":
            raise ValidationError("Необходимо указать долготу и широту")

        lon = _as_float(longitude, "longitude")
        lat = _as_float(latitude, "latitude")
        if not check_coordinates(lon, lat):
            raise ValidationError("Координаты вне допустимого диапазона")

        if max_distance_m is None or max_distance_m == "":
            radius = float(self._default_max_distance_m)
        else:
            radius = _as_float(max_distance_m, "maxDistance")
        if not 0 <= radius <= self._max_distance_limit_m:
            raise ValidationError(
                f"maxDistance должен быть от 0 до {self._max_distance_limit_m:g} метров"
            )

        found = await self._repository.find_nearby_garages(lon, lat, radius)
        return [to_summary(garage, distance) for garage, distance in found]
