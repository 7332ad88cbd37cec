# tests/core/test_discovery_service.py
"""
Тесты для геометрии и поиска гаражей поблизости.
"""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock

import pytest

from garagehub.common.exceptions import ValidationError
from garagehub.core.discovery.geo import EARTH_RADIUS_M, check_coordinates, distance_meters
from garagehub.core.discovery.service import DiscoveryService


class TestDistance:
    """Тесты для distance_meters."""

    def test_same_point(self) -> None:
        assert distance_meters(30.5, 50.4, 30.5, 50.4) == 0

    def test_one_hundredth_degree_latitude(self) -> None:
        """0.01° по меридиану ≈ 1113 м на сфере радиуса 6378.1 км."""
        distance = distance_meters(0.0, 0.0, 0.0, 0.01)

        assert distance == pytest.approx(1113.2, abs=0.5)

    def test_symmetric(self) -> None:
        a = distance_meters(55.27, 25.2, 55.3, 25.25)
        b = distance_meters(55.3, 25.25, 55.27, 25.2)

        assert a == pytest.approx(b)

    def test_longitude_first(self) -> None:
        """На экваторе сдвиг по долготе и по широте дают одно расстояние, у полюса нет."""
        along_parallel = distance_meters(0.0, 80.0, 1.0, 80.0)
        along_meridian = distance_meters(0.0, 80.0, 0.0, 81.0)

        assert along_parallel < along_meridian

    def test_antipodes(self) -> None:
        distance = distance_meters(0.0, 0.0, 180.0, 0.0)

        assert distance == pytest.approx(3.141592653589793 * EARTH_RADIUS_M)

    @pytest.mark.parametrize(
        "lon,lat,expected",
        [(0, 0, True), (180, 90, True), (-180, -90, True), (180.1, 0, False), (0, -90.5, False)],
    )
    def test_check_coordinates(self, lon: float, lat: float, expected: bool) -> None:
        assert check_coordinates(lon, lat) is expected


class TestFindNearbyGarages:
    """Тесты для DiscoveryService."""

    @pytest.mark.asyncio
    async def test_radius_and_order(self, discovery: DiscoveryService, register_garage) -> None:
        near = await register_garage(longitude=0.0, latitude=0.001)
        nearest = await register_garage(longitude=0.0, latitude=0.0)
        await register_garage(longitude=0.0, latitude=0.01)

        garages = await discovery.find_nearby_garages(0, 0, 1000)

        assert [g.id for g in garages] == [nearest.user.id, near.user.id]
        assert garages[0].distance_meters == pytest.approx(0.0)
        assert garages[1].distance_meters == pytest.approx(111.3, abs=0.5)

    @pytest.mark.asyncio
    async def test_excludes_unverified_and_inactive(
        self,
        discovery: DiscoveryService,
        register_garage,
    ) -> None:
        visible = await register_garage()
        await register_garage(verified=False)
        await register_garage(active=False)

        garages = await discovery.find_nearby_garages(0, 0, 1000)

        assert [g.id for g in garages] == [visible.user.id]

    @pytest.mark.asyncio
    async def test_excludes_garages_without_location(
        self,
        discovery: DiscoveryService,
        register_garage,
    ) -> None:
        await register_garage(longitude=None, latitude=None)

        assert await discovery.find_nearby_garages(0, 0) == []

    @pytest.mark.asyncio
    async def test_default_radius(self, discovery: DiscoveryService, register_garage) -> None:
        """По умолчанию радиус 10 км."""
        inside = await register_garage(longitude=0.0, latitude=0.08)
        await register_garage(longitude=0.0, latitude=0.1)

        garages = await discovery.find_nearby_garages("0", "0")

        assert [g.id for g in garages] == [inside.user.id]

    @pytest.mark.asyncio
    async def test_projection_has_no_credentials(
        self,
        discovery: DiscoveryService,
        register_garage,
    ) -> None:
        await register_garage()

        garages = await discovery.find_nearby_garages(0, 0)
        dumped = garages[0].model_dump(by_alias=True)

        assert "email" not in dumped
        assert "passwordHash" not in dumped
        assert "reviews" not in dumped
        assert {"garageName", "address", "location", "ratings", "services", "specialties", "operatingHours"} <= set(dumped)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("lon,lat", [(None, 0), (0, None), ("", "1"), (None, None)])
    async def test_missing_coordinate(self, lon: Any, lat: Any) -> None:
        repository = AsyncMock()
        service = DiscoveryService(repository)

        with pytest.raises(ValidationError):
            await service.find_nearby_garages(lon, lat)

        repository.find_nearby_garages.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "lon,lat,radius",
        [("abc", 0, None), (0, 95, None), (200, 0, None), (0, 0, -1), (0, 0, 10**9), (0, 0, "far")],
    )
    async def test_invalid_input(self, lon: Any, lat: Any, radius: Any) -> None:
        service = DiscoveryService(AsyncMock(), max_distance_limit_m=200000)

        with pytest.raises(ValidationError):
            await service.find_nearby_garages(lon, lat, radius)

    @pytest.mark.asyncio
    async def test_passes_default_radius_to_storage(self) -> None:
        repository = AsyncMock()
        repository.find_nearby_garages = AsyncMock(return_value=[])
        service = DiscoveryService(repository, default_max_distance_m=10000)

        await service.find_nearby_garages(55.27, 25.2)

        repository.find_nearby_garages.assert_awaited_once_with(55.27, 25.2, 10000.0)
