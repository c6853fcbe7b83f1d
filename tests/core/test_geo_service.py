# tests/core/test_geo_service.py
"""
Тесты для Geo-сервиса (Nominatim + OSRM).
"""

from __future__ import annotations

import httpx
import pytest

from src.core.geo.service import GeoService, Location, RouteInfo


def make_service(handler) -> GeoService:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GeoService(
        nominatim_url="http://nominatim.test/",
        osrm_url="http://osrm.test",
        client=client,
    )


class TestDataclasses:
    """Тесты для dataclass Location и RouteInfo."""

    def test_location_default_address(self) -> None:
        loc = Location(latitude=19.07, longitude=72.99)
        assert loc.address == ""

    def test_route_default_path(self) -> None:
        route = RouteInfo(distance_km=10.0, duration_minutes=15)
        assert route.path == []


class TestGeocode:
    """Прямое и обратное геокодирование."""

    @pytest.mark.asyncio
    async def test_geocode_returns_first_result(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=[
                {"lat": "19.0771", "lon": "72.9986", "display_name": "Vashi, Navi Mumbai"},
                {"lat": "0", "lon": "0", "display_name": "other"},
            ])

        service = make_service(handler)
        location = await service.geocode("Vashi")
        await service.close()

        assert location == Location(latitude=19.0771, longitude=72.9986, address="Vashi, Navi Mumbai")
        assert seen[0].url.path == "/search"
        assert seen[0].url.params["format"] == "json"
        assert seen[0].url.params["limit"] == "1"

    @pytest.mark.asyncio
    async def test_geocode_empty_result(self) -> None:
        service = make_service(lambda request: httpx.Response(200, json=[]))

        assert await service.geocode("nowhere") is None

    @pytest.mark.asyncio
    async def test_geocode_blank_address_skips_request(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("запрос не ожидался")

        service = make_service(handler)

        assert await service.geocode("   ") is None

    @pytest.mark.asyncio
    async def test_geocode_http_error(self) -> None:
        service = make_service(lambda request: httpx.Response(503))

        assert await service.geocode("Vashi") is None


class TestCalculateRoute:
    """Маршруты OSRM."""

    @pytest.mark.asyncio
    async def test_route_converts_units_and_path(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={
                "code": "Ok",
                "routes": [{
                    "distance": 15432.0,
                    "duration": 1830.0,
                    "geometry": {"coordinates": [[72.9986, 19.0771], [72.8697, 19.1136]]},
                }],
            })

        service = make_service(handler)
        route = await service.calculate_route(19.0771, 72.9986, 19.1136, 72.8697)

        assert route is not None
        assert route.distance_km == 15.43
        assert route.duration_minutes == 30.5
        assert route.path == [[19.0771, 72.9986], [19.1136, 72.8697]]
        # OSRM ждёт lng,lat
        assert seen[0].url.path == "/route/v1/driving/72.9986,19.0771;72.8697,19.1136"
        assert seen[0].url.params["geometries"] == "geojson"

    @pytest.mark.asyncio
    async def test_route_not_found(self) -> None:
        service = make_service(lambda request: httpx.Response(200, json={"code": "NoRoute", "routes": []}))

        assert await service.calculate_route(0, 0, 1, 1) is None

    @pytest.mark.asyncio
    async def test_route_transport_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        service = make_service(handler)

        assert await service.calculate_route(0, 0, 1, 1) is None
