# src/core/geo/service.py
"""
Geo-сервис на OpenStreetMap.
Геокодирование через Nominatim, маршруты через OSRM.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

import httpx

from src.common.constants import TypeMsg
from src.common.logger import log_info, log_error


@dataclass
class Location:
    """Геолокация."""
    latitude: float
    longitude: float
    address: str = ""


@dataclass
class RouteInfo:
    """Информация о маршруте."""
    distance_km: float
    duration_minutes: float
    # Точки маршрута [lat, lng] для отрисовки на карте
    path: list[list[float]] = field(default_factory=list)


class GeoService:
    """
    Сервис геоданных.

    Реализует:
    - Прямое геокодирование (адрес -> координаты)
    - Расчёт маршрута между точками
    """

    def __init__(
        self,
        nominatim_url: str | None = None,
        osrm_url: str | None = None,
        user_agent: str = "fleet_dispatch/1.0",
        language: str = "en",
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Args:
            nominatim_url: Базовый URL Nominatim (из конфига, если None)
            osrm_url: Базовый URL OSRM (из конфига, если None)
            user_agent: User-Agent, обязателен по правилам Nominatim
            language: Язык адресов
            timeout: Таймаут HTTP запросов (секунды)
            client: Готовый httpx клиент (для тестов)
        """
        if nominatim_url is None or osrm_url is None:
            from src.config import settings
            nominatim_url = nominatim_url or settings.geo.NOMINATIM_URL
            osrm_url = osrm_url or settings.geo.OSRM_URL
            user_agent = settings.geo.GEO_USER_AGENT
            language = settings.geo.GEOCODING_LANGUAGE
            timeout = settings.geo.GEO_TIMEOUT

        self._nominatim_url = nominatim_url.rstrip("/")
        self._osrm_url = osrm_url.rstrip("/")
        self._language = language
        self._client = client or httpx.AsyncClient(
            timeout=timeout,
            headers={"User-Agent": user_agent},
        )

    async def close(self) -> None:
        """Закрывает HTTP клиент."""
        await self._client.aclose()

    async def geocode(self, address: str) -> Optional[Location]:
        """
        Прямое геокодирование: адрес -> координаты.

        Args:
            address: Адрес для геокодирования

        Returns:
            Локация с координатами или None
        """
        if not address.strip():
            return None

        try:
            response = await self._client.get(
                f"{self._nominatim_url}/search",
                params={
                    "q": address,
                    "format": "json",
                    "limit": 1,
                    "accept-language": self._language,
                },
            )
            response.raise_for_status()
            results = response.json()

            if not results:
                await log_info(
                    f"Геокодирование не дало результатов для: {address}",
                    type_msg=TypeMsg.WARNING,
                )
                return None

            first = results[0]
            return Location(
                latitude=float(first["lat"]),
                longitude=float(first["lon"]),
                address=first.get("display_name", address),
            )
        except Exception as e:
            await log_error(f"Ошибка геокодирования '{address}': {e}")
            return None

    async def calculate_route(
        self,
        origin_lat: float,
        origin_lng: float,
        dest_lat: float,
        dest_lng: float,
    ) -> Optional[RouteInfo]:
        """
        Рассчитывает маршрут по дорогам между двумя точками.

        Args:
            origin_lat: Широта начала
            origin_lng: Долгота начала
            dest_lat: Широта конца
            dest_lng: Долгота конца

        Returns:
            Информация о маршруте или None
        """
        # OSRM принимает координаты в порядке lng,lat
        coordinates = f"{origin_lng},{origin_lat};{dest_lng},{dest_lat}"

        try:
            response = await self._client.get(
                f"{self._osrm_url}/route/v1/driving/{coordinates}",
                params={"overview": "full", "geometries": "geojson"},
            )
            response.raise_for_status()
            data = response.json()

            if data.get("code") != "Ok" or not data.get("routes"):
                await log_info(
                    f"Маршрут не найден: ({origin_lat},{origin_lng}) -> ({dest_lat},{dest_lng})",
                    type_msg=TypeMsg.WARNING,
                )
                return None

            route = data["routes"][0]
            path = [
                [point[1], point[0]]
                for point in route.get("geometry", {}).get("coordinates", [])
            ]

            return RouteInfo(
                distance_km=round(route["distance"] / 1000, 2),
                duration_minutes=round(route["duration"] / 60, 1),
                path=path,
            )
        except Exception as e:
            await log_error(f"Ошибка расчёта маршрута: {e}")
            return None
