# src/core/geo/__init__.py
"""
Geo-сервис: геокодирование адресов и маршруты по дорогам (OpenStreetMap).
"""

from src.core.geo.service import GeoService, Location, RouteInfo

__all__ = [
    "GeoService",
    "Location",
    "RouteInfo",
]
