# src/services/__init__.py
"""
Сервисы приложения.

Сервисы:
- realtime_relay: WebSocket ретранслятор координат водителей и чата
- dispatch_api: HTTP API аутентификации, водителей и заказов
"""

__all__: list[str] = []
