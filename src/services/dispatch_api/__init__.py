# src/services/dispatch_api/__init__.py
"""
Диспетчерский API: регистрация и вход, водители, заказы на доставку.
"""
