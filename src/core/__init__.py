# src/core/__init__.py
"""
Доменный слой: пользователи, заказы, статусы водителей, геосервис.
"""
