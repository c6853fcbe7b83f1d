# src/core/users/__init__.py
"""
Домен пользователей: хранение водителей и диспетчеров.
"""

from src.core.users.repository import UserRepository

__all__ = [
    "UserRepository",
]
