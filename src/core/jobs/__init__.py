# src/core/jobs/__init__.py
"""
Домен заказов на доставку.
"""

from src.core.jobs.repository import JobRepository

__all__ = [
    "JobRepository",
]
