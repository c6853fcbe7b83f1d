# src/shared/__init__.py
"""
Общий код сервисов fleet_dispatch.

Модули:
- models: общие DTO, перечисления и Pydantic-модели
"""

__all__: list[str] = []
