# tests/conftest.py
"""
Общие фикстуры и настройки для тестов.
"""

from __future__ import annotations

import asyncio
import json
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock

import pytest

# Устанавливаем переменные окружения перед импортом модулей
os.environ.setdefault("DB_PASSWORD", "test_password")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret-with-at-least-32-bytes!!")


# =============================================================================
# ФИКСТУРЫ КОНФИГУРАЦИИ
# =============================================================================

@pytest.fixture(scope="session")
def project_root() -> Path:
    """Корневая директория проекта."""
    return Path(__file__).parent.parent


@pytest.fixture(scope="session")
def config_path(project_root: Path) -> Path:
    """Путь к файлу конфигурации."""
    return project_root / "config" / "config.json"


@pytest.fixture
def mock_config() -> dict[str, Any]:
    """Мок конфигурации для тестов."""
    return {
        "_comment_system": "комментарий",
        "PROJECT_NAME": "fleet_dispatch_test",
        "VERSION": "1.0.0-test",
        "DEBUG": False,
        "ENVIRONMENT": "test",
        "COMPONENT_MODE": "relay",
        "REALTIME_RELAY_PORT": 9089,
        "DISPATCH_API_PORT": 9084,
        "LOG_LEVEL": "INFO",
        "LOG_TO_FILE": False,
        "LOG_FORMAT": "json",
        "DB_HOST": "db.test",
        "DB_NAME": "fleet_dispatch_test",
        "DB_USER": "tester",
        "DB_PASSWORD": "secret",
        "RELAY_OUTBOX_SIZE": 32,
        "RELAY_MAX_ROOM_MEMBERS": 5,
        "RELAY_LOCATION_BUFFER_SIZE": 100,
        "RELAY_PERSIST_LOCATIONS": False,
        "JWT_EXPIRE_DAYS": 7,
        "OSRM_URL": "http://osrm.test",
    }


# =============================================================================
# ФИКСТУРЫ ИНФРАСТРУКТУРЫ (МОКИ)
# =============================================================================

@pytest.fixture
def mock_db() -> AsyncMock:
    """Мок менеджера базы данных."""
    db = AsyncMock()
    db.fetchrow = AsyncMock(return_value=None)
    db.fetch = AsyncMock(return_value=[])
    db.execute = AsyncMock(return_value="UPDATE 1")
    db.fetchval = AsyncMock(return_value=None)
    return db


class FakeWebSocket:
    """
    Заглушка WebSocket для тестов реестра соединений.
    Отправленные сообщения складываются в sent.
    """

    def __init__(self, fail_on_send: bool = False, send_delay: float = 0.0) -> None:
        self.sent: list[str] = []
        self.accepted = False
        self.closed = False
        self.fail_on_send = fail_on_send
        self.send_delay = send_delay

    async def accept(self) -> None:
        self.accepted = True

    async def send_text(self, data: str) -> None:
        if self.send_delay:
            await asyncio.sleep(self.send_delay)
        if self.fail_on_send:
            raise RuntimeError("socket closed")
        self.sent.append(data)

    async def close(self, code: int = 1000) -> None:
        self.closed = True

    def events(self) -> list[dict[str, Any]]:
        return [json.loads(item) for item in self.sent]


@pytest.fixture
def fake_websocket_factory():
    """Фабрика заглушек WebSocket."""
    return FakeWebSocket


# =============================================================================
# ФИКСТУРЫ МОДЕЛЕЙ
# =============================================================================

@pytest.fixture
def sample_user_record() -> dict[str, Any]:
    """Строка таблицы users (водитель)."""
    return {
        "id": "driver-1",
        "name": "Ravi Kumar",
        "email": "ravi@example.com",
        "password_hash": "$argon2id$v=19$m=1024,t=1,p=1$stub",
        "role": "driver",
        "status": "available",
        "vehicle_type": "Truck",
        "license_plate": "MH-04-AB-1234",
        "location_lat": 19.033,
        "location_lng": 73.0297,
        "location_updated_at": datetime(2026, 1, 10, 8, 30, tzinfo=timezone.utc),
        "created_at": datetime(2026, 1, 1, tzinfo=timezone.utc),
        "updated_at": datetime(2026, 1, 10, tzinfo=timezone.utc),
    }


@pytest.fixture
def sample_job_record() -> dict[str, Any]:
    """Строка jobs после LEFT JOIN с users."""
    return {
        "id": "job-1",
        "order_id": "ORD-1001",
        "pickup_address": "Vashi, Navi Mumbai",
        "dropoff_address": "Andheri East, Mumbai",
        "pickup_lat": 19.0771,
        "pickup_lng": 72.9986,
        "dropoff_lat": 19.1136,
        "dropoff_lng": 72.8697,
        "priority": "Normal",
        "status": "pending",
        "assigned_driver_id": None,
        "driver_name": None,
        "driver_vehicle_type": None,
        "created_at": datetime(2026, 1, 10, 9, 0, tzinfo=timezone.utc),
        "updated_at": datetime(2026, 1, 10, 9, 0, tzinfo=timezone.utc),
    }


# =============================================================================
# УТИЛИТЫ
# =============================================================================

@pytest.fixture
def temp_config_file(tmp_path: Path, mock_config: dict[str, Any]) -> Path:
    """Создаёт временный файл конфигурации."""
    config_file = tmp_path / "config.json"
    config_file.write_text(json.dumps(mock_config, ensure_ascii=False, indent=2))
    return config_file
