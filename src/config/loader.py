# src/config/loader.py
"""
Загрузчик конфигурации проекта.
Единственный источник истины - config/config.json.
Секретные данные и адреса переопределяются из переменных окружения.
"""

from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings


# =============================================================================
# ОПРЕДЕЛЕНИЕ ПУТЕЙ
# =============================================================================

def get_project_root() -> Path:
    """Возвращает корневую директорию проекта."""
    return Path(__file__).parent.parent.parent


def get_config_path() -> Path:
    """Возвращает путь к файлу конфигурации."""
    return get_project_root() / "config" / "config.json"


def load_config_json() -> dict[str, Any]:
    """Загружает config.json и возвращает словарь."""
    config_path = get_config_path()
    if not config_path.exists():
        raise FileNotFoundError(f"Файл конфигурации не найден: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        return json.load(f)


# =============================================================================
# PYDANTIC МОДЕЛИ КОНФИГУРАЦИИ
# =============================================================================

class SystemSettings(BaseModel):
    """Системные настройки."""
    PROJECT_NAME: str = "fleet_dispatch"
    VERSION: str = "1.0.0"
    DEBUG: bool = True
    ENVIRONMENT: str = "development"
    COMPONENT_MODE: str = "all"


class DeploymentSettings(BaseModel):
    """Настройки развертывания компонентов."""
    BIND_HOST: str = "0.0.0.0"
    REALTIME_RELAY_HOST: str = "realtime_relay"
    REALTIME_RELAY_PORT: int = 8089
    DISPATCH_API_HOST: str = "dispatch_api"
    DISPATCH_API_PORT: int = 8084


class LoggingSettings(BaseModel):
    """Настройки логирования."""
    LOG_LEVEL: str = "DEBUG"
    LOG_TO_FILE: bool = True
    LOG_FILE_PATH: str = "logs/app.log"
    LOG_FORMAT: str = "colored"
    LOG_MAX_BYTES: int = 10485760


class DatabaseSettings(BaseModel):
    """Настройки PostgreSQL."""
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_NAME: str = "fleet_dispatch"
    DB_USER: str = "postgres"
    DB_PASSWORD: str = ""
    DB_MIN_POOL_SIZE: int = 2
    DB_MAX_POOL_SIZE: int = 10
    DB_COMMAND_TIMEOUT: int = 60
    DB_RETRY_ATTEMPTS: int = 3
    DB_RETRY_DELAY: float = 1.0

    @field_validator("DB_PASSWORD", mode="before")
    @classmethod
    def get_from_env(cls, v: str) -> str:
        """Получает пароль из переменных окружения."""
        if not v:
            return os.getenv("DB_PASSWORD", "")
        return v

    @property
    def dsn(self) -> str:
        """Возвращает DSN для подключения к PostgreSQL."""
        return (
            f"postgresql://{self.DB_USER}:{self.DB_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        )


class RelaySettings(BaseModel):
    """Настройки realtime-ретранслятора координат и чата."""
    RELAY_OUTBOX_SIZE: int = 256
    RELAY_MAX_ROOM_MEMBERS: int = 0
    RELAY_LOCATION_BUFFER_SIZE: int = 1000
    RELAY_PRESENCE_WINDOW_SECONDS: int = 60
    RELAY_PRESENCE_REFRESH_SECONDS: int = 30
    RELAY_PERSIST_LOCATIONS: bool = True

    @field_validator("RELAY_OUTBOX_SIZE", "RELAY_LOCATION_BUFFER_SIZE")
    @classmethod
    def must_be_positive(cls, v: int) -> int:
        """Размер буфера должен быть положительным."""
        if v <= 0:
            raise ValueError("размер буфера должен быть больше нуля")
        return v

    @field_validator("RELAY_MAX_ROOM_MEMBERS")
    @classmethod
    def must_be_non_negative(cls, v: int) -> int:
        """0 означает отсутствие ограничения."""
        if v < 0:
            raise ValueError("лимит участников комнаты не может быть отрицательным")
        return v


class AuthSettings(BaseModel):
    """Настройки аутентификации."""
    JWT_SECRET: str = ""
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRE_DAYS: int = 30

    @field_validator("JWT_SECRET", mode="before")
    @classmethod
    def get_from_env(cls, v: str) -> str:
        """Получает секрет из переменных окружения."""
        env_secret = os.getenv("JWT_SECRET", "")
        if env_secret:
            return env_secret
        return v or ""


class GeoSettings(BaseModel):
    """Настройки геокодирования и маршрутизации."""
    NOMINATIM_URL: str = "https://nominatim.openstreetmap.org"
    OSRM_URL: str = "https://router.project-osrm.org"
    GEO_USER_AGENT: str = "fleet_dispatch/1.0"
    GEO_TIMEOUT: float = 10.0
    GEOCODING_LANGUAGE: str = "en"


# =============================================================================
# ГЛАВНЫЙ КЛАСС НАСТРОЕК
# =============================================================================

class Settings(BaseSettings):
    """
    Главный класс настроек приложения.
    Агрегирует все секции конфигурации.
    """
    system: SystemSettings = Field(default_factory=SystemSettings)
    deployment: DeploymentSettings = Field(default_factory=DeploymentSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    relay: RelaySettings = Field(default_factory=RelaySettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    geo: GeoSettings = Field(default_factory=GeoSettings)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @classmethod
    def from_config_json(cls) -> "Settings":
        """
        Создаёт объект Settings из config.json.
        Секреты и адреса переопределяются из переменных окружения.
        """
        config_data = load_config_json()

        # Фильтруем комментарии (ключи, начинающиеся с _comment_)
        data = {k: v for k, v in config_data.items() if not k.startswith("_comment_")}

        return cls(
            system=SystemSettings(
                PROJECT_NAME=data.get("PROJECT_NAME", "fleet_dispatch"),
                VERSION=data.get("VERSION", "1.0.0"),
                DEBUG=data.get("DEBUG", True),
                ENVIRONMENT=os.getenv("ENVIRONMENT", data.get("ENVIRONMENT", "development")),
                COMPONENT_MODE=os.getenv("COMPONENT_MODE", data.get("COMPONENT_MODE", "all")),
            ),
            deployment=DeploymentSettings(
                BIND_HOST=data.get("BIND_HOST", "0.0.0.0"),
                REALTIME_RELAY_HOST=os.getenv(
                    "REALTIME_RELAY_HOST", data.get("REALTIME_RELAY_HOST", "realtime_relay")
                ),
                REALTIME_RELAY_PORT=int(os.getenv(
                    "REALTIME_RELAY_PORT", data.get("REALTIME_RELAY_PORT", 8089)
                )),
                DISPATCH_API_HOST=os.getenv(
                    "DISPATCH_API_HOST", data.get("DISPATCH_API_HOST", "dispatch_api")
                ),
                DISPATCH_API_PORT=int(os.getenv(
                    "DISPATCH_API_PORT", data.get("DISPATCH_API_PORT", 8084)
                )),
            ),
            logging=LoggingSettings(
                LOG_LEVEL=os.getenv("LOG_LEVEL", data.get("LOG_LEVEL", "DEBUG")),
                LOG_TO_FILE=data.get("LOG_TO_FILE", True),
                LOG_FILE_PATH=data.get("LOG_FILE_PATH", "logs/app.log"),
                LOG_FORMAT=data.get("LOG_FORMAT", "colored"),
                LOG_MAX_BYTES=data.get("LOG_MAX_BYTES", 10485760),
            ),
            database=DatabaseSettings(
                DB_HOST=os.getenv("DB_HOST", data.get("DB_HOST", "localhost")),
                DB_PORT=int(os.getenv("DB_PORT", data.get("DB_PORT", 5432))),
                DB_NAME=os.getenv("DB_NAME", data.get("DB_NAME", "fleet_dispatch")),
                DB_USER=os.getenv("DB_USER", data.get("DB_USER", "postgres")),
                DB_PASSWORD=os.getenv("DB_PASSWORD", data.get("DB_PASSWORD", "")),
                DB_MIN_POOL_SIZE=data.get("DB_MIN_POOL_SIZE", 2),
                DB_MAX_POOL_SIZE=data.get("DB_MAX_POOL_SIZE", 10),
                DB_COMMAND_TIMEOUT=data.get("DB_COMMAND_TIMEOUT", 60),
                DB_RETRY_ATTEMPTS=data.get("DB_RETRY_ATTEMPTS", 3),
                DB_RETRY_DELAY=data.get("DB_RETRY_DELAY", 1.0),
            ),
            relay=RelaySettings(
                RELAY_OUTBOX_SIZE=data.get("RELAY_OUTBOX_SIZE", 256),
                RELAY_MAX_ROOM_MEMBERS=int(os.getenv(
                    "RELAY_MAX_ROOM_MEMBERS", data.get("RELAY_MAX_ROOM_MEMBERS", 0)
                )),
                RELAY_LOCATION_BUFFER_SIZE=data.get("RELAY_LOCATION_BUFFER_SIZE", 1000),
                RELAY_PRESENCE_WINDOW_SECONDS=data.get("RELAY_PRESENCE_WINDOW_SECONDS", 60),
                RELAY_PRESENCE_REFRESH_SECONDS=data.get("RELAY_PRESENCE_REFRESH_SECONDS", 30),
                RELAY_PERSIST_LOCATIONS=data.get("RELAY_PERSIST_LOCATIONS", True),
            ),
            auth=AuthSettings(
                JWT_SECRET=data.get("JWT_SECRET", ""),
                JWT_ALGORITHM=data.get("JWT_ALGORITHM", "HS256"),
                JWT_EXPIRE_DAYS=data.get("JWT_EXPIRE_DAYS", 30),
            ),
            geo=GeoSettings(
                NOMINATIM_URL=os.getenv("NOMINATIM_URL", data.get("NOMINATIM_URL", "https://nominatim.openstreetmap.org")),
                OSRM_URL=os.getenv("OSRM_URL", data.get("OSRM_URL", "https://router.project-osrm.org")),
                GEO_USER_AGENT=data.get("GEO_USER_AGENT", "fleet_dispatch/1.0"),
                GEO_TIMEOUT=data.get("GEO_TIMEOUT", 10.0),
                GEOCODING_LANGUAGE=data.get("GEOCODING_LANGUAGE", "en"),
            ),
        )


@lru_cache()
def get_settings() -> Settings:
    """
    Возвращает синглтон настроек приложения.
    Использует кэширование для производительности.
    """
    from dotenv import load_dotenv

    env_path = get_project_root() / ".env"
    if env_path.exists():
        load_dotenv(env_path)

    return Settings.from_config_json()


# Экспорт синглтона для удобного импорта
settings = get_settings()
