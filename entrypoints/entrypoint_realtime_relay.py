#!/usr/bin/env python3
"""
Entrypoint для Realtime Relay.

Запуск:
    python entrypoint_realtime_relay.py

Порт по умолчанию: 8089
"""

import sys
from pathlib import Path

# Добавляем корневую директорию проекта в путь
project_root = Path(__file__).parent.parent.resolve()
sys.path.insert(0, str(project_root))

import uvicorn

from src.config import settings


def main() -> None:
    """Запустить Realtime Relay."""
    uvicorn.run(
        "src.services.realtime_relay.app:app",
        host=settings.deployment.BIND_HOST,
        port=settings.deployment.REALTIME_RELAY_PORT,
        log_level=settings.logging.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
