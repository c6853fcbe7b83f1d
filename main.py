#!/usr/bin/env python3
# main.py
"""
Главная точка входа fleet_dispatch.
Запускает ретранслятор, диспетчерский API или оба сервиса в одном процессе.
"""

from __future__ import annotations

import asyncio
import signal
import sys

from src.config import settings
from src.common.logger import setup_logging, log_info, log_error
from src.common.constants import TypeMsg
from src.infra.database import init_db, close_db

VALID_MODES = ("relay", "api", "all")

_shutdown_event: asyncio.Event | None = None
_running_tasks: list[asyncio.Task] = []


def setup_signal_handlers() -> None:
    """Настраивает обработчики SIGINT/SIGTERM для graceful shutdown."""
    global _shutdown_event
    _shutdown_event = asyncio.Event()

    def signal_handler(sig: int) -> None:
        if _shutdown_event and not _shutdown_event.is_set():
            print(f"\nПолучен сигнал остановки (sig={sig}), завершаем работу...")
            _shutdown_event.set()
            for task in _running_tasks:
                if not task.done():
                    task.cancel()

    try:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, lambda s=sig: signal_handler(s))
    except NotImplementedError:
        # Windows не поддерживает add_signal_handler
        signal.signal(signal.SIGINT, lambda s, f: signal_handler(s))
        signal.signal(signal.SIGTERM, lambda s, f: signal_handler(s))


async def _serve(app_path: str, port: int, title: str) -> None:
    """Запускает uvicorn сервер внутри текущего event loop."""
    import uvicorn

    await log_info(f"Запуск {title} на порту {port}...", type_msg=TypeMsg.INFO)

    config = uvicorn.Config(
        app_path,
        host=settings.deployment.BIND_HOST,
        port=port,
        log_level="debug" if settings.system.DEBUG else "info",
    )
    server = uvicorn.Server(config)
    try:
        await server.serve()
    except asyncio.CancelledError:
        await log_info(f"{title}: graceful shutdown", type_msg=TypeMsg.DEBUG)
        await server.shutdown()


async def run_realtime_relay() -> None:
    await _serve(
        "src.services.realtime_relay.app:app",
        settings.deployment.REALTIME_RELAY_PORT,
        "Realtime Relay",
    )


async def run_dispatch_api() -> None:
    await _serve(
        "src.services.dispatch_api.app:app",
        settings.deployment.DISPATCH_API_PORT,
        "Dispatch API",
    )


async def main(mode: str | None = None) -> None:
    """
    Главная функция запуска.

    Args:
        mode: relay, api или all. Если None, берётся COMPONENT_MODE.
    """
    global _running_tasks

    setup_logging()
    setup_signal_handlers()

    mode = mode or settings.system.COMPONENT_MODE
    if mode not in VALID_MODES:
        await log_error(f"Неизвестный режим '{mode}', допустимо: {', '.join(VALID_MODES)}")
        sys.exit(1)

    await log_info(
        f"fleet_dispatch v{settings.system.VERSION} - запуск в режиме '{mode}'",
        type_msg=TypeMsg.INFO,
    )

    # Схема применяется до старта серверов, чтобы сервисы разделили один пул
    await init_db()

    try:
        if mode == "relay":
            runners = [run_realtime_relay]
        elif mode == "api":
            runners = [run_dispatch_api]
        else:
            runners = [run_realtime_relay, run_dispatch_api]

        _running_tasks = [asyncio.create_task(runner()) for runner in runners]
        await asyncio.gather(*_running_tasks, return_exceptions=True)
    finally:
        try:
            await close_db()
        except Exception as e:
            await log_error(f"Ошибка при закрытии подключений: {e}")
        await log_info("Приложение остановлено", type_msg=TypeMsg.INFO)


def print_usage() -> None:
    print("""
fleet_dispatch - диспетчеризация доставки и трекинг водителей

Использование:
    python main.py [mode]

Режимы:
    relay    - Realtime Relay, WebSocket координат и чата (:8089)
    api      - Dispatch API, водители, заказы, аутентификация (:8084)
    all      - оба сервиса в одном процессе

Без аргумента режим берётся из COMPONENT_MODE.
Симулятор водителя: python entrypoints/entrypoint_driver_simulator.py
    """)


if __name__ == "__main__":
    mode = None

    if len(sys.argv) > 1:
        arg = sys.argv[1].lower()
        if arg in ("--help", "-h"):
            print_usage()
            sys.exit(0)
        elif arg in VALID_MODES:
            mode = arg
        else:
            print(f"Ошибка: неизвестный режим '{arg}'")
            print_usage()
            sys.exit(1)

    try:
        asyncio.run(main(mode))
    except KeyboardInterrupt:
        pass
