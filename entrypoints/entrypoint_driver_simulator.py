#!/usr/bin/env python3
"""
Симулятор водителя: грузовик стартует в Нави-Мумбаи и каждые 2 секунды
смещается на северо-запад, отправляя location-update в ретранслятор.

Запуск:
    python entrypoint_driver_simulator.py [--url ws://localhost:8089/ws] [--driver driver-1]
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Добавляем корневую директорию проекта в путь
project_root = Path(__file__).parent.parent.resolve()
sys.path.insert(0, str(project_root))

from src.common.logger import setup_logging
from src.config import settings
from src.services.realtime_relay.client import RelayClient
from src.services.realtime_relay.simulator import DriverSimulator, SimulatedDriver


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    default_url = (
        f"ws://localhost:{settings.deployment.REALTIME_RELAY_PORT}/ws"
    )
    parser = argparse.ArgumentParser(description="Симулятор водителя")
    parser.add_argument("--url", default=default_url, help="адрес WebSocket ретранслятора")
    parser.add_argument("--driver", action="append", dest="drivers", help="id водителя (можно несколько)")
    parser.add_argument("--interval", type=float, default=2.0, help="шаг в секундах")
    parser.add_argument("--iterations", type=int, default=None, help="число шагов (по умолчанию бесконечно)")
    return parser.parse_args(argv)


async def run(args: argparse.Namespace) -> None:
    setup_logging()
    drivers = [SimulatedDriver(driver_id=d) for d in (args.drivers or ["driver-1"])]
    async with RelayClient(args.url) as client:
        simulator = DriverSimulator(client, drivers, interval=args.interval)
        await simulator.run(iterations=args.iterations)


if __name__ == "__main__":
    try:
        asyncio.run(run(parse_args()))
    except KeyboardInterrupt:
        print("\nСимуляция остановлена")
