# src/services/realtime_relay/simulator.py
"""
Симулятор водителей: двигает грузовики и шлёт location-update в ретранслятор.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from src.common.logger import log_debug, log_info
from src.services.realtime_relay.client import RelayClient


@dataclass
class SimulatedDriver:
    """Водитель, смещающийся на фиксированный шаг за тик."""
    driver_id: str
    lat: float = 19.0330
    lng: float = 73.0297
    lat_step: float = 0.0005
    lng_step: float = -0.0005
    seq: int = 0

    def advance(self) -> tuple[float, float]:
        self.lat = round(self.lat + self.lat_step, 7)
        self.lng = round(self.lng + self.lng_step, 7)
        self.seq += 1
        return self.lat, self.lng


class DriverSimulator:
    """Периодически отправляет координаты всех водителей через один клиент."""

    def __init__(
        self,
        client: RelayClient,
        drivers: list[SimulatedDriver],
        interval: float = 2.0,
        with_seq: bool = True,
    ) -> None:
        self._client = client
        self._drivers = drivers
        self._interval = interval
        self._with_seq = with_seq
        self._running = False
        self.ticks = 0

    async def tick(self) -> None:
        for driver in self._drivers:
            lat, lng = driver.advance()
            await self._client.send_location(
                driver.driver_id,
                lat,
                lng,
                seq=driver.seq if self._with_seq else None,
            )
        self.ticks += 1

    async def run(self, iterations: int | None = None) -> None:
        """
        Args:
            iterations: Число тиков; None означает до stop()
        """
        self._running = True
        await log_info(
            f"Симуляция запущена: {len(self._drivers)} водител(ей), шаг {self._interval}с"
        )
        while self._running:
            await self.tick()
            for driver in self._drivers:
                await log_debug(f"{driver.driver_id}: {driver.lat:.4f}, {driver.lng:.4f}")
            if iterations is not None and self.ticks >= iterations:
                break
            await asyncio.sleep(self._interval)
        self._running = False

    def stop(self) -> None:
        self._running = False
