# src/services/realtime_relay/presence.py
"""
Присутствие водителей в ретрансляторе.

Запоминает время последних координат каждого водителя и держит кэш
статусов из БД, обновляемый по таймеру. Координаты от водителя со
статусом offline не блокируются, только логируются.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Awaitable, Callable

from src.common.logger import log_error, log_warning
from src.core.presence.state_machine import DriverStatusMachine
from src.shared.models.enums import DriverStatus

StatusLoader = Callable[[], Awaitable[dict[str, DriverStatus]]]


class DriverPresenceCoordinator:
    """Кто из водителей сейчас шлёт координаты."""

    def __init__(
        self,
        status_loader: StatusLoader | None = None,
        window_seconds: float = 60,
        refresh_seconds: float = 30,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._status_loader = status_loader
        self._window = window_seconds
        self._refresh_interval = refresh_seconds
        self._clock = clock

        self._last_seen: dict[str, float] = {}
        self._statuses: dict[str, DriverStatus] = {}
        self._task: asyncio.Task | None = None
        self._running = False
        self._offline_samples = 0

    async def record_sample(self, driver_id: str) -> None:
        """Отмечает, что от водителя пришли координаты."""
        self._last_seen[driver_id] = self._clock()

        status = self._statuses.get(driver_id)
        if status is not None and not DriverStatusMachine.emits_location(status):
            self._offline_samples += 1
            await log_warning(f"Координаты от водителя {driver_id} со статусом {status}")

    def is_active(self, driver_id: str) -> bool:
        seen = self._last_seen.get(driver_id)
        return seen is not None and self._clock() - seen <= self._window

    def active_drivers(self) -> list[str]:
        """Водители с координатами в пределах окна; устаревшие записи удаляются."""
        now = self._clock()
        stale = [d for d, seen in self._last_seen.items() if now - seen > self._window]
        for driver_id in stale:
            del self._last_seen[driver_id]
        return sorted(self._last_seen)

    def status_of(self, driver_id: str) -> DriverStatus | None:
        return self._statuses.get(driver_id)

    async def refresh_statuses(self) -> int:
        """Перечитывает статусы из БД. При ошибке старый кэш сохраняется."""
        if self._status_loader is None:
            return 0
        try:
            self._statuses = dict(await self._status_loader())
        except Exception as e:
            await log_error(f"Не удалось обновить статусы водителей: {e}")
        return len(self._statuses)

    async def start(self) -> None:
        if self._running or self._status_loader is None:
            return
        self._running = True
        await self.refresh_statuses()
        self._task = asyncio.create_task(self._refresh_loop(), name="relay-presence-refresh")

    async def stop(self) -> None:
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def _refresh_loop(self) -> None:
        while self._running:
            await asyncio.sleep(self._refresh_interval)
            await self.refresh_statuses()

    def get_stats(self) -> dict[str, Any]:
        return {
            "active_drivers": len(self.active_drivers()),
            "known_statuses": len(self._statuses),
            "offline_samples": self._offline_samples,
        }
