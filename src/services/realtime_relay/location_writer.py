# src/services/realtime_relay/location_writer.py
"""
Фоновая запись последних координат водителей в БД.

Запись без гарантий: ограниченный буфер (при переполнении выбрасывается
самый старый образец), одна фоновая задача, без повторов. Ошибка записи
только логируется и не влияет на рассылку.
"""

from __future__ import annotations

import asyncio
from collections import deque
from typing import Any, Awaitable, Callable

from src.common.logger import log_debug, log_error, log_info, log_warning
from src.services.realtime_relay.protocol import LocationSample

# (driver_id, lat, lng) -> обновлена ли строка
PersistLocation = Callable[[str, float, float], Awaitable[bool]]


class LocationWriter:
    """Очередь записи координат с одной задачей-писателем."""

    def __init__(self, persist: PersistLocation, buffer_size: int = 1000) -> None:
        self._persist = persist
        self._buffer: deque[LocationSample] = deque(maxlen=buffer_size)
        self._wakeup = asyncio.Event()
        self._task: asyncio.Task | None = None
        self._running = False

        self._submitted = 0
        self._written = 0
        self._unknown_driver = 0
        self._failed = 0
        self._dropped = 0

    @property
    def pending(self) -> int:
        return len(self._buffer)

    def submit(self, sample: LocationSample) -> None:
        """Ставит образец в очередь, не дожидаясь записи."""
        if len(self._buffer) == self._buffer.maxlen:
            self._dropped += 1
        self._buffer.append(sample)
        self._submitted += 1
        self._wakeup.set()

    async def start(self) -> None:
        """Запускает фоновую задачу."""
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._run(), name="relay-location-writer")
        await log_info("Запись координат запущена")

    async def stop(self, timeout: float = 5.0) -> None:
        """Дописывает буфер и останавливает задачу."""
        if self._task is None:
            return
        self._running = False
        self._wakeup.set()
        try:
            await asyncio.wait_for(self._task, timeout)
        except asyncio.TimeoutError:
            await log_warning(f"Запись координат не завершилась за {timeout}с, осталось {self.pending}")
        self._task = None
        await log_info("Запись координат остановлена", extra=self.get_stats())

    async def flush(self) -> int:
        """Синхронно записывает всё из буфера. Возвращает число попыток."""
        attempts = 0
        while self._buffer:
            await self._write(self._buffer.popleft())
            attempts += 1
        return attempts

    async def _run(self) -> None:
        while True:
            await self._wakeup.wait()
            self._wakeup.clear()
            await self.flush()
            if not self._running:
                return

    async def _write(self, sample: LocationSample) -> None:
        try:
            updated = await self._persist(sample.driver_id, sample.lat, sample.lng)
        except Exception as e:
            self._failed += 1
            await log_error(f"Не удалось сохранить координаты водителя {sample.driver_id}: {e}")
            return

        if updated:
            self._written += 1
        else:
            self._unknown_driver += 1
            await log_debug(f"Водитель {sample.driver_id} не найден в БД, координаты не сохранены")

    def get_stats(self) -> dict[str, Any]:
        return {
            "submitted": self._submitted,
            "written": self._written,
            "unknown_driver": self._unknown_driver,
            "failed": self._failed,
            "dropped": self._dropped,
            "pending": self.pending,
        }
