# src/services/realtime_relay/connection_manager.py
"""
Реестр WebSocket соединений ретранслятора.

У каждого соединения своя ограниченная очередь исходящих сообщений и
отдельная задача-писатель. Реестр и членство в комнатах меняются только
под одним asyncio.Lock; рассылки берут снимок под lock и кладут
сообщения в очереди уже без него.
"""

from __future__ import annotations

import asyncio
import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from fastapi import WebSocket

from src.common.logger import log_debug, log_info, log_warning
from src.services.realtime_relay.rooms import RoomMembership


@dataclass(eq=False)
class ConnectionHandle:
    """Живое соединение клиента."""
    websocket: WebSocket
    outbox: asyncio.Queue
    connection_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    connected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    alive: bool = True
    writer_task: asyncio.Task | None = None
    dropped_messages: int = 0

    def enqueue(self, payload: str) -> bool:
        """
        Кладёт сериализованное сообщение в очередь.

        Returns:
            False, если соединение закрыто или очередь переполнена
        """
        if not self.alive:
            return False
        try:
            self.outbox.put_nowait(payload)
        except asyncio.QueueFull:
            self.dropped_messages += 1
            return False
        return True

    def discard_pending(self) -> int:
        """Очищает очередь и возвращает число выброшенных сообщений."""
        discarded = 0
        while not self.outbox.empty():
            self.outbox.get_nowait()
            discarded += 1
        return discarded


class ConnectionRegistry:
    """
    Реестр соединений и их комнат.

    Поддерживает:
    - Подключение/отключение клиентов
    - Вход/выход из комнат
    - Рассылку всем, в комнату и одному соединению
    """

    def __init__(self, outbox_size: int = 256, max_room_members: int = 0) -> None:
        self._outbox_size = outbox_size
        self._lock = asyncio.Lock()
        self._connections: dict[str, ConnectionHandle] = {}
        self._membership = RoomMembership(max_members=max_room_members)

        # Для статистики
        self._total_connections: int = 0
        self._total_messages_sent: int = 0
        self._total_send_failures: int = 0
        self._total_dropped: int = 0

    @property
    def active_connections(self) -> int:
        return len(self._connections)

    async def connect(self, websocket: WebSocket) -> ConnectionHandle:
        """Принимает WebSocket и регистрирует соединение."""
        await websocket.accept()

        handle = ConnectionHandle(
            websocket=websocket,
            outbox=asyncio.Queue(maxsize=self._outbox_size),
        )
        async with self._lock:
            self._connections[handle.connection_id] = handle
            self._total_connections += 1

        handle.writer_task = asyncio.create_task(
            self._writer(handle),
            name=f"relay-writer-{handle.connection_id}",
        )
        await log_debug(f"Соединение {handle.connection_id} подключено")
        return handle

    async def disconnect(self, handle: ConnectionHandle, close: bool = False) -> bool:
        """
        Удаляет соединение и все его комнаты.

        Повторный вызов безопасен и возвращает False.

        Args:
            handle: Соединение
            close: Закрыть WebSocket со стороны сервера
        """
        async with self._lock:
            if self._connections.pop(handle.connection_id, None) is None:
                return False
            rooms = self._membership.leave_all(handle.connection_id)
            handle.alive = False

        discarded = handle.discard_pending()

        task = handle.writer_task
        if task is not None and task is not asyncio.current_task():
            task.cancel()

        if close:
            try:
                await handle.websocket.close()
            except Exception as e:
                await log_debug(f"WebSocket {handle.connection_id} уже закрыт: {e}")

        await log_debug(
            f"Соединение {handle.connection_id} отключено",
            extra={"rooms": sorted(rooms), "discarded": discarded},
        )
        return True

    async def join(self, handle: ConnectionHandle, room_id: str) -> bool:
        """
        Добавляет соединение в комнату.

        Raises:
            RoomFullError: превышен лимит участников комнаты
        """
        async with self._lock:
            if handle.connection_id not in self._connections:
                return False
            joined = self._membership.join(handle.connection_id, room_id)
        if joined:
            await log_debug(f"Соединение {handle.connection_id} вошло в {room_id}")
        return joined

    async def leave(self, handle: ConnectionHandle, room_id: str) -> bool:
        async with self._lock:
            return self._membership.leave(handle.connection_id, room_id)

    async def members_of(self, room_id: str) -> frozenset[str]:
        async with self._lock:
            return self._membership.members_of(room_id)

    async def rooms_of(self, handle: ConnectionHandle) -> frozenset[str]:
        async with self._lock:
            return self._membership.rooms_of(handle.connection_id)

    async def send_personal(self, handle: ConnectionHandle, message: dict[str, Any]) -> bool:
        """Отправляет сообщение одному соединению."""
        return await self._fan_out([handle], json.dumps(message)) == 1

    async def broadcast_all(self, message: dict[str, Any]) -> int:
        """
        Отправляет сообщение всем соединениям.

        Returns:
            Количество соединений, в очередь которых попало сообщение
        """
        async with self._lock:
            targets = list(self._connections.values())
        return await self._fan_out(targets, json.dumps(message))

    async def send_to_room(self, room_id: str, message: dict[str, Any]) -> int:
        """Отправляет сообщение участникам комнаты."""
        async with self._lock:
            targets = [
                self._connections[connection_id]
                for connection_id in self._membership.members_of(room_id)
                if connection_id in self._connections
            ]
        return await self._fan_out(targets, json.dumps(message))

    async def close_all(self) -> int:
        """Закрывает все соединения (остановка сервиса)."""
        async with self._lock:
            handles = list(self._connections.values())
        closed = 0
        for handle in handles:
            if await self.disconnect(handle, close=True):
                closed += 1
        if closed:
            await log_info(f"Закрыто соединений: {closed}")
        return closed

    async def _fan_out(self, targets: list[ConnectionHandle], payload: str) -> int:
        queued = 0
        for handle in targets:
            if handle.enqueue(payload):
                queued += 1
            elif handle.alive:
                self._total_dropped += 1
                await log_warning(
                    f"Очередь соединения {handle.connection_id} переполнена, сообщение отброшено",
                    extra={"dropped_total": handle.dropped_messages},
                )
        return queued

    async def _writer(self, handle: ConnectionHandle) -> None:
        """Отправляет сообщения из очереди соединения по порядку."""
        while True:
            payload = await handle.outbox.get()
            if not handle.alive:
                return
            try:
                await handle.websocket.send_text(payload)
            except Exception as e:
                self._total_send_failures += 1
                await log_warning(f"Ошибка отправки в {handle.connection_id}, соединение удалено: {e}")
                await self.disconnect(handle, close=True)
                return
            self._total_messages_sent += 1

    def get_stats(self) -> dict[str, Any]:
        return {
            "active_connections": len(self._connections),
            "rooms": self._membership.room_count,
            "total_connections_ever": self._total_connections,
            "total_messages_sent": self._total_messages_sent,
            "total_send_failures": self._total_send_failures,
            "total_messages_dropped": self._total_dropped,
        }
