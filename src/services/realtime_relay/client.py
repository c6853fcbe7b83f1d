# src/services/realtime_relay/client.py
"""
Клиент ретранслятора на websockets.

Одно соединение на сессию, открывается при входе в контекст
и закрывается при выходе:

    async with RelayClient("ws://localhost:8089/ws", room="chat-42") as client:
        await client.send_location("42", 19.03, 73.02)
        event = await client.receive()
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, AsyncIterator
from urllib.parse import urlencode

import websockets

from src.common.logger import log_debug, log_info
from src.services.realtime_relay.protocol import ClientEvent


class RelayClient:
    """Асинхронный клиент протокола {"event", "data"}."""

    def __init__(self, url: str, room: str | None = None, open_timeout: float = 10.0) -> None:
        self._url = url
        self._room = room
        self._open_timeout = open_timeout
        self._ws: Any = None

    @property
    def url(self) -> str:
        if not self._room:
            return self._url
        separator = "&" if "?" in self._url else "?"
        return f"{self._url}{separator}{urlencode({'room': self._room})}"

    @property
    def is_connected(self) -> bool:
        return self._ws is not None

    async def __aenter__(self) -> RelayClient:
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def connect(self) -> None:
        if self._ws is not None:
            return
        self._ws = await websockets.connect(self.url, open_timeout=self._open_timeout)
        await log_info(f"Подключено к ретранслятору: {self.url}")

    async def close(self) -> None:
        if self._ws is None:
            return
        ws, self._ws = self._ws, None
        await ws.close()
        await log_debug("Соединение с ретранслятором закрыто")

    async def emit(self, event: ClientEvent, data: Any = None) -> None:
        if self._ws is None:
            raise RuntimeError("Клиент не подключён, используйте async with или connect()")
        await self._ws.send(json.dumps({"event": event.value, "data": data}))

    async def join_room(self, room_id: str) -> None:
        await self.emit(ClientEvent.JOIN_ROOM, {"roomId": room_id})

    async def leave_room(self, room_id: str) -> None:
        await self.emit(ClientEvent.LEAVE_ROOM, {"roomId": room_id})

    async def send_location(self, driver_id: str, lat: float, lng: float, seq: int | None = None) -> None:
        data: dict[str, Any] = {"driverId": driver_id, "lat": lat, "lng": lng}
        if seq is not None:
            data["seq"] = seq
        await self.emit(ClientEvent.LOCATION_UPDATE, data)

    async def send_message(
        self,
        room: str,
        author: str,
        sender_role: str,
        text: str,
        time: str,
        **extra: Any,
    ) -> None:
        await self.emit(ClientEvent.SEND_MESSAGE, {
            "room": room,
            "author": author,
            "senderRole": sender_role,
            "text": text,
            "time": time,
            **extra,
        })

    async def ping(self) -> None:
        await self.emit(ClientEvent.PING)

    async def receive(self, timeout: float | None = None) -> dict[str, Any]:
        """Следующее событие сервера."""
        if self._ws is None:
            raise RuntimeError("Клиент не подключён")
        raw = await asyncio.wait_for(self._ws.recv(), timeout)
        return json.loads(raw)

    async def events(self) -> AsyncIterator[dict[str, Any]]:
        """Поток событий до закрытия соединения."""
        if self._ws is None:
            raise RuntimeError("Клиент не подключён")
        async for raw in self._ws:
            yield json.loads(raw)
