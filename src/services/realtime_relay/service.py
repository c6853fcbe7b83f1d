# src/services/realtime_relay/service.py
"""
Сервис ретрансляции координат и чата.

Связывает реестр соединений, каналы, запись координат и присутствие
водителей; разбирает входящие кадры и направляет их в нужный канал.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any

from fastapi import WebSocket

from src.common.logger import log_info, log_warning
from src.services.realtime_relay.channels import ChatRelayChannel, LocationBroadcastChannel
from src.services.realtime_relay.connection_manager import ConnectionHandle, ConnectionRegistry
from src.services.realtime_relay.location_writer import LocationWriter
from src.services.realtime_relay.presence import DriverPresenceCoordinator
from src.services.realtime_relay.protocol import (
    ClientEvent,
    ProtocolError,
    ServerEvent,
    parse_client_event,
    server_event,
)
from src.services.realtime_relay.rooms import RoomFullError

if TYPE_CHECKING:
    from src.core.users.repository import UserRepository


class RealtimeRelayService:
    """Ретранслятор: координаты всем, чат по комнатам, ping/pong."""

    def __init__(
        self,
        registry: ConnectionRegistry | None = None,
        location_writer: LocationWriter | None = None,
        presence: DriverPresenceCoordinator | None = None,
    ) -> None:
        self.registry = registry or ConnectionRegistry()
        self.location_writer = location_writer
        self.presence = presence or DriverPresenceCoordinator()
        self.locations = LocationBroadcastChannel(self.registry, location_writer, self.presence)
        self.chat = ChatRelayChannel(self.registry)

        self._started_at = time.monotonic()
        self._frames_received = 0
        self._frames_rejected = 0

    @classmethod
    def from_settings(cls, user_repository: UserRepository | None = None) -> RealtimeRelayService:
        """
        Собирает сервис по конфигурации.

        Без репозитория координаты не сохраняются, а кэш статусов пуст.
        """
        from src.config import settings

        relay = settings.relay
        registry = ConnectionRegistry(
            outbox_size=relay.RELAY_OUTBOX_SIZE,
            max_room_members=relay.RELAY_MAX_ROOM_MEMBERS,
        )
        writer = None
        if user_repository is not None and relay.RELAY_PERSIST_LOCATIONS:
            writer = LocationWriter(
                user_repository.update_location,
                buffer_size=relay.RELAY_LOCATION_BUFFER_SIZE,
            )
        presence = DriverPresenceCoordinator(
            status_loader=user_repository.get_driver_statuses if user_repository else None,
            window_seconds=relay.RELAY_PRESENCE_WINDOW_SECONDS,
            refresh_seconds=relay.RELAY_PRESENCE_REFRESH_SECONDS,
        )
        return cls(registry, writer, presence)

    @property
    def uptime_seconds(self) -> float:
        return round(time.monotonic() - self._started_at, 1)

    async def start(self) -> None:
        self._started_at = time.monotonic()
        if self.location_writer is not None:
            await self.location_writer.start()
        await self.presence.start()
        await log_info(
            "Ретранслятор запущен",
            extra={"persist_locations": self.location_writer is not None},
        )

    async def stop(self) -> None:
        await self.registry.close_all()
        if self.location_writer is not None:
            await self.location_writer.stop()
        await self.presence.stop()
        await log_info("Ретранслятор остановлен")

    async def open_connection(self, websocket: WebSocket, room: str | None = None) -> ConnectionHandle:
        """Регистрирует соединение и, если указана комната, сразу входит в неё."""
        handle = await self.registry.connect(websocket)
        if room:
            await self._join(handle, room)
        return handle

    async def close_connection(self, handle: ConnectionHandle) -> bool:
        self.locations.forget(handle.connection_id)
        return await self.registry.disconnect(handle)

    async def handle_message(self, handle: ConnectionHandle, raw: str | bytes) -> None:
        """
        Обрабатывает кадр клиента.

        Некорректные кадры отбрасываются с предупреждением, ответа клиенту нет.
        """
        self._frames_received += 1
        try:
            event, payload = parse_client_event(raw)
        except ProtocolError as e:
            self._frames_rejected += 1
            await log_warning(f"Кадр от {handle.connection_id} отброшен: {e}")
            return

        match event:
            case ClientEvent.JOIN_ROOM:
                await self._join(handle, payload.room_id)
            case ClientEvent.LEAVE_ROOM:
                await self.registry.leave(handle, payload.room_id)
            case ClientEvent.LOCATION_UPDATE:
                await self.locations.publish(payload, source=handle.connection_id)
            case ClientEvent.SEND_MESSAGE:
                await self.chat.relay(payload)
            case ClientEvent.PING:
                await self.registry.send_personal(handle, server_event(ServerEvent.PONG, {}))

    async def _join(self, handle: ConnectionHandle, room_id: str) -> bool:
        try:
            return await self.registry.join(handle, room_id)
        except RoomFullError as e:
            await log_warning(f"Соединение {handle.connection_id} не вошло в комнату: {e}")
            return False

    def get_stats(self) -> dict[str, Any]:
        stats: dict[str, Any] = {
            **self.registry.get_stats(),
            "uptime_seconds": self.uptime_seconds,
            "frames_received": self._frames_received,
            "frames_rejected": self._frames_rejected,
            "locations_published": self.locations.published,
            "locations_stale": self.locations.stale,
            "chat_messages_relayed": self.chat.relayed,
            "presence": self.presence.get_stats(),
            "active_drivers": self.presence.active_drivers(),
        }
        if self.location_writer is not None:
            stats["location_writer"] = self.location_writer.get_stats()
        return stats
