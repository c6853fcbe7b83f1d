# src/services/realtime_relay/channels.py
"""
Каналы ретранслятора: координаты (всем) и чат (участникам комнаты).
"""

from __future__ import annotations

from src.common.logger import log_debug
from src.services.realtime_relay.connection_manager import ConnectionRegistry
from src.services.realtime_relay.location_writer import LocationWriter
from src.services.realtime_relay.presence import DriverPresenceCoordinator
from src.services.realtime_relay.protocol import (
    ChatMessage,
    LocationSample,
    ServerEvent,
    server_event,
)


class LocationBroadcastChannel:
    """
    Рассылает координаты водителя всем соединениям и ставит их на запись.

    Если образец несёт seq, образцы с seq не больше уже отправленного
    этим соединением для этого водителя отбрасываются. Счётчик живёт,
    пока живо соединение: после переподключения seq начинается заново.
    Без seq действует "последний побеждает".
    """

    def __init__(
        self,
        registry: ConnectionRegistry,
        writer: LocationWriter | None = None,
        presence: DriverPresenceCoordinator | None = None,
    ) -> None:
        self._registry = registry
        self._writer = writer
        self._presence = presence
        self._last_seq: dict[tuple[str | None, str], int] = {}
        self.published = 0
        self.stale = 0

    async def publish(self, sample: LocationSample, source: str | None = None) -> int | None:
        """
        Args:
            sample: Координаты водителя
            source: Идентификатор соединения-отправителя

        Returns:
            Число получателей или None, если образец устарел
        """
        if sample.seq is not None:
            key = (source, sample.driver_id)
            last = self._last_seq.get(key)
            if last is not None and sample.seq <= last:
                self.stale += 1
                await log_debug(f"Устаревшие координаты {sample.driver_id}: seq {sample.seq} <= {last}")
                return None
            self._last_seq[key] = sample.seq

        recipients = await self._registry.broadcast_all(
            server_event(ServerEvent.LOCATION_BROADCAST, sample.to_wire())
        )
        self.published += 1

        if self._writer is not None:
            self._writer.submit(sample)
        if self._presence is not None:
            await self._presence.record_sample(sample.driver_id)
        return recipients

    def forget(self, source: str) -> int:
        """Сбрасывает счётчики seq закрытого соединения."""
        keys = [key for key in self._last_seq if key[0] == source]
        for key in keys:
            del self._last_seq[key]
        return len(keys)

class ChatRelayChannel:
    """Пересылает сообщение чата всем участникам комнаты, включая отправителя."""

    def __init__(self, registry: ConnectionRegistry) -> None:
        self._registry = registry
        self.relayed = 0

    async def relay(self, message: ChatMessage) -> int:
        recipients = await self._registry.send_to_room(
            message.room,
            server_event(ServerEvent.MESSAGE_RECEIVED, message.to_wire()),
        )
        if recipients == 0:
            await log_debug(f"Комната {message.room} пуста, сообщение отброшено")
        else:
            self.relayed += 1
        return recipients
