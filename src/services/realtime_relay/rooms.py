# src/services/realtime_relay/rooms.py
"""
Членство соединений в комнатах чата.

Комната водителя имеет вид chat-<driverId>. Структура не синхронизирована
сама по себе: вызывающий код (ConnectionRegistry) держит общий lock.
"""

from __future__ import annotations

from src.common.constants import CHAT_ROOM_PREFIX


class RoomFullError(Exception):
    """В комнате уже максимальное число участников."""

    def __init__(self, room_id: str, limit: int) -> None:
        self.room_id = room_id
        self.limit = limit
        super().__init__(f"Комната {room_id} заполнена ({limit})")


def room_for_driver(driver_id: str | int) -> str:
    """Комната чата водителя."""
    driver = str(driver_id).strip()
    if not driver:
        raise ValueError("driver_id не может быть пустым")
    return f"{CHAT_ROOM_PREFIX}{driver}"


class RoomMembership:
    """
    Двусторонний индекс: комната -> соединения и соединение -> комнаты.

    Пустые комнаты удаляются сразу, поэтому room_count отражает
    только комнаты с участниками.
    """

    def __init__(self, max_members: int = 0) -> None:
        """
        Args:
            max_members: Лимит участников на комнату, 0 без ограничения
        """
        self._max_members = max_members
        self._members: dict[str, set[str]] = {}
        self._rooms: dict[str, set[str]] = {}

    @property
    def room_count(self) -> int:
        return len(self._members)

    def join(self, connection_id: str, room_id: str) -> bool:
        """
        Добавляет соединение в комнату.

        Returns:
            False, если соединение уже в комнате

        Raises:
            ValueError: пустой room_id
            RoomFullError: превышен лимит участников
        """
        if not room_id:
            raise ValueError("room_id не может быть пустым")

        members = self._members.get(room_id)
        if members is not None and connection_id in members:
            return False
        if self._max_members and members is not None and len(members) >= self._max_members:
            raise RoomFullError(room_id, self._max_members)

        self._members.setdefault(room_id, set()).add(connection_id)
        self._rooms.setdefault(connection_id, set()).add(room_id)
        return True

    def leave(self, connection_id: str, room_id: str) -> bool:
        """Убирает соединение из комнаты. False, если его там не было."""
        members = self._members.get(room_id)
        if members is None or connection_id not in members:
            return False

        members.discard(connection_id)
        if not members:
            del self._members[room_id]

        rooms = self._rooms.get(connection_id)
        if rooms is not None:
            rooms.discard(room_id)
            if not rooms:
                del self._rooms[connection_id]
        return True

    def leave_all(self, connection_id: str) -> set[str]:
        """Убирает соединение из всех комнат и возвращает их."""
        rooms = self._rooms.pop(connection_id, set())
        for room_id in rooms:
            members = self._members.get(room_id)
            if members is None:
                continue
            members.discard(connection_id)
            if not members:
                del self._members[room_id]
        return rooms

    def members_of(self, room_id: str) -> frozenset[str]:
        return frozenset(self._members.get(room_id, ()))

    def rooms_of(self, connection_id: str) -> frozenset[str]:
        return frozenset(self._rooms.get(connection_id, ()))
