# src/services/realtime_relay/protocol.py
"""
Протокол WebSocket ретранслятора.

Каждый кадр - JSON текст вида {"event": <имя>, "data": <payload>}.

Клиент -> сервер:
- join-room        {"roomId": "chat-42"} или просто "chat-42"
- leave-room       то же
- location-update  {"driverId", "lat", "lng", "seq"?}
- send-message     {"room", "author", "senderRole", "text", "time", ...}
- ping

Сервер -> клиент:
- location-broadcast  {"driverId", "lat", "lng", "seq"?}
- message-received    payload send-message как есть
- pong                {}
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from src.shared.models.enums import SenderRole


class ClientEvent(str, Enum):
    """События от клиента."""
    JOIN_ROOM = "join-room"
    LEAVE_ROOM = "leave-room"
    LOCATION_UPDATE = "location-update"
    SEND_MESSAGE = "send-message"
    PING = "ping"


class ServerEvent(str, Enum):
    """События от сервера."""
    LOCATION_BROADCAST = "location-broadcast"
    MESSAGE_RECEIVED = "message-received"
    PONG = "pong"


class ProtocolError(ValueError):
    """Кадр не соответствует протоколу (JSON, имя события или payload)."""


class Envelope(BaseModel):
    event: str
    data: Any = None


class RoomRequest(BaseModel):
    room_id: str = Field(min_length=1, alias="roomId")

    class Config:
        populate_by_name = True


class LocationSample(BaseModel):
    """Координаты водителя."""

    driver_id: str = Field(min_length=1, alias="driverId")
    lat: float = Field(ge=-90, le=90, allow_inf_nan=False)
    lng: float = Field(ge=-180, le=180, allow_inf_nan=False)
    seq: int | None = Field(default=None, ge=0)

    class Config:
        populate_by_name = True

    @field_validator("driver_id")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("driverId не может быть пустым")
        return v

    def to_wire(self) -> dict[str, Any]:
        data: dict[str, Any] = {"driverId": self.driver_id, "lat": self.lat, "lng": self.lng}
        if self.seq is not None:
            data["seq"] = self.seq
        return data


class ChatMessage(BaseModel):
    """
    Сообщение чата водитель-диспетчер.

    Дополнительные поля клиента (например, ключ идемпотентности)
    сохраняются и пересылаются без изменений.
    """

    room: str = Field(min_length=1)
    author: str = Field(min_length=1)
    sender_role: SenderRole = Field(alias="senderRole")
    text: str = Field(min_length=1)
    time: str | int | float

    class Config:
        populate_by_name = True
        extra = "allow"

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


def parse_client_event(raw: str | bytes) -> tuple[ClientEvent, BaseModel | None]:
    """
    Разбирает кадр клиента.

    Returns:
        (событие, провалидированный payload); для ping payload = None

    Raises:
        ProtocolError: некорректный JSON, неизвестное событие или payload
    """
    try:
        decoded = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ProtocolError(f"некорректный JSON: {e}") from e

    try:
        envelope = Envelope.model_validate(decoded)
    except ValidationError as e:
        raise ProtocolError(f"некорректный конверт: {e.errors()}") from e

    try:
        event = ClientEvent(envelope.event)
    except ValueError as e:
        raise ProtocolError(f"неизвестное событие: {envelope.event!r}") from e

    data = envelope.data
    try:
        match event:
            case ClientEvent.JOIN_ROOM | ClientEvent.LEAVE_ROOM:
                if isinstance(data, str):
                    data = {"roomId": data}
                return event, RoomRequest.model_validate(data)
            case ClientEvent.LOCATION_UPDATE:
                return event, LocationSample.model_validate(data)
            case ClientEvent.SEND_MESSAGE:
                return event, ChatMessage.model_validate(data)
            case _:
                return event, None
    except ValidationError as e:
        raise ProtocolError(f"{event.value}: {e.errors(include_url=False)}") from e


def server_event(event: ServerEvent, data: dict[str, Any]) -> dict[str, Any]:
    """Конверт исходящего события."""
    return {"event": event.value, "data": data}
