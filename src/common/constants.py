# src/common/constants.py
"""
Общие константы и перечисления.
"""

from enum import Enum


class TypeMsg(str, Enum):
    """Типы сообщений для логирования."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


# Префикс комнаты чата водителя: chat-<driverId>
CHAT_ROOM_PREFIX = "chat-"

# Значения по умолчанию для нового водителя
DEFAULT_VEHICLE_TYPE = "Truck"
DEFAULT_LICENSE_PLATE = "MH-04-XX-0000"
DEFAULT_JOB_PRIORITY = "Normal"
