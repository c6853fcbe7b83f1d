from enum import Enum


class UserRole(str, Enum):
    """Роли пользователей."""
    SUPER_ADMIN = "super_admin"
    DISPATCHER = "dispatcher"
    DRIVER = "driver"

    def __str__(self) -> str:
        return self.value


class DriverStatus(str, Enum):
    """Статусы водителя."""
    AVAILABLE = "available"
    BUSY = "busy"
    OFFLINE = "offline"

    def __str__(self) -> str:
        return self.value


class JobStatus(str, Enum):
    """Статусы заказа на доставку."""
    PENDING = "pending"
    ASSIGNED = "assigned"
    PICKED_UP = "picked_up"
    DELIVERED = "delivered"

    def __str__(self) -> str:
        return self.value


class VehicleType(str, Enum):
    """Типы транспорта."""
    TRUCK = "Truck"
    VAN = "Van"
    BIKE = "Bike"
    SCOOTER = "Scooter"

    def __str__(self) -> str:
        return self.value


class SenderRole(str, Enum):
    """Сторона чата водитель-диспетчер."""
    DRIVER = "driver"
    ADMIN = "admin"

    def __str__(self) -> str:
        return self.value
