from src.shared.models.enums import DriverStatus


class InvalidStatusTransitionError(ValueError):
    """Недопустимый переход статуса водителя."""

    def __init__(self, current: DriverStatus | str, target: DriverStatus | str) -> None:
        self.current = str(current)
        self.target = str(target)
        super().__init__(f"Переход статуса {self.current} -> {self.target} запрещён")


class DriverStatusMachine:
    """
    Статусы водителя.

    offline -> available      выход на линию
    available -> busy         назначен заказ
    busy -> available         заказ доставлен
    available|busy -> offline уход с линии
    """

    ALLOWED_TRANSITIONS = {
        DriverStatus.OFFLINE: [DriverStatus.AVAILABLE],
        DriverStatus.AVAILABLE: [DriverStatus.BUSY, DriverStatus.OFFLINE],
        DriverStatus.BUSY: [DriverStatus.AVAILABLE, DriverStatus.OFFLINE],
    }

    # Статусы, в которых водитель шлёт координаты
    LOCATION_STATUSES = frozenset({DriverStatus.AVAILABLE, DriverStatus.BUSY})

    @staticmethod
    def can_transition(current_status: str, new_status: str) -> bool:
        try:
            curr = DriverStatus(current_status)
            new = DriverStatus(new_status)
        except ValueError:
            return False
        if curr == new:
            return True
        return new in DriverStatusMachine.ALLOWED_TRANSITIONS.get(curr, [])

    @staticmethod
    def transition(current_status: str, new_status: str) -> DriverStatus:
        """
        Проверяет переход и возвращает новый статус.

        Raises:
            InvalidStatusTransitionError: переход запрещён или статус неизвестен
        """
        if not DriverStatusMachine.can_transition(current_status, new_status):
            raise InvalidStatusTransitionError(current_status, new_status)
        return DriverStatus(new_status)

    @staticmethod
    def emits_location(status: str) -> bool:
        try:
            return DriverStatus(status) in DriverStatusMachine.LOCATION_STATUSES
        except ValueError:
            return False
