# tests/core/test_driver_status_machine.py
"""
Тесты для машины состояний водителя.
"""

import pytest

from src.core.presence import DriverStatusMachine, InvalidStatusTransitionError
from src.shared.models.enums import DriverStatus


class TestDriverStatusMachine:

    @pytest.mark.parametrize(
        "current, target",
        [
            (DriverStatus.OFFLINE, DriverStatus.AVAILABLE),
            (DriverStatus.AVAILABLE, DriverStatus.BUSY),
            (DriverStatus.AVAILABLE, DriverStatus.OFFLINE),
            (DriverStatus.BUSY, DriverStatus.AVAILABLE),
            (DriverStatus.BUSY, DriverStatus.OFFLINE),
        ],
    )
    def test_allowed_transitions(self, current: DriverStatus, target: DriverStatus) -> None:
        assert DriverStatusMachine.can_transition(current, target) is True
        assert DriverStatusMachine.transition(current, target) == target

    def test_offline_cannot_become_busy(self) -> None:
        assert DriverStatusMachine.can_transition("offline", "busy") is False

        with pytest.raises(InvalidStatusTransitionError) as exc_info:
            DriverStatusMachine.transition("offline", "busy")

        assert exc_info.value.current == "offline"
        assert exc_info.value.target == "busy"

    def test_same_status_is_noop(self) -> None:
        assert DriverStatusMachine.can_transition("busy", "busy") is True

    def test_unknown_status_rejected(self) -> None:
        assert DriverStatusMachine.can_transition("available", "on_break") is False

    def test_location_statuses(self) -> None:
        assert DriverStatusMachine.emits_location("available") is True
        assert DriverStatusMachine.emits_location(DriverStatus.BUSY) is True
        assert DriverStatusMachine.emits_location("offline") is False
        assert DriverStatusMachine.emits_location("unknown") is False
