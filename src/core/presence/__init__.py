# src/core/presence/__init__.py
"""
Статусы водителя.
"""

from src.core.presence.state_machine import DriverStatusMachine, InvalidStatusTransitionError

__all__ = [
    "DriverStatusMachine",
    "InvalidStatusTransitionError",
]
