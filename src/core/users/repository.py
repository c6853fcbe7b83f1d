# src/core/users/repository.py
"""
Репозиторий пользователей (водители, диспетчеры, администраторы).
"""

from __future__ import annotations

import uuid
from typing import Optional

from src.common.constants import DEFAULT_LICENSE_PLATE, TypeMsg
from src.common.logger import log_info
from src.core.presence.state_machine import DriverStatusMachine
from src.infra.database import DatabaseManager
from src.shared.models.enums import DriverStatus, UserRole, VehicleType
from src.shared.models.user_dto import UserDTO

USER_COLUMNS = """
    id, name, email, password_hash, role, status, vehicle_type, license_plate,
    location_lat, location_lng, location_updated_at, created_at, updated_at
"""


class UserRepository:
    """Доступ к таблице users."""

    def __init__(self, db: DatabaseManager) -> None:
        self._db = db

    async def create(
        self,
        name: str,
        email: str,
        password_hash: str,
        role: UserRole = UserRole.DRIVER,
        vehicle_type: VehicleType = VehicleType.TRUCK,
        license_plate: str = DEFAULT_LICENSE_PLATE,
    ) -> UserDTO:
        """
        Создаёт пользователя. Новый водитель всегда offline.

        Raises:
            asyncpg.UniqueViolationError: email уже занят
        """
        user_id = uuid.uuid4().hex
        row = await self._db.fetchrow(
            f"""
            INSERT INTO users (id, name, email, password_hash, role, status,
                               vehicle_type, license_plate)
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
            RETURNING {USER_COLUMNS}
            """,
            user_id,
            name,
            email.lower(),
            password_hash,
            UserRole(role).value,
            DriverStatus.OFFLINE.value,
            VehicleType(vehicle_type).value,
            license_plate,
        )
        await log_info(f"Пользователь {user_id} ({role}) создан", type_msg=TypeMsg.DEBUG)
        return UserDTO.from_record(row)

    async def get_by_id(self, user_id: str) -> Optional[UserDTO]:
        row = await self._db.fetchrow(
            f"SELECT {USER_COLUMNS} FROM users WHERE id = $1",
            user_id,
        )
        return UserDTO.from_record(row) if row else None

    async def get_by_email(self, email: str) -> Optional[UserDTO]:
        row = await self._db.fetchrow(
            f"SELECT {USER_COLUMNS} FROM users WHERE email = $1",
            email.lower(),
        )
        return UserDTO.from_record(row) if row else None

    async def list_drivers(self) -> list[UserDTO]:
        """Все водители, по имени."""
        rows = await self._db.fetch(
            f"SELECT {USER_COLUMNS} FROM users WHERE role = $1 ORDER BY name",
            UserRole.DRIVER.value,
        )
        return [UserDTO.from_record(row) for row in rows]

    async def transition_status(
        self,
        user_id: str,
        status: DriverStatus,
    ) -> tuple[Optional[DriverStatus], Optional[UserDTO]]:
        """
        Меняет статус водителя под блокировкой строки.

        Переход проверяется DriverStatusMachine внутри той же транзакции,
        поэтому параллельные смены статуса не обходят правила.

        Returns:
            (прежний статус, пользователь); (None, None), если водителя нет

        Raises:
            InvalidStatusTransitionError: переход запрещён
        """
        async with self._db.transaction() as conn:
            row = await conn.fetchrow(
                f"SELECT {USER_COLUMNS} FROM users WHERE id = $1 AND role = $2 FOR UPDATE",
                user_id,
                UserRole.DRIVER.value,
            )
            if row is None:
                return None, None

            current = DriverStatus(row["status"])
            target = DriverStatusMachine.transition(current, status)
            if target == current:
                return current, UserDTO.from_record(row)

            updated = await conn.fetchrow(
                f"""
                UPDATE users
                SET status = $2, updated_at = NOW()
                WHERE id = $1
                RETURNING {USER_COLUMNS}
                """,
                user_id,
                target.value,
            )
        return current, UserDTO.from_record(updated)

    async def update_location(self, user_id: str, lat: float, lng: float) -> bool:
        """
        Перезаписывает последнюю известную позицию.

        Returns:
            True, если строка обновлена (пользователь существует)
        """
        result = await self._db.execute(
            """
            UPDATE users
            SET location_lat = $2, location_lng = $3, location_updated_at = NOW()
            WHERE id = $1
            """,
            user_id,
            lat,
            lng,
        )
        # Статус asyncpg: "UPDATE <count>"
        return result.split()[-1] != "0"

    async def get_driver_statuses(self) -> dict[str, DriverStatus]:
        """Статусы всех водителей: id -> статус."""
        rows = await self._db.fetch(
            "SELECT id, status FROM users WHERE role = $1",
            UserRole.DRIVER.value,
        )
        return {row["id"]: DriverStatus(row["status"]) for row in rows}
