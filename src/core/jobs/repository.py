# src/core/jobs/repository.py
"""
Репозиторий заказов на доставку.
"""

from __future__ import annotations

import uuid
from typing import Optional

from src.common.constants import DEFAULT_JOB_PRIORITY, TypeMsg
from src.common.logger import log_info
from src.infra.database import DatabaseManager
from src.shared.models.common import LocationPoint
from src.shared.models.enums import JobStatus
from src.shared.models.job_dto import JobDTO

# Заказ вместе с именем и транспортом назначенного водителя
JOB_SELECT = """
    SELECT j.id, j.order_id, j.pickup_address, j.dropoff_address,
           j.pickup_lat, j.pickup_lng, j.dropoff_lat, j.dropoff_lng,
           j.priority, j.status, j.assigned_driver_id, j.created_at, j.updated_at,
           u.name AS driver_name, u.vehicle_type AS driver_vehicle_type
    FROM {source} j
    LEFT JOIN users u ON u.id = j.assigned_driver_id
"""


class JobRepository:
    """Доступ к таблице jobs."""

    def __init__(self, db: DatabaseManager) -> None:
        self._db = db

    async def create(
        self,
        order_id: str,
        pickup_address: str,
        dropoff_address: str,
        priority: str = DEFAULT_JOB_PRIORITY,
        pickup: Optional[LocationPoint] = None,
        dropoff: Optional[LocationPoint] = None,
    ) -> JobDTO:
        """
        Создаёт заказ в статусе pending.

        Raises:
            asyncpg.UniqueViolationError: order_id уже существует
        """
        job_id = uuid.uuid4().hex
        row = await self._db.fetchrow(
            """
            WITH inserted AS (
                INSERT INTO jobs (id, order_id, pickup_address, dropoff_address,
                                  pickup_lat, pickup_lng, dropoff_lat, dropoff_lng,
                                  priority, status)
                VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10)
                RETURNING *
            )
            """ + JOB_SELECT.format(source="inserted"),
            job_id,
            order_id,
            pickup_address,
            dropoff_address,
            pickup.lat if pickup else None,
            pickup.lng if pickup else None,
            dropoff.lat if dropoff else None,
            dropoff.lng if dropoff else None,
            priority,
            JobStatus.PENDING.value,
        )
        await log_info(f"Заказ {order_id} создан ({job_id})", type_msg=TypeMsg.DEBUG)
        return JobDTO.from_record(row)

    async def get_by_id(self, job_id: str) -> Optional[JobDTO]:
        row = await self._db.fetchrow(
            JOB_SELECT.format(source="jobs") + " WHERE j.id = $1",
            job_id,
        )
        return JobDTO.from_record(row) if row else None

    async def get_by_order_id(self, order_id: str) -> Optional[JobDTO]:
        row = await self._db.fetchrow(
            JOB_SELECT.format(source="jobs") + " WHERE j.order_id = $1",
            order_id,
        )
        return JobDTO.from_record(row) if row else None

    async def list_jobs(
        self,
        status: Optional[JobStatus] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[JobDTO]:
        """Заказы от новых к старым, опционально по статусу."""
        rows = await self._db.fetch(
            JOB_SELECT.format(source="jobs")
            + """
            WHERE ($1::text IS NULL OR j.status = $1)
            ORDER BY j.created_at DESC
            LIMIT $2 OFFSET $3
            """,
            JobStatus(status).value if status else None,
            limit,
            offset,
        )
        return [JobDTO.from_record(row) for row in rows]

    async def update(
        self,
        job_id: str,
        status: Optional[JobStatus] = None,
        assigned_driver_id: Optional[str] = None,
        priority: Optional[str] = None,
    ) -> Optional[JobDTO]:
        """
        Частичное обновление заказа. None означает "не менять".

        Returns:
            Обновлённый заказ или None, если его нет
        """
        row = await self._db.fetchrow(
            """
            WITH updated AS (
                UPDATE jobs
                SET status = COALESCE($2, status),
                    assigned_driver_id = COALESCE($3, assigned_driver_id),
                    priority = COALESCE($4, priority),
                    updated_at = NOW()
                WHERE id = $1
                RETURNING *
            )
            """ + JOB_SELECT.format(source="updated"),
            job_id,
            JobStatus(status).value if status else None,
            assigned_driver_id,
            priority,
        )
        return JobDTO.from_record(row) if row else None
