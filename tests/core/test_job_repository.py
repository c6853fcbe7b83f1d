# tests/core/test_job_repository.py
"""
Тесты для репозитория заказов.
"""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock

import pytest

from src.core.jobs.repository import JobRepository
from src.shared.models.common import LocationPoint
from src.shared.models.enums import JobStatus


@pytest.fixture
def job_repository(mock_db: AsyncMock) -> JobRepository:
    return JobRepository(db=mock_db)


class TestJobRepository:

    @pytest.mark.asyncio
    async def test_create_with_coordinates(
        self, job_repository: JobRepository, mock_db: AsyncMock, sample_job_record: dict[str, Any]
    ) -> None:
        mock_db.fetchrow.return_value = sample_job_record

        job = await job_repository.create(
            order_id="ORD-1001",
            pickup_address="Vashi, Navi Mumbai",
            dropoff_address="Andheri East, Mumbai",
            pickup=LocationPoint(lat=19.0771, lng=72.9986),
        )

        args = mock_db.fetchrow.call_args.args
        assert "INSERT INTO jobs" in args[0]
        assert args[5:9] == (19.0771, 72.9986, None, None)
        assert args[10] == "pending"
        assert job.order_id == "ORD-1001"
        assert job.pickup_location is not None
        assert job.assigned_driver is None

    @pytest.mark.asyncio
    async def test_get_by_id_with_driver(
        self, job_repository: JobRepository, mock_db: AsyncMock, sample_job_record: dict[str, Any]
    ) -> None:
        mock_db.fetchrow.return_value = {
            **sample_job_record,
            "status": "assigned",
            "assigned_driver_id": "driver-1",
            "driver_name": "Ravi Kumar",
            "driver_vehicle_type": "Truck",
        }

        job = await job_repository.get_by_id("job-1")

        assert job is not None
        assert job.status == JobStatus.ASSIGNED
        assert job.assigned_driver is not None
        assert job.assigned_driver.name == "Ravi Kumar"

    @pytest.mark.asyncio
    async def test_list_jobs_status_filter(
        self, job_repository: JobRepository, mock_db: AsyncMock, sample_job_record: dict[str, Any]
    ) -> None:
        mock_db.fetch.return_value = [sample_job_record]

        jobs = await job_repository.list_jobs(status=JobStatus.PENDING, limit=10)

        assert len(jobs) == 1
        assert mock_db.fetch.call_args.args[1:] == ("pending", 10, 0)

    @pytest.mark.asyncio
    async def test_list_jobs_without_filter(self, job_repository: JobRepository, mock_db: AsyncMock) -> None:
        await job_repository.list_jobs()

        assert mock_db.fetch.call_args.args[1] is None

    @pytest.mark.asyncio
    async def test_update_missing_job(self, job_repository: JobRepository, mock_db: AsyncMock) -> None:
        result = await job_repository.update("missing", status=JobStatus.DELIVERED)

        assert result is None
        assert mock_db.fetchrow.call_args.args[1:] == ("missing", "delivered", None, None)
