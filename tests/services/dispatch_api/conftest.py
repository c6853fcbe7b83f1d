# tests/services/dispatch_api/conftest.py
"""
In-memory репозитории и фикстуры диспетчерского API.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

import pytest

from src.common.constants import DEFAULT_JOB_PRIORITY, DEFAULT_LICENSE_PLATE
from src.core.presence.state_machine import DriverStatusMachine
from src.services.dispatch_api.security import PasswordService, TokenService
from src.shared.models.common import LocationPoint
from src.shared.models.enums import DriverStatus, JobStatus, UserRole, VehicleType
from src.shared.models.job_dto import AssignedDriverDTO, JobDTO
from src.shared.models.user_dto import UserDTO

TEST_SECRET = "dispatch-api-test-secret-32-bytes-long"


class InMemoryUserRepository:
    def __init__(self) -> None:
        self.users: dict[str, UserDTO] = {}

    async def create(
        self,
        name: str,
        email: str,
        password_hash: str,
        role: UserRole = UserRole.DRIVER,
        vehicle_type: VehicleType = VehicleType.TRUCK,
        license_plate: str = DEFAULT_LICENSE_PLATE,
    ) -> UserDTO:
        now = datetime.now(timezone.utc)
        user = UserDTO(
            id=uuid.uuid4().hex,
            name=name,
            email=email.lower(),
            password_hash=password_hash,
            role=role,
            status=DriverStatus.OFFLINE,
            vehicle_type=vehicle_type,
            license_plate=license_plate,
            created_at=now,
            updated_at=now,
        )
        self.users[user.id] = user
        return user

    async def get_by_id(self, user_id: str) -> Optional[UserDTO]:
        return self.users.get(user_id)

    async def get_by_email(self, email: str) -> Optional[UserDTO]:
        return next((u for u in self.users.values() if u.email == email.lower()), None)

    async def list_drivers(self) -> list[UserDTO]:
        return sorted(
            (u for u in self.users.values() if u.role == UserRole.DRIVER),
            key=lambda u: u.name,
        )

    async def update_status(self, user_id: str, status: DriverStatus) -> Optional[UserDTO]:
        user = self.users.get(user_id)
        if user is None:
            return None
        user = user.model_copy(update={"status": DriverStatus(status)})
        self.users[user_id] = user
        return user

    async def transition_status(
        self, user_id: str, status: DriverStatus
    ) -> tuple[Optional[DriverStatus], Optional[UserDTO]]:
        user = self.users.get(user_id)
        if user is None or user.role != UserRole.DRIVER:
            return None, None
        target = DriverStatusMachine.transition(user.status, status)
        if target == user.status:
            return user.status, user
        return user.status, await self.update_status(user_id, target)

    async def update_location(self, user_id: str, lat: float, lng: float) -> bool:
        user = self.users.get(user_id)
        if user is None:
            return False
        self.users[user_id] = user.model_copy(update={"last_location": LocationPoint(lat=lat, lng=lng)})
        return True

    async def get_driver_statuses(self) -> dict[str, DriverStatus]:
        return {u.id: u.status for u in self.users.values() if u.role == UserRole.DRIVER}


class InMemoryJobRepository:
    def __init__(self, users: InMemoryUserRepository) -> None:
        self.users = users
        self.jobs: dict[str, JobDTO] = {}

    def _with_driver(self, job: JobDTO) -> JobDTO:
        driver = self.users.users.get(job.assigned_driver_id) if job.assigned_driver_id else None
        assigned = None
        if driver is not None:
            assigned = AssignedDriverDTO(id=driver.id, name=driver.name, vehicle_type=driver.vehicle_type)
        return job.model_copy(update={"assigned_driver": assigned})

    async def create(
        self,
        order_id: str,
        pickup_address: str,
        dropoff_address: str,
        priority: str = DEFAULT_JOB_PRIORITY,
        pickup: Optional[LocationPoint] = None,
        dropoff: Optional[LocationPoint] = None,
    ) -> JobDTO:
        job = JobDTO(
            id=uuid.uuid4().hex,
            order_id=order_id,
            pickup_address=pickup_address,
            dropoff_address=dropoff_address,
            pickup_location=pickup,
            dropoff_location=dropoff,
            priority=priority,
            created_at=datetime.now(timezone.utc),
        )
        self.jobs[job.id] = job
        return job

    async def get_by_id(self, job_id: str) -> Optional[JobDTO]:
        job = self.jobs.get(job_id)
        return self._with_driver(job) if job else None

    async def get_by_order_id(self, order_id: str) -> Optional[JobDTO]:
        return next((j for j in self.jobs.values() if j.order_id == order_id), None)

    async def list_jobs(self, status: Optional[JobStatus] = None, limit: int = 100, offset: int = 0) -> list[JobDTO]:
        jobs = [self._with_driver(j) for j in self.jobs.values() if status is None or j.status == status]
        return jobs[offset:offset + limit]

    async def update(
        self,
        job_id: str,
        status: Optional[JobStatus] = None,
        assigned_driver_id: Optional[str] = None,
        priority: Optional[str] = None,
    ) -> Optional[JobDTO]:
        job = self.jobs.get(job_id)
        if job is None:
            return None
        changes = {
            key: value
            for key, value in (
                ("status", status),
                ("assigned_driver_id", assigned_driver_id),
                ("priority", priority),
            )
            if value is not None
        }
        job = job.model_copy(update=changes)
        self.jobs[job_id] = job
        return self._with_driver(job)


@pytest.fixture
def users() -> InMemoryUserRepository:
    return InMemoryUserRepository()


@pytest.fixture
def jobs(users: InMemoryUserRepository) -> InMemoryJobRepository:
    return InMemoryJobRepository(users)


@pytest.fixture
def passwords() -> PasswordService:
    # Минимальная стоимость Argon2 для скорости тестов
    return PasswordService(time_cost=1, memory_cost=1024, parallelism=1)


@pytest.fixture
def tokens() -> TokenService:
    return TokenService(secret=TEST_SECRET)
