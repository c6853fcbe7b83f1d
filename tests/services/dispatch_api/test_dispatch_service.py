# tests/services/dispatch_api/test_dispatch_service.py
"""
Тесты бизнес-логики диспетчерского API.
"""

from __future__ import annotations

from unittest.mock import AsyncMock

import asyncpg
import pytest

from src.core.geo.service import Location, RouteInfo
from src.core.presence import InvalidStatusTransitionError
from src.services.dispatch_api.service import (
    AuthService,
    DriverService,
    InvalidCredentialsError,
    JobAlreadyExistsError,
    JobService,
    NotFoundError,
    RouteUnavailableError,
    UserAlreadyExistsError,
)
from src.shared.models.enums import DriverStatus, JobStatus, UserRole
from src.shared.models.job_dto import CreateJobRequest, UpdateJobRequest
from src.shared.models.user_dto import LoginRequest, RegisterRequest


def fake_geo(route: RouteInfo | None = None) -> AsyncMock:
    geo = AsyncMock()
    geo.geocode.side_effect = lambda address: Location(latitude=19.0, longitude=73.0, address=address)
    geo.calculate_route.return_value = route
    return geo


@pytest.fixture
def auth(users, passwords, tokens) -> AuthService:
    return AuthService(users, passwords, tokens)


async def make_driver(users, passwords, name: str = "Ravi", status: DriverStatus = DriverStatus.AVAILABLE):
    user = await users.create(name=name, email=f"{name.lower()}@example.com", password_hash=passwords.hash("pw"))
    return await users.update_status(user.id, status)


class TestAuthService:

    @pytest.mark.asyncio
    async def test_register_then_login(self, auth: AuthService) -> None:
        registered = await auth.register(RegisterRequest(
            name="Asha", email="Asha@Example.com", password="secret1", role=UserRole.DISPATCHER,
        ))

        assert registered.user.role == UserRole.DISPATCHER
        assert registered.user.email == "asha@example.com"

        logged_in = await auth.login(LoginRequest(email="asha@example.com", password="secret1"))
        user = await auth.authenticate(logged_in.access_token)

        assert user.id == registered.user.id

    @pytest.mark.asyncio
    async def test_new_driver_is_offline(self, auth: AuthService) -> None:
        response = await auth.register(RegisterRequest(name="Ravi", email="r@example.com", password="secret1"))

        assert response.user.status == DriverStatus.OFFLINE

    @pytest.mark.asyncio
    async def test_duplicate_email(self, auth: AuthService) -> None:
        request = RegisterRequest(name="Ravi", email="r@example.com", password="secret1")
        await auth.register(request)

        with pytest.raises(UserAlreadyExistsError):
            await auth.register(request)

    @pytest.mark.asyncio
    async def test_concurrent_duplicate_mapped(self, auth: AuthService, users) -> None:
        users.create = AsyncMock(side_effect=asyncpg.UniqueViolationError("duplicate key"))

        with pytest.raises(UserAlreadyExistsError):
            await auth.register(RegisterRequest(name="Ravi", email="r@example.com", password="secret1"))

    @pytest.mark.asyncio
    async def test_wrong_password(self, auth: AuthService) -> None:
        await auth.register(RegisterRequest(name="Ravi", email="r@example.com", password="secret1"))

        with pytest.raises(InvalidCredentialsError):
            await auth.login(LoginRequest(email="r@example.com", password="nope"))
        with pytest.raises(InvalidCredentialsError):
            await auth.login(LoginRequest(email="ghost@example.com", password="secret1"))

    @pytest.mark.asyncio
    async def test_token_for_deleted_user(self, auth: AuthService, users) -> None:
        response = await auth.register(RegisterRequest(name="Ravi", email="r@example.com", password="secret1"))
        users.users.clear()

        with pytest.raises(InvalidCredentialsError):
            await auth.authenticate(response.access_token)


class TestDriverService:

    @pytest.mark.asyncio
    async def test_change_status(self, users, passwords) -> None:
        driver = await make_driver(users, passwords, status=DriverStatus.OFFLINE)
        service = DriverService(users)

        updated = await service.change_status(driver.id, DriverStatus.AVAILABLE)

        assert updated.status == DriverStatus.AVAILABLE
        assert [d.id for d in await service.list_drivers()] == [driver.id]

    @pytest.mark.asyncio
    async def test_invalid_transition(self, users, passwords) -> None:
        driver = await make_driver(users, passwords, status=DriverStatus.OFFLINE)

        with pytest.raises(InvalidStatusTransitionError):
            await DriverService(users).change_status(driver.id, DriverStatus.BUSY)

    @pytest.mark.asyncio
    async def test_unknown_or_non_driver(self, users, passwords) -> None:
        dispatcher = await users.create(
            name="Asha", email="a@example.com", password_hash="x", role=UserRole.DISPATCHER,
        )
        service = DriverService(users)

        with pytest.raises(NotFoundError):
            await service.change_status("ghost", DriverStatus.AVAILABLE)
        with pytest.raises(NotFoundError):
            await service.change_status(dispatcher.id, DriverStatus.AVAILABLE)


class TestJobService:

    @pytest.mark.asyncio
    async def test_create_geocodes_addresses(self, jobs, users) -> None:
        service = JobService(jobs, users, fake_geo())

        job = await service.create_job(CreateJobRequest(
            order_id="ORD-1", pickup_address="Vashi", dropoff_address="Andheri",
        ))

        assert job.status == JobStatus.PENDING
        assert job.pickup_location is not None
        assert job.pickup_location.lat == 19.0

    @pytest.mark.asyncio
    async def test_create_without_geo(self, jobs, users) -> None:
        job = await JobService(jobs, users).create_job(CreateJobRequest(
            order_id="ORD-1", pickup_address="Vashi", dropoff_address="Andheri",
        ))

        assert job.pickup_location is None

    @pytest.mark.asyncio
    async def test_duplicate_order_id(self, jobs, users) -> None:
        service = JobService(jobs, users)
        request = CreateJobRequest(order_id="ORD-1", pickup_address="A", dropoff_address="B")
        await service.create_job(request)

        with pytest.raises(JobAlreadyExistsError):
            await service.create_job(request)

    @pytest.mark.asyncio
    async def test_assign_and_deliver_moves_driver(self, jobs, users, passwords) -> None:
        driver = await make_driver(users, passwords)
        service = JobService(jobs, users)
        job = await service.create_job(CreateJobRequest(order_id="ORD-1", pickup_address="A", dropoff_address="B"))

        assigned = await service.update_job(
            job.id, UpdateJobRequest(status=JobStatus.ASSIGNED, assigned_driver_id=driver.id),
        )

        assert assigned.assigned_driver is not None
        assert assigned.assigned_driver.name == "Ravi"
        assert (await users.get_by_id(driver.id)).status == DriverStatus.BUSY

        await service.update_job(job.id, UpdateJobRequest(status=JobStatus.PICKED_UP))
        assert (await users.get_by_id(driver.id)).status == DriverStatus.BUSY

        await service.update_job(job.id, UpdateJobRequest(status=JobStatus.DELIVERED))
        assert (await users.get_by_id(driver.id)).status == DriverStatus.AVAILABLE

    @pytest.mark.asyncio
    async def test_assign_offline_driver_keeps_status(self, jobs, users, passwords) -> None:
        driver = await make_driver(users, passwords, status=DriverStatus.OFFLINE)
        service = JobService(jobs, users)
        job = await service.create_job(CreateJobRequest(order_id="ORD-1", pickup_address="A", dropoff_address="B"))

        updated = await service.update_job(
            job.id, UpdateJobRequest(status=JobStatus.ASSIGNED, assigned_driver_id=driver.id),
        )

        assert updated.status == JobStatus.ASSIGNED
        assert (await users.get_by_id(driver.id)).status == DriverStatus.OFFLINE

    @pytest.mark.asyncio
    async def test_update_missing(self, jobs, users) -> None:
        service = JobService(jobs, users)

        with pytest.raises(NotFoundError):
            await service.update_job("ghost", UpdateJobRequest(status=JobStatus.DELIVERED))

        job = await service.create_job(CreateJobRequest(order_id="ORD-1", pickup_address="A", dropoff_address="B"))
        with pytest.raises(NotFoundError):
            await service.update_job(job.id, UpdateJobRequest(assigned_driver_id="ghost"))

    @pytest.mark.asyncio
    async def test_route(self, jobs, users) -> None:
        route = RouteInfo(distance_km=12.5, duration_minutes=25.0, path=[[19.0, 73.0], [19.1, 72.9]])
        service = JobService(jobs, users, fake_geo(route))
        job = await service.create_job(CreateJobRequest(order_id="ORD-1", pickup_address="A", dropoff_address="B"))

        result = await service.get_route(job.id)

        assert result.job_id == job.id
        assert result.distance_km == 12.5
        assert len(result.path) == 2

    @pytest.mark.asyncio
    async def test_route_errors(self, jobs, users) -> None:
        no_coords = await JobService(jobs, users).create_job(
            CreateJobRequest(order_id="ORD-1", pickup_address="A", dropoff_address="B")
        )
        with pytest.raises(NotFoundError):
            await JobService(jobs, users).get_route(no_coords.id)

        service = JobService(jobs, users, fake_geo(route=None))
        job = await service.create_job(CreateJobRequest(order_id="ORD-2", pickup_address="A", dropoff_address="B"))
        with pytest.raises(RouteUnavailableError):
            await service.get_route(job.id)
