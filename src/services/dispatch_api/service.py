# src/services/dispatch_api/service.py
"""
Бизнес-логика диспетчерского API: аутентификация, водители, заказы.
"""

from __future__ import annotations

import asyncpg

from src.common.logger import log_info, log_warning, TypeMsg
from src.core.geo.service import GeoService
from src.core.jobs.repository import JobRepository
from src.core.presence.state_machine import InvalidStatusTransitionError
from src.core.users.repository import UserRepository
from src.services.dispatch_api.security import PasswordService, TokenService
from src.shared.models.common import LocationPoint
from src.shared.models.enums import DriverStatus, JobStatus, UserRole
from src.shared.models.job_dto import CreateJobRequest, JobDTO, JobRouteDTO, UpdateJobRequest
from src.shared.models.user_dto import (
    DriverDTO,
    LoginRequest,
    RegisterRequest,
    TokenResponse,
    UserDTO,
)


class NotFoundError(Exception):
    """Сущность не найдена."""


class UserAlreadyExistsError(Exception):
    """Email уже зарегистрирован."""


class InvalidCredentialsError(Exception):
    """Неверный email/пароль или токен."""


class JobAlreadyExistsError(Exception):
    """Заказ с таким orderId уже есть."""


class RouteUnavailableError(Exception):
    """Провайдер маршрутов не ответил."""


class AuthService:
    def __init__(
        self,
        users: UserRepository,
        passwords: PasswordService,
        tokens: TokenService,
    ) -> None:
        self.users = users
        self.passwords = passwords
        self.tokens = tokens

    async def register(self, request: RegisterRequest) -> TokenResponse:
        if await self.users.get_by_email(request.email) is not None:
            raise UserAlreadyExistsError(request.email)

        try:
            user = await self.users.create(
                name=request.name,
                email=request.email,
                password_hash=self.passwords.hash(request.password),
                role=request.role,
                vehicle_type=request.vehicle_type,
                license_plate=request.license_plate,
            )
        except asyncpg.UniqueViolationError as e:
            # Параллельная регистрация с тем же email
            raise UserAlreadyExistsError(request.email) from e

        await log_info(f"Зарегистрирован {user.role} {user.id}", type_msg=TypeMsg.INFO)
        return self._token_for(user)

    async def login(self, request: LoginRequest) -> TokenResponse:
        user = await self.users.get_by_email(request.email)
        if user is None or not user.password_hash:
            raise InvalidCredentialsError()
        if not self.passwords.verify(user.password_hash, request.password):
            raise InvalidCredentialsError()
        return self._token_for(user)

    async def authenticate(self, token: str) -> UserDTO:
        """Пользователь по bearer-токену."""
        user_id = self.tokens.decode(token)
        if user_id is None:
            raise InvalidCredentialsError()
        user = await self.users.get_by_id(user_id)
        if user is None:
            raise InvalidCredentialsError()
        return user

    def _token_for(self, user: UserDTO) -> TokenResponse:
        return TokenResponse(
            access_token=self.tokens.issue(user.id, user.role.value),
            user=user,
        )


class DriverService:
    def __init__(self, users: UserRepository) -> None:
        self.users = users

    async def list_drivers(self) -> list[DriverDTO]:
        return [DriverDTO.from_user(user) for user in await self.users.list_drivers()]

    async def change_status(self, driver_id: str, status: DriverStatus) -> DriverDTO:
        """
        Меняет статус водителя по правилам DriverStatusMachine.

        Raises:
            NotFoundError: водитель не найден
            InvalidStatusTransitionError: переход запрещён
        """
        previous, updated = await self.users.transition_status(driver_id, status)
        if updated is None:
            raise NotFoundError(f"Водитель {driver_id} не найден")
        if previous != updated.status:
            await log_info(f"Водитель {driver_id}: {previous.value} -> {updated.status.value}", type_msg=TypeMsg.INFO)
        return DriverDTO.from_user(updated)


class JobService:
    def __init__(
        self,
        jobs: JobRepository,
        users: UserRepository,
        geo: GeoService | None = None,
    ) -> None:
        self.jobs = jobs
        self.users = users
        self.geo = geo

    async def list_jobs(self, status: JobStatus | None = None) -> list[JobDTO]:
        return await self.jobs.list_jobs(status=status)

    async def get_job(self, job_id: str) -> JobDTO:
        job = await self.jobs.get_by_id(job_id)
        if job is None:
            raise NotFoundError(f"Заказ {job_id} не найден")
        return job

    async def create_job(self, request: CreateJobRequest) -> JobDTO:
        """
        Создаёт заказ. Адреса геокодируются без гарантий:
        при ошибке провайдера координаты остаются пустыми.
        """
        if await self.jobs.get_by_order_id(request.order_id) is not None:
            raise JobAlreadyExistsError(request.order_id)

        pickup = await self._geocode(request.pickup_address)
        dropoff = await self._geocode(request.dropoff_address)

        try:
            job = await self.jobs.create(
                order_id=request.order_id,
                pickup_address=request.pickup_address,
                dropoff_address=request.dropoff_address,
                priority=request.priority,
                pickup=pickup,
                dropoff=dropoff,
            )
        except asyncpg.UniqueViolationError as e:
            raise JobAlreadyExistsError(request.order_id) from e

        await log_info(f"Создан заказ {job.order_id}", type_msg=TypeMsg.INFO)
        return job

    async def update_job(self, job_id: str, request: UpdateJobRequest) -> JobDTO:
        """
        Обновляет заказ и статус водителя:
        assigned -> водитель busy, delivered -> водитель available.
        """
        if await self.jobs.get_by_id(job_id) is None:
            raise NotFoundError(f"Заказ {job_id} не найден")

        if request.assigned_driver_id is not None:
            driver = await self.users.get_by_id(request.assigned_driver_id)
            if driver is None or driver.role != UserRole.DRIVER:
                raise NotFoundError(f"Водитель {request.assigned_driver_id} не найден")

        updated = await self.jobs.update(
            job_id,
            status=request.status,
            assigned_driver_id=request.assigned_driver_id,
            priority=request.priority,
        )
        if updated is None:
            raise NotFoundError(f"Заказ {job_id} не найден")

        if updated.assigned_driver_id:
            if request.status == JobStatus.ASSIGNED:
                await self._move_driver(updated.assigned_driver_id, DriverStatus.BUSY)
            elif request.status == JobStatus.DELIVERED:
                await self._move_driver(updated.assigned_driver_id, DriverStatus.AVAILABLE)

        return updated

    async def get_route(self, job_id: str) -> JobRouteDTO:
        """
        Raises:
            NotFoundError: нет заказа или его координат
            RouteUnavailableError: провайдер маршрутов недоступен
        """
        job = await self.get_job(job_id)
        if job.pickup_location is None or job.dropoff_location is None:
            raise NotFoundError(f"У заказа {job_id} нет координат")
        if self.geo is None:
            raise RouteUnavailableError("Провайдер маршрутов не настроен")

        route = await self.geo.calculate_route(
            job.pickup_location.lat,
            job.pickup_location.lng,
            job.dropoff_location.lat,
            job.dropoff_location.lng,
        )
        if route is None:
            raise RouteUnavailableError(f"Маршрут для заказа {job_id} не построен")

        return JobRouteDTO(
            job_id=job.id,
            distance_km=route.distance_km,
            duration_minutes=route.duration_minutes,
            path=route.path,
        )

    async def _geocode(self, address: str) -> LocationPoint | None:
        if self.geo is None:
            return None
        location = await self.geo.geocode(address)
        if location is None:
            return None
        return LocationPoint(lat=location.latitude, lng=location.longitude)

    async def _move_driver(self, driver_id: str, target: DriverStatus) -> None:
        # Недопустимый переход не отменяет обновление заказа
        try:
            previous, updated = await self.users.transition_status(driver_id, target)
        except InvalidStatusTransitionError as e:
            await log_warning(f"Водитель {driver_id}: {e}, переход пропущен")
            return
        if updated is not None and previous != updated.status:
            await log_info(f"Водитель {driver_id}: {previous.value} -> {updated.status.value}", type_msg=TypeMsg.INFO)
