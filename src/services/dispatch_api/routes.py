from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status

from src.core.presence.state_machine import InvalidStatusTransitionError
from src.services.dispatch_api.dependencies import (
    get_auth_service,
    get_current_user,
    get_driver_service,
    get_job_service,
    require_dispatcher,
)
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
from src.shared.models.enums import JobStatus, UserRole
from src.shared.models.job_dto import CreateJobRequest, JobDTO, JobRouteDTO, UpdateJobRequest
from src.shared.models.user_dto import (
    DriverDTO,
    LoginRequest,
    RegisterRequest,
    TokenResponse,
    UpdateDriverStatusRequest,
    UserDTO,
)

auth_router = APIRouter(prefix="/auth", tags=["auth"])
drivers_router = APIRouter(prefix="/drivers", tags=["drivers"])
jobs_router = APIRouter(prefix="/jobs", tags=["jobs"])


# === AUTH ===

@auth_router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(
    request: RegisterRequest,
    service: AuthService = Depends(get_auth_service),
):
    try:
        return await service.register(request)
    except UserAlreadyExistsError:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User already exists")


@auth_router.post("/login", response_model=TokenResponse)
async def login(
    request: LoginRequest,
    service: AuthService = Depends(get_auth_service),
):
    try:
        return await service.login(request)
    except InvalidCredentialsError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")


@auth_router.get("/me", response_model=UserDTO)
async def me(user: UserDTO = Depends(get_current_user)):
    return user


# === DRIVERS ===

@drivers_router.get("", response_model=list[DriverDTO])
async def list_drivers(
    _: UserDTO = Depends(get_current_user),
    service: DriverService = Depends(get_driver_service),
):
    return await service.list_drivers()


@drivers_router.put("/{driver_id}/status", response_model=DriverDTO)
async def change_driver_status(
    driver_id: str,
    request: UpdateDriverStatusRequest,
    user: UserDTO = Depends(get_current_user),
    service: DriverService = Depends(get_driver_service),
):
    # Водитель меняет только свой статус
    if user.role == UserRole.DRIVER and user.id != driver_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    try:
        return await service.change_status(driver_id, request.status)
    except NotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Driver not found")
    except InvalidStatusTransitionError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


# === JOBS ===

@jobs_router.get("", response_model=list[JobDTO])
async def list_jobs(
    status_filter: Optional[JobStatus] = None,
    _: UserDTO = Depends(get_current_user),
    service: JobService = Depends(get_job_service),
):
    return await service.list_jobs(status=status_filter)


@jobs_router.post("", response_model=JobDTO, status_code=status.HTTP_201_CREATED)
async def create_job(
    request: CreateJobRequest,
    _: UserDTO = Depends(require_dispatcher),
    service: JobService = Depends(get_job_service),
):
    try:
        return await service.create_job(request)
    except JobAlreadyExistsError:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Order ID exists")


@jobs_router.put("/{job_id}", response_model=JobDTO)
async def update_job(
    job_id: str,
    request: UpdateJobRequest,
    _: UserDTO = Depends(get_current_user),
    service: JobService = Depends(get_job_service),
):
    try:
        return await service.update_job(job_id, request)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@jobs_router.get("/{job_id}/route", response_model=JobRouteDTO)
async def get_job_route(
    job_id: str,
    _: UserDTO = Depends(get_current_user),
    service: JobService = Depends(get_job_service),
):
    try:
        return await service.get_route(job_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except RouteUnavailableError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
