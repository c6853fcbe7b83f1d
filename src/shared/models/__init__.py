# src/shared/models/__init__.py
"""
Общие DTO и Pydantic-модели для межсервисного взаимодействия.
"""

from src.shared.models.enums import (
    UserRole,
    DriverStatus,
    JobStatus,
    VehicleType,
    SenderRole,
)
from src.shared.models.common import (
    ErrorResponse,
    HealthStatus,
    LocationPoint,
)
from src.shared.models.user_dto import (
    UserDTO,
    DriverDTO,
    RegisterRequest,
    LoginRequest,
    TokenResponse,
    UpdateDriverStatusRequest,
)
from src.shared.models.job_dto import (
    JobDTO,
    AssignedDriverDTO,
    CreateJobRequest,
    UpdateJobRequest,
    JobRouteDTO,
)

__all__ = [
    # Enums
    "UserRole",
    "DriverStatus",
    "JobStatus",
    "VehicleType",
    "SenderRole",
    # Common
    "ErrorResponse",
    "HealthStatus",
    "LocationPoint",
    # User
    "UserDTO",
    "DriverDTO",
    "RegisterRequest",
    "LoginRequest",
    "TokenResponse",
    "UpdateDriverStatusRequest",
    # Job
    "JobDTO",
    "AssignedDriverDTO",
    "CreateJobRequest",
    "UpdateJobRequest",
    "JobRouteDTO",
]
