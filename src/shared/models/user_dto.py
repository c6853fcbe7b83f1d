from datetime import datetime
from typing import Any, Mapping, Optional

from pydantic import BaseModel, Field

from src.common.constants import DEFAULT_LICENSE_PLATE
from src.shared.models.common import LocationPoint
from src.shared.models.enums import DriverStatus, UserRole, VehicleType

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


def location_from_columns(
    lat: Optional[float],
    lng: Optional[float],
    updated_at: Optional[datetime] = None,
) -> Optional[LocationPoint]:
    """Собирает LocationPoint из пары колонок, если обе заданы."""
    if lat is None or lng is None:
        return None
    return LocationPoint(lat=lat, lng=lng, updated_at=updated_at)


class UserDTO(BaseModel):
    id: str
    name: str
    email: str
    role: UserRole = UserRole.DRIVER
    status: DriverStatus = DriverStatus.OFFLINE
    vehicle_type: VehicleType = Field(default=VehicleType.TRUCK, alias="vehicleType")
    license_plate: str = Field(default=DEFAULT_LICENSE_PLATE, alias="licensePlate")
    last_location: Optional[LocationPoint] = Field(default=None, alias="lastLocation")
    password_hash: Optional[str] = Field(default=None, exclude=True)
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")

    class Config:
        from_attributes = True
        populate_by_name = True

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "UserDTO":
        """Строит DTO из строки таблицы users."""
        data = dict(record)
        return cls(
            id=data["id"],
            name=data["name"],
            email=data["email"],
            role=data["role"],
            status=data["status"],
            vehicle_type=data["vehicle_type"],
            license_plate=data["license_plate"],
            last_location=location_from_columns(
                data.get("location_lat"),
                data.get("location_lng"),
                data.get("location_updated_at"),
            ),
            password_hash=data.get("password_hash"),
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
        )


class DriverDTO(BaseModel):
    """Водитель в списке диспетчера."""
    id: str
    name: str
    status: DriverStatus
    vehicle_type: VehicleType = Field(alias="vehicleType")
    license_plate: str = Field(alias="licensePlate")
    last_location: Optional[LocationPoint] = Field(default=None, alias="lastLocation")

    class Config:
        populate_by_name = True

    @classmethod
    def from_user(cls, user: UserDTO) -> "DriverDTO":
        return cls(
            id=user.id,
            name=user.name,
            status=user.status,
            vehicle_type=user.vehicle_type,
            license_plate=user.license_plate,
            last_location=user.last_location,
        )


class RegisterRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    email: str = Field(pattern=EMAIL_PATTERN)
    password: str = Field(min_length=6)
    role: UserRole = UserRole.DRIVER
    vehicle_type: VehicleType = Field(default=VehicleType.TRUCK, alias="vehicleType")
    license_plate: str = Field(default=DEFAULT_LICENSE_PLATE, alias="licensePlate")

    class Config:
        populate_by_name = True


class LoginRequest(BaseModel):
    email: str = Field(pattern=EMAIL_PATTERN)
    password: str = Field(min_length=1)


class TokenResponse(BaseModel):
    access_token: str = Field(alias="token")
    token_type: str = Field(default="bearer", alias="tokenType")
    user: UserDTO

    class Config:
        populate_by_name = True


class UpdateDriverStatusRequest(BaseModel):
    status: DriverStatus
