from datetime import datetime
from typing import Any, Mapping, Optional

from pydantic import BaseModel, Field

from src.common.constants import DEFAULT_JOB_PRIORITY
from src.shared.models.common import LocationPoint
from src.shared.models.enums import JobStatus, VehicleType
from src.shared.models.user_dto import location_from_columns


class AssignedDriverDTO(BaseModel):
    """Краткие данные назначенного водителя."""
    id: str
    name: str
    vehicle_type: VehicleType = Field(alias="vehicleType")

    class Config:
        populate_by_name = True


class JobDTO(BaseModel):
    id: str
    order_id: str = Field(alias="orderId")
    pickup_address: str = Field(alias="pickupAddress")
    dropoff_address: str = Field(alias="dropoffAddress")
    pickup_location: Optional[LocationPoint] = Field(default=None, alias="pickupLocation")
    dropoff_location: Optional[LocationPoint] = Field(default=None, alias="dropoffLocation")
    priority: str = DEFAULT_JOB_PRIORITY
    status: JobStatus = JobStatus.PENDING
    assigned_driver_id: Optional[str] = Field(default=None, alias="assignedDriverId")
    assigned_driver: Optional[AssignedDriverDTO] = Field(default=None, alias="assignedDriver")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")

    class Config:
        from_attributes = True
        populate_by_name = True

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "JobDTO":
        """
        Строит DTO из строки jobs.

        Колонки driver_name / driver_vehicle_type присутствуют,
        если запрос делал LEFT JOIN с users.
        """
        data = dict(record)
        driver = None
        if data.get("assigned_driver_id") and data.get("driver_name"):
            driver = AssignedDriverDTO(
                id=data["assigned_driver_id"],
                name=data["driver_name"],
                vehicle_type=data["driver_vehicle_type"],
            )
        return cls(
            id=data["id"],
            order_id=data["order_id"],
            pickup_address=data["pickup_address"],
            dropoff_address=data["dropoff_address"],
            pickup_location=location_from_columns(data.get("pickup_lat"), data.get("pickup_lng")),
            dropoff_location=location_from_columns(data.get("dropoff_lat"), data.get("dropoff_lng")),
            priority=data.get("priority") or DEFAULT_JOB_PRIORITY,
            status=data["status"],
            assigned_driver_id=data.get("assigned_driver_id"),
            assigned_driver=driver,
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
        )


class CreateJobRequest(BaseModel):
    order_id: str = Field(min_length=1, alias="orderId")
    pickup_address: str = Field(min_length=1, alias="pickupAddress")
    dropoff_address: str = Field(min_length=1, alias="dropoffAddress")
    priority: str = DEFAULT_JOB_PRIORITY

    class Config:
        populate_by_name = True


class UpdateJobRequest(BaseModel):
    status: Optional[JobStatus] = None
    assigned_driver_id: Optional[str] = Field(default=None, alias="assignedDriver")
    priority: Optional[str] = None

    class Config:
        populate_by_name = True


class JobRouteDTO(BaseModel):
    """Маршрут от точки забора до точки доставки."""
    job_id: str = Field(alias="jobId")
    distance_km: float = Field(alias="distanceKm")
    duration_minutes: float = Field(alias="durationMinutes")
    path: list[list[float]] = Field(default_factory=list)

    class Config:
        populate_by_name = True
