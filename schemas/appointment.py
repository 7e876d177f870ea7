from datetime import datetime
from typing import List, Optional

from pydantic import Field, field_validator

from core.database import as_utc
from models.appointment import AppointmentStatus, AppointmentType
from schemas.common import BaseSchema


class AppointmentCreate(BaseSchema):
    start_time: datetime
    end_time: datetime
    title: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = Field(default=None, max_length=2000)
    type: AppointmentType = AppointmentType.VIDEO

    @field_validator("start_time", "end_time")
    @classmethod
    def normalise_time(cls, value: datetime) -> datetime:
        return as_utc(value)


class AppointmentBook(BaseSchema):
    notes: Optional[str] = Field(default=None, max_length=2000)


class AppointmentStatusUpdate(BaseSchema):
    status: AppointmentStatus
    reason: Optional[str] = Field(default=None, max_length=1000)


class AppointmentRead(BaseSchema):
    id: int
    doctor_id: int
    patient_id: Optional[int] = None
    start_time: datetime
    end_time: datetime
    title: str
    type: AppointmentType
    status: AppointmentStatus
    description: Optional[str] = None
    notes: Optional[str] = None
    video_room_name: Optional[str] = None
    cancellation_reason: Optional[str] = None
    created_at: Optional[datetime] = None


class AppointmentsResponse(BaseSchema):
    appointments: List[AppointmentRead]


class FeatureFlagResponse(BaseSchema):
    enabled: bool
