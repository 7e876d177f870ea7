import base64
import binascii
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import Field, field_validator

from core.database import as_utc
from models.wearable import DeviceType, Severity, ReadingSource
from schemas.common import BaseSchema


class DeviceCreate(BaseSchema):
    device_type: DeviceType
    name: Optional[str] = Field(default=None, max_length=100)
    manufacturer: Optional[str] = Field(default=None, max_length=100)
    model: Optional[str] = Field(default=None, max_length=100)
    serial_number: Optional[str] = Field(default=None, max_length=100)
    bluetooth_id: Optional[str] = Field(default=None, max_length=255)


class DeviceUpdate(BaseSchema):
    name: Optional[str] = Field(default=None, max_length=100)
    manufacturer: Optional[str] = Field(default=None, max_length=100)
    model: Optional[str] = Field(default=None, max_length=100)
    serial_number: Optional[str] = Field(default=None, max_length=100)
    bluetooth_id: Optional[str] = Field(default=None, max_length=255)
    is_active: Optional[bool] = None


class DeviceRead(DeviceCreate):
    id: int
    user_id: int
    is_active: bool
    last_sync_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class BloodPressureReadingCreate(BaseSchema):
    systolic: int = Field(ge=50, le=250)
    diastolic: int = Field(ge=30, le=150)
    heart_rate: Optional[int] = Field(default=None, ge=30, le=220)
    measurement_time: datetime
    device_id: Optional[int] = None
    notes: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("measurement_time")
    @classmethod
    def normalise_time(cls, value: datetime) -> datetime:
        return as_utc(value)


class RawBloodPressurePayload(BaseSchema):
    """Characteristic 0x2A35 value as forwarded by the client."""

    payload: str = Field(min_length=1, max_length=64)
    encoding: Literal["base64", "hex"] = "base64"
    device_id: Optional[int] = None
    notes: Optional[str] = Field(default=None, max_length=1000)

    def decode(self) -> bytes:
        try:
            if self.encoding == "hex":
                return bytes.fromhex(self.payload)
            return base64.b64decode(self.payload, validate=True)
        except (ValueError, binascii.Error) as e:
            raise ValueError(f"Payload {self.encoding} non valido") from e


class BloodPressureReadingRead(BaseSchema):
    id: int
    user_id: int
    device_id: Optional[int] = None
    systolic: int
    diastolic: int
    heart_rate: Optional[int] = None
    mean_arterial_pressure: Optional[int] = None
    measurement_time: datetime
    notes: Optional[str] = None
    source: ReadingSource
    is_anomalous: bool
    severity: Severity
    issues: List[str] = []
    ai_analysis: Optional[str] = None
    created_at: Optional[datetime] = None


class AnalysedReading(BloodPressureReadingRead):
    recommendation: str


class BloodPressureSubmitResponse(BaseSchema):
    success: bool = True
    reading: AnalysedReading
    message: str


class ReadingStats(BaseSchema):
    total: int
    anomalous: int
    average_systolic: int
    average_diastolic: int


class BloodPressureHistoryResponse(BaseSchema):
    success: bool = True
    readings: List[BloodPressureReadingRead]
    stats: ReadingStats


class AnomaliesResponse(BaseSchema):
    success: bool = True
    anomalies: List[BloodPressureReadingRead]
    count: int


class DeviceResponse(BaseSchema):
    success: bool = True
    device: DeviceRead
    message: str


class DevicesResponse(BaseSchema):
    success: bool = True
    devices: List[DeviceRead]


class SeverityBreakdown(BaseSchema):
    normal: int = 0
    elevated: int = 0
    high: int = 0
    low: int = 0


class WearableStats(BaseSchema):
    total_readings: int
    total_anomalies: int
    anomaly_rate: float
    distinct_users: int
    active_devices: int
    severity_breakdown: SeverityBreakdown
    start_date: datetime
    end_date: datetime


class WearableStatsResponse(BaseSchema):
    success: bool = True
    stats: WearableStats
