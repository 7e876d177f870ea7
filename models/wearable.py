"""
Wearable devices, blood-pressure readings and daily vitals reports.
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Float, Text, JSON, ForeignKey, Enum as SQLEnum
from sqlalchemy.sql import func
from enum import Enum as PyEnum

from core.database import Base, utcnow


class DeviceType(str, PyEnum):
    BLOOD_PRESSURE = "blood_pressure"
    GLUCOSE = "glucose"
    HEART_RATE = "heart_rate"
    WEIGHT = "weight"
    OXIMETER = "oximeter"
    ECG = "ecg"


class Severity(str, PyEnum):
    NORMAL = "normal"
    ELEVATED = "elevated"
    HIGH = "high"
    LOW = "low"


class ReadingSource(str, PyEnum):
    MANUAL = "manual"
    BLUETOOTH = "bluetooth"


class WearableDevice(Base):
    __tablename__ = "wearable_devices"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    device_type = Column(SQLEnum(DeviceType), nullable=False)
    name = Column(String(100), nullable=True)
    manufacturer = Column(String(100), nullable=True)
    model = Column(String(100), nullable=True)
    serial_number = Column(String(100), nullable=True)
    bluetooth_id = Column(String(255), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    last_sync_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)

    def __repr__(self):
        return f"<WearableDevice(id={self.id}, type='{self.device_type}', user_id={self.user_id})>"


class BloodPressureReading(Base):
    __tablename__ = "blood_pressure_readings"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    device_id = Column(Integer, ForeignKey("wearable_devices.id", ondelete="SET NULL"), nullable=True, index=True)
    systolic = Column(Integer, nullable=False)
    diastolic = Column(Integer, nullable=False)
    heart_rate = Column(Integer, nullable=True)
    mean_arterial_pressure = Column(Integer, nullable=True)
    measurement_time = Column(DateTime(timezone=True), nullable=False, index=True)
    notes = Column(Text, nullable=True)
    source = Column(SQLEnum(ReadingSource), nullable=False, default=ReadingSource.MANUAL)

    # Anomaly detection output
    is_anomalous = Column(Boolean, nullable=False, default=False, index=True)
    severity = Column(SQLEnum(Severity), nullable=False, default=Severity.NORMAL)
    issues = Column(JSON, nullable=False, default=list)
    ai_analysis = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    def __repr__(self):
        return f"<BloodPressureReading(id={self.id}, {self.systolic}/{self.diastolic})>"


class WearableDailyReport(Base):
    __tablename__ = "wearable_daily_reports"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    report_date = Column(DateTime(timezone=True), nullable=False)
    period_start = Column(DateTime(timezone=True), nullable=False)
    period_end = Column(DateTime(timezone=True), nullable=False)
    total_readings = Column(Integer, nullable=False, default=0)
    avg_systolic = Column(Float, nullable=True)
    avg_diastolic = Column(Float, nullable=True)
    avg_heart_rate = Column(Float, nullable=True)
    anomaly_count = Column(Integer, nullable=False, default=0)
    anomaly_percentage = Column(Float, nullable=False, default=0.0)
    report_data = Column(JSON, nullable=True)
    ai_context_text = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
