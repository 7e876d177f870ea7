"""
Telemedicine appointments and their WhatsApp reminders.
"""

from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey, Enum as SQLEnum
from sqlalchemy.sql import func
from enum import Enum as PyEnum

from core.database import Base, utcnow


class AppointmentStatus(str, PyEnum):
    AVAILABLE = "available"
    BOOKED = "booked"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class AppointmentType(str, PyEnum):
    VIDEO = "video"
    IN_PERSON = "in_person"


class ReminderType(str, PyEnum):
    REMINDER_24H = "reminder_24h"
    REMINDER_2H = "reminder_2h"


class ReminderChannel(str, PyEnum):
    WHATSAPP = "whatsapp"
    EMAIL = "email"
    BOTH = "both"


class ReminderStatus(str, PyEnum):
    PENDING = "pending"
    SENT = "sent"
    SKIPPED = "skipped"
    FAILED = "failed"


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, index=True)
    doctor_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    patient_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    start_time = Column(DateTime(timezone=True), nullable=False, index=True)
    end_time = Column(DateTime(timezone=True), nullable=False)
    title = Column(String(255), nullable=False, default="Teleconsulto")
    type = Column(SQLEnum(AppointmentType), nullable=False, default=AppointmentType.VIDEO)
    status = Column(SQLEnum(AppointmentStatus), nullable=False, default=AppointmentStatus.AVAILABLE, index=True)
    description = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    video_room_name = Column(String(100), nullable=True)
    cancellation_reason = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)

    def __repr__(self):
        return f"<Appointment(id={self.id}, status='{self.status}')>"

    @property
    def room_name(self) -> str:
        return f"appointment-{self.id}"


class AppointmentReminder(Base):
    __tablename__ = "appointment_reminders"

    id = Column(Integer, primary_key=True, index=True)
    appointment_id = Column(Integer, ForeignKey("appointments.id", ondelete="CASCADE"), nullable=False, index=True)
    reminder_type = Column(SQLEnum(ReminderType), nullable=False)
    channel = Column(SQLEnum(ReminderChannel), nullable=False, default=ReminderChannel.WHATSAPP)
    scheduled_for = Column(DateTime(timezone=True), nullable=False, index=True)
    status = Column(SQLEnum(ReminderStatus), nullable=False, default=ReminderStatus.PENDING, index=True)
    message_sid = Column(String(64), nullable=True)
    error = Column(Text, nullable=True)
    sent_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
