"""
Prevention/triage chat sessions, messages and the alerts they raise.
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text, JSON, ForeignKey, Enum as SQLEnum
from sqlalchemy.sql import func
from enum import Enum as PyEnum

from core.database import Base, utcnow


class UrgencyLevel(str, PyEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    EMERGENCY = "emergency"

    @property
    def rank(self) -> int:
        return list(UrgencyLevel).index(self)


class TriageSessionStatus(str, PyEnum):
    ACTIVE = "active"
    CLOSED = "closed"


class MessageRole(str, PyEnum):
    USER = "user"
    ASSISTANT = "assistant"


class AlertType(str, PyEnum):
    SENSITIVE_TOPIC = "sensitive_topic"
    HIGH_URGENCY = "high_urgency"
    EMERGENCY = "emergency"
    DOCTOR_SUGGESTED = "doctor_suggested"


class AlertStatus(str, PyEnum):
    PENDING = "pending"
    MONITORING = "monitoring"
    USER_RESOLVED = "user_resolved"
    CLOSED = "closed"


class TriageSession(Base):
    __tablename__ = "triage_sessions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(100), nullable=True)
    status = Column(SQLEnum(TriageSessionStatus), nullable=False, default=TriageSessionStatus.ACTIVE, index=True)
    urgency_level = Column(SQLEnum(UrgencyLevel), nullable=False, default=UrgencyLevel.LOW)
    is_sensitive = Column(Boolean, nullable=False, default=False)
    suggest_doctor = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)
    closed_at = Column(DateTime(timezone=True), nullable=True)


class TriageMessage(Base):
    __tablename__ = "triage_messages"

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(Integer, ForeignKey("triage_sessions.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(SQLEnum(MessageRole), nullable=False)
    content = Column(Text, nullable=False)
    related_topics = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())


class TriageAlert(Base):
    __tablename__ = "triage_alerts"

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(Integer, ForeignKey("triage_sessions.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    alert_type = Column(SQLEnum(AlertType), nullable=False)
    reason = Column(Text, nullable=False)
    urgency_level = Column(SQLEnum(UrgencyLevel), nullable=False)
    status = Column(SQLEnum(AlertStatus), nullable=False, default=AlertStatus.PENDING, index=True)
    reviewed_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    review_notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    @property
    def is_open(self) -> bool:
        return self.status in (AlertStatus.PENDING, AlertStatus.MONITORING)
