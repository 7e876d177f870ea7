"""
User model for authentication, roles and subscription tiers.
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, UniqueConstraint, Enum as SQLEnum
from sqlalchemy.sql import func
from enum import Enum as PyEnum

from core.database import Base, utcnow


#ENUM VALUES
class UserRole(str, PyEnum):
    PATIENT = "patient"
    DOCTOR = "doctor"


class SubscriptionTier(str, PyEnum):
    FREE = "free"
    PREMIUM = "premium"
    PREMIUM_PLUS = "premium_plus"

#-------------------------------------------------------

class User(Base):
    """Platform account: patient or doctor, optionally an admin."""

    __tablename__ = "users"

    #Main
    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=True)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    language = Column(String(5), nullable=False, default="it")
    role = Column(SQLEnum(UserRole), nullable=False, default=UserRole.PATIENT)

    #Access
    is_admin = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    subscription_tier = Column(SQLEnum(SubscriptionTier), nullable=False, default=SubscriptionTier.FREE)
    ai_only_access = Column(Boolean, nullable=False, default=False)

    #Messaging
    phone_number = Column(String(20), nullable=True)
    whatsapp_number = Column(String(20), nullable=True)
    whatsapp_notifications_enabled = Column(Boolean, nullable=False, default=False)
    whatsapp_verified = Column(Boolean, nullable=False, default=False)

    #Auth
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)
    last_login = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}')>"

    @property
    def full_name(self) -> str:
        """Get user's full name."""
        if self.first_name and self.last_name:
            return f"{self.first_name} {self.last_name}"
        elif self.first_name:
            return self.first_name
        elif self.last_name:
            return self.last_name
        return self.email

    @property
    def is_doctor(self) -> bool:
        return self.role == UserRole.DOCTOR

    @property
    def is_premium(self) -> bool:
        return self.is_admin or self.subscription_tier in (SubscriptionTier.PREMIUM, SubscriptionTier.PREMIUM_PLUS)

    @property
    def can_receive_whatsapp(self) -> bool:
        return bool(self.whatsapp_number) and self.whatsapp_notifications_enabled and self.whatsapp_verified


class DoctorPatientLink(Base):
    __tablename__ = "doctor_patient_links"
    __table_args__ = (UniqueConstraint("doctor_id", "patient_id", name="uq_doctor_patient"),)

    id = Column(Integer, primary_key=True, index=True)
    doctor_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    patient_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())


class DoctorLinkingCode(Base):
    __tablename__ = "doctor_linking_codes"

    id = Column(Integer, primary_key=True, index=True)
    doctor_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    code = Column(String(12), unique=True, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
