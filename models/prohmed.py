from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Enum as SQLEnum
from sqlalchemy.sql import func
from enum import Enum as PyEnum

from core.database import Base, utcnow


class ProhmedAccessType(str, PyEnum):
    INDIVIDUAL = "individual"
    FAMILY = "family"


class ProhmedCodeSource(str, PyEnum):
    ADMIN_BULK = "admin_bulk"
    FULL_PLUS_SUBSCRIPTION = "full_plus_subscription"
    CROSSWORD_WINNER = "crossword_winner"


class ProhmedCodeStatus(str, PyEnum):
    ACTIVE = "active"
    REDEEMED = "redeemed"
    EXPIRED = "expired"
    REVOKED = "revoked"


class ProhmedCode(Base):
    """Telemedicine access code for the Prohmed partner service."""

    __tablename__ = "prohmed_codes"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(20), unique=True, nullable=False, index=True)
    access_type = Column(SQLEnum(ProhmedAccessType), nullable=False, default=ProhmedAccessType.INDIVIDUAL)
    source = Column(SQLEnum(ProhmedCodeSource), nullable=False, default=ProhmedCodeSource.ADMIN_BULK)
    status = Column(SQLEnum(ProhmedCodeStatus), nullable=False, default=ProhmedCodeStatus.ACTIVE, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    redeemed_at = Column(DateTime(timezone=True), nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    @property
    def is_redeemed(self) -> bool:
        return self.status == ProhmedCodeStatus.REDEEMED
