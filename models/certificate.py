from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey
from sqlalchemy.sql import func

from core.database import Base, utcnow


class UserCertificate(Base):
    """Certificate issued for a passed quiz attempt."""

    __tablename__ = "user_certificates"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    quiz_id = Column(Integer, ForeignKey("quizzes.id", ondelete="SET NULL"), nullable=True)
    quiz_attempt_id = Column(Integer, ForeignKey("quiz_attempts.id", ondelete="CASCADE"), unique=True, nullable=False)
    title = Column(String(255), nullable=False)
    score = Column(Integer, nullable=False)
    verification_code = Column(String(16), unique=True, nullable=False, index=True)
    is_public = Column(Boolean, nullable=False, default=True)
    issued_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    def __repr__(self):
        return f"<UserCertificate(id={self.id}, code='{self.verification_code}')>"
