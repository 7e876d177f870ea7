from datetime import datetime
from typing import List, Optional

from schemas.common import BaseSchema


class CertificateRead(BaseSchema):
    id: int
    user_id: int
    quiz_id: Optional[int] = None
    quiz_attempt_id: int
    title: str
    score: int
    verification_code: str
    is_public: bool
    issued_at: Optional[datetime] = None


class CertificatesResponse(BaseSchema):
    certificates: List[CertificateRead]


class CertificateVisibilityUpdate(BaseSchema):
    is_public: bool


class CertificateVerification(BaseSchema):
    """Public view of a certificate: no internal ids."""

    valid: bool = True
    recipient_name: str
    title: str
    score: int
    verification_code: str
    issued_at: Optional[datetime] = None
