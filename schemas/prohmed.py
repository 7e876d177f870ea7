from datetime import datetime
from typing import List, Optional

from pydantic import Field

from models.prohmed import ProhmedAccessType, ProhmedCodeSource, ProhmedCodeStatus
from schemas.common import BaseSchema


class ProhmedCodeRead(BaseSchema):
    id: int
    code: str
    access_type: ProhmedAccessType
    source: ProhmedCodeSource
    status: ProhmedCodeStatus
    user_id: Optional[int] = None
    redeemed_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class ProhmedCodesResponse(BaseSchema):
    codes: List[ProhmedCodeRead]
    count: int


class ProhmedGenerateRequest(BaseSchema):
    type: ProhmedAccessType = ProhmedAccessType.INDIVIDUAL
    count: int = Field(default=1, ge=1, le=100)
    source: ProhmedCodeSource = ProhmedCodeSource.ADMIN_BULK
    expires_in_days: Optional[int] = Field(default=365, ge=1, le=3650)


class ProhmedRedeemRequest(BaseSchema):
    code: str = Field(min_length=1, max_length=20)


class ProhmedRedeemResponse(BaseSchema):
    success: bool = True
    message: str
    code: ProhmedCodeRead
