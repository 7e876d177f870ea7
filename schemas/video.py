from datetime import datetime
from typing import List, Optional

from pydantic import Field

from schemas.common import BaseSchema


class VideoTokenRequest(BaseSchema):
    room_name: str = Field(min_length=1, max_length=100)


class VideoTokenResponse(BaseSchema):
    token: str
    room_name: str
    identity: str
    expires_in: int


class TrackSnapshot(BaseSchema):
    sid: str
    kind: Optional[str] = None


class ParticipantSnapshot(BaseSchema):
    identity: str
    connected_at: datetime
    tracks: List[TrackSnapshot]


class RoomSnapshot(BaseSchema):
    room_name: str
    created_at: Optional[datetime] = None
    participants: List[ParticipantSnapshot] = []
