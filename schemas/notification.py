from datetime import datetime
from typing import List, Optional

from pydantic import Field

from models.notification import NotificationPriority
from schemas.common import BaseSchema


class PushKeys(BaseSchema):
    p256dh: str = Field(min_length=1, max_length=255)
    auth: str = Field(min_length=1, max_length=255)


class PushSubscribeRequest(BaseSchema):
    endpoint: str = Field(min_length=1, max_length=1000)
    keys: PushKeys


class PushUnsubscribeRequest(BaseSchema):
    endpoint: str = Field(min_length=1, max_length=1000)


class VapidKeyResponse(BaseSchema):
    public_key: str


class AdminPushRequest(BaseSchema):
    title: str = Field(min_length=1, max_length=255)
    body: str = Field(min_length=1, max_length=2000)
    url: Optional[str] = Field(default=None, max_length=500)
    user_id: Optional[int] = None


class PushSendResponse(BaseSchema):
    success: bool = True
    sent: int
    failed: int


class NotificationRead(BaseSchema):
    id: int
    title: str
    message: str
    type: str
    priority: NotificationPriority
    related_url: Optional[str] = None
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class NotificationsResponse(BaseSchema):
    notifications: List[NotificationRead]


class UnreadCountResponse(BaseSchema):
    count: int


class NotificationCreate(BaseSchema):
    title: str = Field(min_length=1, max_length=255)
    message: str = Field(min_length=1)
    type: str = Field(default="system", max_length=50)
    priority: NotificationPriority = NotificationPriority.NORMAL
    target_user_id: Optional[int] = None
    related_url: Optional[str] = Field(default=None, max_length=500)


class NotificationCreateResponse(BaseSchema):
    success: bool = True
    count: int
