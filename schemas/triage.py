from datetime import datetime
from typing import List, Optional

from pydantic import Field

from models.triage import (
    AlertStatus,
    AlertType,
    MessageRole,
    TriageSessionStatus,
    UrgencyLevel,
)
from schemas.common import BaseSchema


class TriageStartRequest(BaseSchema):
    initial_symptom: str = Field(min_length=1, max_length=4000)


class TriageMessageRequest(BaseSchema):
    session_id: int
    content: str = Field(min_length=1, max_length=4000)


class AlertResolveRequest(BaseSchema):
    status: AlertStatus = AlertStatus.CLOSED
    notes: Optional[str] = Field(default=None, max_length=2000)


class TriageSessionRead(BaseSchema):
    id: int
    user_id: int
    title: Optional[str] = None
    status: TriageSessionStatus
    urgency_level: UrgencyLevel
    is_sensitive: bool
    suggest_doctor: bool
    created_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None


class TriageMessageRead(BaseSchema):
    id: int
    session_id: int
    role: MessageRole
    content: str
    related_topics: Optional[List[str]] = None
    created_at: Optional[datetime] = None


class TriageAlertRead(BaseSchema):
    id: int
    session_id: int
    user_id: int
    alert_type: AlertType
    reason: str
    urgency_level: UrgencyLevel
    status: AlertStatus
    reviewed_by_id: Optional[int] = None
    reviewed_at: Optional[datetime] = None
    review_notes: Optional[str] = None
    created_at: Optional[datetime] = None


class TriageTurnResponse(BaseSchema):
    session: TriageSessionRead
    messages: List[TriageMessageRead]
    urgency_level: UrgencyLevel
    suggest_doctor: bool
    is_sensitive: bool
    related_topics: List[str]
    needs_report_upload: bool
    alert: Optional[TriageAlertRead] = None


class ActiveSessionResponse(BaseSchema):
    session: Optional[TriageSessionRead] = None
    messages: List[TriageMessageRead] = []


class AlertsResponse(BaseSchema):
    alerts: List[TriageAlertRead]
