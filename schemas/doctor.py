from datetime import datetime
from typing import List, Optional

from pydantic import Field

from schemas.common import BaseSchema
from schemas.triage import TriageAlertRead


class LinkingCodeResponse(BaseSchema):
    code: str
    expires_at: datetime


class LinkPatientRequest(BaseSchema):
    code: str = Field(min_length=4, max_length=12)


class LinkedPatient(BaseSchema):
    id: int
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class LinkPatientResponse(BaseSchema):
    success: bool = True
    doctor_id: int
    message: str


class PatientsResponse(BaseSchema):
    patients: List[LinkedPatient]


class DoctorAlertsResponse(BaseSchema):
    alerts: List[TriageAlertRead]
