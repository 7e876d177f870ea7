"""
Doctor-patient linking endpoints.

A doctor hands a short code to the patient; redeeming it links the two so
the doctor receives the patient's critical alerts.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import require_doctor
from core.database import get_db
from core.security import get_current_active_user
from models.user import User, UserRole
from repositories.triage import TriageRepository
from repositories.user import UserRepository
from schemas.doctor import (
    DoctorAlertsResponse,
    LinkingCodeResponse,
    LinkPatientRequest,
    LinkPatientResponse,
    PatientsResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/generate-code", response_model=LinkingCodeResponse, status_code=status.HTTP_201_CREATED)
async def generate_linking_code(
    doctor: User = Depends(require_doctor),
    db: AsyncSession = Depends(get_db),
):
    linking_code = await UserRepository(db).create_linking_code(doctor.id)
    logger.info(f"Doctor {doctor.id} generated a linking code")
    return LinkingCodeResponse(code=linking_code.code, expires_at=linking_code.expires_at)


@router.post("/link-patient", response_model=LinkPatientResponse)
async def link_patient(
    request: LinkPatientRequest,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    if current_user.role != UserRole.PATIENT:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Solo i pazienti possono collegarsi a un medico")

    user_repo = UserRepository(db)
    linking_code = await user_repo.get_valid_linking_code(request.code)
    if not linking_code:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Codice non valido o scaduto")
    if linking_code.doctor_id == current_user.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Non puoi collegarti a te stesso")

    await user_repo.link_patient(linking_code.doctor_id, current_user.id)
    return LinkPatientResponse(doctor_id=linking_code.doctor_id, message="Collegamento al medico completato")


@router.get("/patients", response_model=PatientsResponse)
async def list_patients(
    doctor: User = Depends(require_doctor),
    db: AsyncSession = Depends(get_db),
):
    return PatientsResponse(patients=await UserRepository(db).get_patients_of_doctor(doctor.id))


@router.get("/alerts", response_model=DoctorAlertsResponse)
async def list_patient_alerts(
    doctor: User = Depends(require_doctor),
    db: AsyncSession = Depends(get_db),
):
    return DoctorAlertsResponse(alerts=await TriageRepository(db).list_alerts_for_doctor(doctor.id))
