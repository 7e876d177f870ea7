"""
Appointments API endpoints.

Slot publishing for doctors, booking for patients and the status workflow
shared by both.
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import require_doctor
from core.database import get_db, utcnow, as_utc
from core.security import get_current_active_user
from models.appointment import AppointmentStatus
from models.user import User
from repositories.appointment import AppointmentRepository
from schemas.appointment import (
    AppointmentBook,
    AppointmentCreate,
    AppointmentRead,
    AppointmentsResponse,
    AppointmentStatusUpdate,
    FeatureFlagResponse,
)
from schemas.responses import StandardSuccessResponse
from services.appointments import AppointmentError, AppointmentService
from services.settings_service import APPOINTMENTS_ENABLED, is_enabled

logger = logging.getLogger(__name__)

router = APIRouter()
settings_router = APIRouter()


def _http_error(e: AppointmentError) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail=str(e))


@router.get("", response_model=AppointmentsResponse)
async def list_appointments(
    appointment_status: Optional[AppointmentStatus] = Query(default=None, alias="status"),
    start_date: Optional[datetime] = Query(default=None, alias="startDate"),
    end_date: Optional[datetime] = Query(default=None, alias="endDate"),
    doctor_id: Optional[int] = Query(default=None, alias="doctorId"),
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    """
    ``status=available`` lists open future slots for booking; anything else
    returns the caller's own appointments, as doctor or as patient.
    """
    repo = AppointmentRepository(db)
    if appointment_status == AppointmentStatus.AVAILABLE:
        after = max(as_utc(start_date), utcnow()) if start_date else utcnow()
        appointments = await repo.list_available(after=after, before=as_utc(end_date), doctor_id=doctor_id)
    else:
        appointments = await repo.list_for_user(
            current_user.id,
            status=appointment_status,
            start=as_utc(start_date),
            end=as_utc(end_date),
        )
    return AppointmentsResponse(appointments=appointments)


@router.post("", response_model=AppointmentRead, status_code=status.HTTP_201_CREATED)
async def create_appointment_slot(
    request: AppointmentCreate,
    doctor: User = Depends(require_doctor),
    db: AsyncSession = Depends(get_db),
):
    try:
        return await AppointmentService(db).create_slot(
            doctor,
            request.start_time,
            request.end_time,
            title=request.title,
            description=request.description,
            appointment_type=request.type,
        )
    except AppointmentError as e:
        raise _http_error(e)


@router.get("/{appointment_id}", response_model=AppointmentRead)
async def get_appointment(
    appointment_id: int,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    appointment = await AppointmentRepository(db).get(appointment_id)
    if not appointment:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Appuntamento non trovato")
    visible = (
        current_user.is_admin
        or current_user.id in (appointment.doctor_id, appointment.patient_id)
        or appointment.status == AppointmentStatus.AVAILABLE
    )
    if not visible:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Non autorizzato")
    return appointment


@router.post("/{appointment_id}/book", response_model=AppointmentRead)
async def book_appointment(
    appointment_id: int,
    request: AppointmentBook,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        return await AppointmentService(db).book(appointment_id, current_user, notes=request.notes)
    except AppointmentError as e:
        logger.warning(f"Booking of appointment {appointment_id} by user {current_user.id} failed: {e}")
        raise _http_error(e)


@router.put("/{appointment_id}/status", response_model=AppointmentRead)
async def update_appointment_status(
    appointment_id: int,
    request: AppointmentStatusUpdate,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        return await AppointmentService(db).change_status(
            appointment_id, current_user, request.status, reason=request.reason
        )
    except AppointmentError as e:
        raise _http_error(e)


@router.delete("/{appointment_id}", response_model=StandardSuccessResponse)
async def delete_appointment_slot(
    appointment_id: int,
    doctor: User = Depends(require_doctor),
    db: AsyncSession = Depends(get_db),
):
    try:
        await AppointmentService(db).delete_slot(appointment_id, doctor)
    except AppointmentError as e:
        raise _http_error(e)
    return StandardSuccessResponse(message="Slot eliminato")


@settings_router.get("/appointments-enabled", response_model=FeatureFlagResponse)
async def appointments_enabled(db: AsyncSession = Depends(get_db)):
    return FeatureFlagResponse(enabled=await is_enabled(db, APPOINTMENTS_ENABLED, default=True))
