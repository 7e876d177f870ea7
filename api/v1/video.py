"""
Video consultation endpoints.

Handles access tokens for appointment rooms and the Twilio room status
callback that keeps the room registry in sync.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.database import get_db
from core.security import get_current_active_user
from models.appointment import Appointment, AppointmentStatus
from models.user import User
from repositories.appointment import AppointmentRepository
from schemas.video import RoomSnapshot, VideoTokenRequest, VideoTokenResponse
from services.appointments import AppointmentService, appointment_id_from_room, is_participant
from services.video_rooms import ROOM_ENDED, room_registry, validate_twilio_signature
from services.video_service import VideoNotConfiguredError, video_service

logger = logging.getLogger(__name__)

router = APIRouter()

JOINABLE_STATUSES = (AppointmentStatus.BOOKED, AppointmentStatus.CONFIRMED)


async def _authorised_appointment(db: AsyncSession, room_name: str, user: User) -> Appointment:
    appointment_id = appointment_id_from_room(room_name)
    appointment = await AppointmentRepository(db).get(appointment_id) if appointment_id else None
    if not appointment:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Stanza video non trovata")
    if not (user.is_admin or is_participant(appointment, user)):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Non autorizzato per questa stanza")
    return appointment


@router.post("/token", response_model=VideoTokenResponse)
async def create_video_token(
    request: VideoTokenRequest,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    appointment = await _authorised_appointment(db, request.room_name, current_user)
    if appointment.status not in JOINABLE_STATUSES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="L'appuntamento non è attivo",
        )

    try:
        token = video_service.create_token(current_user.id, request.room_name)
    except VideoNotConfiguredError as e:
        logger.error("Video token requested but Twilio API keys are not configured")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))

    return VideoTokenResponse(
        token=token.token,
        room_name=token.room_name,
        identity=token.identity,
        expires_in=token.expires_in,
    )


@router.post("/events")
async def video_status_callback(request: Request, db: AsyncSession = Depends(get_db)):
    """
    Twilio room status callback.

    Twilio sends form-encoded data signed with X-Twilio-Signature.
    """
    form = await request.form()
    params = {key: value for key, value in form.items()}

    url = settings.TWILIO_STATUS_CALLBACK_URL or str(request.url)
    if not validate_twilio_signature(url, params, request.headers.get("X-Twilio-Signature")):
        logger.warning(f"Rejected video callback with invalid signature for room {params.get('RoomName')}")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid signature")

    event = params.get("StatusCallbackEvent", "")
    room_name = params.get("RoomName", "")
    if not room_name:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="RoomName required")

    applied = room_registry.apply_event(
        event,
        room_name,
        identity=params.get("ParticipantIdentity"),
        track_sid=params.get("TrackSid"),
        track_kind=params.get("TrackKind"),
    )
    logger.info(f"Video event {event} for room {room_name} (applied={applied})")

    if event == ROOM_ENDED:
        await AppointmentService(db).complete_from_room(room_name)

    return {"status": "received", "applied": applied}


@router.get("/rooms/{room_name}", response_model=RoomSnapshot)
async def get_room(
    room_name: str,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    await _authorised_appointment(db, room_name, current_user)
    room = room_registry.get(room_name)
    if not room:
        return RoomSnapshot(room_name=room_name)
    return RoomSnapshot.model_validate(room.snapshot())
