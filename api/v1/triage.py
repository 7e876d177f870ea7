"""
Prevention / triage chat endpoints.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import require_admin
from core.database import get_db
from core.security import get_current_active_user
from models.triage import AlertStatus
from models.user import User
from repositories.triage import TriageRepository
from repositories.user import UserRepository
from schemas.triage import (
    ActiveSessionResponse,
    AlertResolveRequest,
    AlertsResponse,
    TriageAlertRead,
    TriageMessageRead,
    TriageMessageRequest,
    TriageSessionRead,
    TriageStartRequest,
    TriageTurnResponse,
)
from services.triage_service import (
    TriageService,
    TriageServiceError,
    TriageSessionError,
    TriageTurn,
)
from tasks.utils import enqueue
from tasks.wearable_tasks import notify_triage_alert

logger = logging.getLogger(__name__)

router = APIRouter()
user_router = APIRouter()


def _turn_response(turn: TriageTurn) -> TriageTurnResponse:
    if turn.alert_event:
        enqueue(notify_triage_alert, turn.alert_event.to_payload())
    return TriageTurnResponse(
        session=turn.session,
        messages=turn.messages,
        urgency_level=turn.session.urgency_level,
        suggest_doctor=turn.response.suggest_doctor,
        is_sensitive=turn.response.is_sensitive,
        related_topics=turn.response.related_topics,
        needs_report_upload=turn.response.needs_report_upload,
        alert=turn.alert,
    )


@router.post("/start", response_model=TriageTurnResponse, status_code=status.HTTP_201_CREATED)
async def start_triage(
    request: TriageStartRequest,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    """Open a new session (closing any active one) and answer the first symptom."""
    try:
        turn = await TriageService(db).start(current_user, request.initial_symptom)
    except TriageServiceError as e:
        logger.error(f"Triage start failed for user {current_user.id}: {e}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Assistente non disponibile, riprova più tardi")
    return _turn_response(turn)


@router.get("/session/active", response_model=ActiveSessionResponse)
async def get_active_session(
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    repo = TriageRepository(db)
    session = await repo.get_active_session(current_user.id)
    if not session:
        return ActiveSessionResponse()
    return ActiveSessionResponse(session=session, messages=await repo.list_messages(session.id))


@router.post("/message", response_model=TriageTurnResponse)
async def send_triage_message(
    request: TriageMessageRequest,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    service = TriageService(db)
    try:
        session = await service.get_owned_session(request.session_id, current_user)
        turn = await service.send_message(session, current_user, request.content)
    except TriageSessionError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    except TriageServiceError as e:
        logger.error(f"Triage reply failed for session {request.session_id}: {e}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Assistente non disponibile, riprova più tardi")
    return _turn_response(turn)


@router.get("/messages/{session_id}", response_model=list[TriageMessageRead])
async def get_triage_messages(
    session_id: int,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    service = TriageService(db)
    try:
        session = await service.get_owned_session(session_id, current_user)
    except TriageSessionError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    return await service.repo.list_messages(session.id)


@router.post("/session/{session_id}/close", response_model=TriageSessionRead)
async def close_triage_session(
    session_id: int,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    service = TriageService(db)
    try:
        session = await service.get_owned_session(session_id, current_user)
    except TriageSessionError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    return await service.close(session)


@router.get("/alerts", response_model=AlertsResponse)
async def list_alerts(
    alert_status: Optional[AlertStatus] = Query(default=None, alias="status"),
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return AlertsResponse(alerts=await TriageRepository(db).list_alerts(status=alert_status))


@router.post("/alerts/{alert_id}/resolve", response_model=TriageAlertRead)
async def resolve_alert(
    alert_id: int,
    request: AlertResolveRequest,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    """Admins and the patient's linked doctors can review an alert."""
    service = TriageService(db)
    alert = await service.repo.get_alert(alert_id)
    if not alert:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Alert non trovato")

    if not current_user.is_admin:
        linked = current_user.is_doctor and await UserRepository(db).is_linked(current_user.id, alert.user_id)
        if not linked:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Non autorizzato")

    return await service.resolve_alert(alert, current_user, status=request.status, notes=request.notes)


@user_router.get("/alerts", response_model=AlertsResponse)
async def list_my_alerts(
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    return AlertsResponse(alerts=await TriageRepository(db).list_alerts_for_user(current_user.id))
