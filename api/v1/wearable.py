"""
Wearable API endpoints.

Device registry and blood-pressure readings, entered manually or decoded from
the cuff's Bluetooth notification.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_db, utcnow, as_utc
from core.security import get_current_active_user
from models.user import User
from models.wearable import ReadingSource
from repositories.wearable import WearableDeviceRepository, BloodPressureRepository
from schemas.responses import StandardSuccessResponse
from schemas.wearable import (
    AnalysedReading,
    AnomaliesResponse,
    BloodPressureHistoryResponse,
    BloodPressureReadingCreate,
    BloodPressureReadingRead,
    BloodPressureSubmitResponse,
    DeviceCreate,
    DeviceResponse,
    DevicesResponse,
    DeviceUpdate,
    RawBloodPressurePayload,
    ReadingStats,
)
from services.blood_pressure import detect_blood_pressure_anomaly, summarize_readings
from services.bluetooth_parser import BloodPressureParseError, parse_blood_pressure_measurement
from services.wearable_notifications import BLOOD_PRESSURE, WearableAnomalyEvent
from tasks.utils import enqueue
from tasks.wearable_tasks import notify_anomaly

logger = logging.getLogger(__name__)

router = APIRouter()


async def _get_owned_device(repo: WearableDeviceRepository, device_id: int, user: User):
    device = await repo.get(device_id)
    if not device:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Dispositivo non trovato")
    if device.user_id != user.id and not user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Non autorizzato")
    return device


async def save_blood_pressure_reading(
    db: AsyncSession,
    user: User,
    fields: Dict[str, Any],
    source: ReadingSource,
) -> BloodPressureSubmitResponse:
    """Shared pipeline for manual and Bluetooth readings."""
    device_id: Optional[int] = fields.get("device_id")
    if device_id:
        device_repo = WearableDeviceRepository(db)
        device = await device_repo.get(device_id)
        if not device:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Dispositivo non trovato")
        if device.user_id != user.id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Non autorizzato: dispositivo non appartiene all'utente",
            )
        await device_repo.touch_last_sync(device)

    result = detect_blood_pressure_anomaly(fields["systolic"], fields["diastolic"])

    reading = await BloodPressureRepository(db).create(
        user_id=user.id,
        device_id=device_id,
        systolic=fields["systolic"],
        diastolic=fields["diastolic"],
        heart_rate=fields.get("heart_rate"),
        mean_arterial_pressure=fields.get("mean_arterial_pressure"),
        measurement_time=fields["measurement_time"],
        notes=fields.get("notes"),
        source=source,
        is_anomalous=result.is_anomalous,
        severity=result.severity,
        issues=result.issues,
        ai_analysis=result.analysis,
    )
    logger.info(
        f"Saved blood pressure reading {reading.id} for user {user.id} "
        f"({reading.systolic}/{reading.diastolic}, severity={result.severity.value})"
    )

    if result.should_notify:
        event = WearableAnomalyEvent(
            user_id=user.id,
            reading_type=BLOOD_PRESSURE,
            severity=result.severity,
            analysis=result.analysis,
            measurement_time=fields["measurement_time"],
            systolic=reading.systolic,
            diastolic=reading.diastolic,
            heart_rate=reading.heart_rate,
            reading_id=reading.id,
        )
        enqueue(notify_anomaly, event.to_payload())

    analysed = AnalysedReading(
        **BloodPressureReadingRead.model_validate(reading).model_dump(),
        recommendation=result.recommendation,
    )
    return BloodPressureSubmitResponse(
        reading=analysed,
        message="Misurazione salvata - Anomalia rilevata" if result.is_anomalous else "Misurazione salvata con successo",
    )


# Devices

@router.get("/devices", response_model=DevicesResponse)
async def list_devices(
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    devices = await WearableDeviceRepository(db).list_for_user(current_user.id)
    return DevicesResponse(devices=devices)


@router.post("/devices", response_model=DeviceResponse, status_code=status.HTTP_201_CREATED)
async def register_device(
    request: DeviceCreate,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    """Register a wearable device for the current user."""
    data = request.model_dump()
    data["user_id"] = current_user.id
    device = await WearableDeviceRepository(db).create(data)
    logger.info(f"User {current_user.id} registered {device.device_type.value} device {device.id}")
    return DeviceResponse(device=device, message="Dispositivo registrato con successo")


@router.patch("/devices/{device_id}", response_model=DeviceResponse)
async def update_device(
    device_id: int,
    request: DeviceUpdate,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    repo = WearableDeviceRepository(db)
    device = await _get_owned_device(repo, device_id, current_user)
    device = await repo.update(device, request)
    return DeviceResponse(device=device, message="Dispositivo aggiornato con successo")


@router.delete("/devices/{device_id}", response_model=StandardSuccessResponse)
async def delete_device(
    device_id: int,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    repo = WearableDeviceRepository(db)
    await _get_owned_device(repo, device_id, current_user)
    await repo.delete(device_id)
    return StandardSuccessResponse(message="Dispositivo eliminato con successo")


# Blood pressure

@router.post(
    "/blood-pressure",
    response_model=BloodPressureSubmitResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit a blood pressure reading",
)
async def submit_blood_pressure(
    request: BloodPressureReadingCreate,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    return await save_blood_pressure_reading(db, current_user, request.model_dump(), ReadingSource.MANUAL)


@router.post(
    "/blood-pressure/raw",
    response_model=BloodPressureSubmitResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit a raw 0x2A35 Bluetooth notification",
)
async def submit_raw_blood_pressure(
    request: RawBloodPressurePayload,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Decode the Blood Pressure Measurement characteristic server-side and store
    it like a manual reading. Decoding errors come back as 400 with a message
    the app shows as-is.
    """
    try:
        data = request.decode()
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    try:
        measurement = parse_blood_pressure_measurement(data, now=utcnow())
        # Range checks match the manual entry form
        validated = BloodPressureReadingCreate(
            systolic=measurement.systolic,
            diastolic=measurement.diastolic,
            heart_rate=measurement.heart_rate,
            measurement_time=measurement.measurement_time,
            device_id=request.device_id,
            notes=request.notes,
        )
    except BloodPressureParseError as e:
        logger.warning(f"Rejected Bluetooth payload from user {current_user.id}: {e}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except ValueError as e:
        logger.warning(f"Invalid Bluetooth payload from user {current_user.id}: {e}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Valori misurati fuori intervallo")

    fields = validated.model_dump()
    fields["mean_arterial_pressure"] = measurement.mean_arterial_pressure
    return await save_blood_pressure_reading(db, current_user, fields, ReadingSource.BLUETOOTH)


@router.get("/blood-pressure", response_model=BloodPressureHistoryResponse)
async def get_blood_pressure_history(
    start_date: Optional[datetime] = Query(default=None, alias="startDate"),
    end_date: Optional[datetime] = Query(default=None, alias="endDate"),
    limit: int = Query(default=500, ge=1, le=1000),
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    readings = await BloodPressureRepository(db).list_for_user(
        current_user.id, start=as_utc(start_date), end=as_utc(end_date), limit=limit
    )
    return BloodPressureHistoryResponse(
        readings=readings,
        stats=ReadingStats.model_validate(summarize_readings(readings)),
    )


@router.get("/blood-pressure/anomalies", response_model=AnomaliesResponse)
async def get_blood_pressure_anomalies(
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
):
    anomalies = await BloodPressureRepository(db).list_anomalies(user_id=current_user.id)
    return AnomaliesResponse(anomalies=anomalies, count=len(anomalies))
