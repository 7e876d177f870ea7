from datetime import datetime, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import require_admin
from core.database import get_db, utcnow, as_utc
from models.user import User
from repositories.wearable import BloodPressureRepository, WearableDeviceRepository
from schemas.wearable import AnomaliesResponse, WearableStats, WearableStatsResponse

router = APIRouter()

DEFAULT_STATS_WINDOW = timedelta(days=30)


@router.get("/wearable/anomalies", response_model=AnomaliesResponse)
async def list_all_anomalies(
    limit: int = Query(default=200, ge=1, le=1000),
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Anomalous readings across all users, newest first."""
    anomalies = await BloodPressureRepository(db).list_anomalies(limit=limit)
    return AnomaliesResponse(anomalies=anomalies, count=len(anomalies))


@router.get("/wearable/stats", response_model=WearableStatsResponse)
async def get_wearable_stats(
    start_date: Optional[datetime] = Query(default=None, alias="startDate"),
    end_date: Optional[datetime] = Query(default=None, alias="endDate"),
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    end = as_utc(end_date) or utcnow()
    start = as_utc(start_date) or end - DEFAULT_STATS_WINDOW

    stats = await BloodPressureRepository(db).get_stats(start, end)
    active_devices = await WearableDeviceRepository(db).count_active()

    return WearableStatsResponse(
        stats=WearableStats.model_validate(
            {**stats, "activeDevices": active_devices, "startDate": start, "endDate": end}
        )
    )
