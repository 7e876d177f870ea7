import logging
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import select, func, distinct
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import utcnow
from models.wearable import WearableDevice, BloodPressureReading, WearableDailyReport, Severity
from repositories.base import BaseRepository

logger = logging.getLogger(__name__)


class WearableDeviceRepository(BaseRepository[WearableDevice, None, None]):
    def __init__(self, db_session: AsyncSession):
        super().__init__(WearableDevice, db_session)

    async def list_for_user(self, user_id: int) -> List[WearableDevice]:
        result = await self.db.execute(
            select(WearableDevice)
            .where(WearableDevice.user_id == user_id)
            .order_by(WearableDevice.created_at.desc())
        )
        return list(result.scalars().all())

    async def touch_last_sync(self, device: WearableDevice) -> None:
        device.last_sync_at = utcnow()
        await self.db.commit()

    async def get_user_ids_with_active_devices(self) -> List[int]:
        result = await self.db.execute(
            select(distinct(WearableDevice.user_id)).where(WearableDevice.is_active.is_(True))
        )
        return list(result.scalars().all())

    async def count_active(self) -> int:
        result = await self.db.execute(
            select(func.count()).select_from(WearableDevice).where(WearableDevice.is_active.is_(True))
        )
        return result.scalar_one()


class BloodPressureRepository:
    def __init__(self, db_session: AsyncSession):
        self.db_session = db_session

    async def create(self, **fields) -> BloodPressureReading:
        reading = BloodPressureReading(**fields)
        try:
            self.db_session.add(reading)
            await self.db_session.commit()
            await self.db_session.refresh(reading)
        except Exception as e:
            await self.db_session.rollback()
            logger.error(f"Error saving blood pressure reading for user {fields.get('user_id')}: {e}")
            raise
        return reading

    async def get(self, reading_id: int) -> Optional[BloodPressureReading]:
        return await self.db_session.get(BloodPressureReading, reading_id)

    async def list_for_user(
        self,
        user_id: int,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: int = 500,
    ) -> List[BloodPressureReading]:
        query = select(BloodPressureReading).where(BloodPressureReading.user_id == user_id)
        if start:
            query = query.where(BloodPressureReading.measurement_time >= start)
        if end:
            query = query.where(BloodPressureReading.measurement_time <= end)
        query = query.order_by(BloodPressureReading.measurement_time.desc()).limit(limit)
        result = await self.db_session.execute(query)
        return list(result.scalars().all())

    async def list_anomalies(self, user_id: Optional[int] = None, limit: int = 200) -> List[BloodPressureReading]:
        query = select(BloodPressureReading).where(BloodPressureReading.is_anomalous.is_(True))
        if user_id is not None:
            query = query.where(BloodPressureReading.user_id == user_id)
        query = query.order_by(BloodPressureReading.measurement_time.desc()).limit(limit)
        result = await self.db_session.execute(query)
        return list(result.scalars().all())

    async def get_stats(self, start: datetime, end: datetime) -> Dict:
        period = (
            BloodPressureReading.measurement_time >= start,
            BloodPressureReading.measurement_time <= end,
        )
        totals = await self.db_session.execute(
            select(
                func.count(BloodPressureReading.id),
                func.count(distinct(BloodPressureReading.user_id)),
            ).where(*period)
        )
        total_readings, distinct_users = totals.one()

        by_severity = await self.db_session.execute(
            select(BloodPressureReading.severity, func.count(BloodPressureReading.id))
            .where(*period)
            .group_by(BloodPressureReading.severity)
        )
        severity_breakdown = {severity.value: 0 for severity in Severity}
        for severity, count in by_severity.all():
            severity_breakdown[Severity(severity).value] = count

        anomalous = await self.db_session.execute(
            select(func.count(BloodPressureReading.id)).where(
                *period, BloodPressureReading.is_anomalous.is_(True)
            )
        )
        total_anomalies = anomalous.scalar_one()

        return {
            "totalReadings": total_readings,
            "totalAnomalies": total_anomalies,
            "anomalyRate": round(total_anomalies / total_readings * 100, 1) if total_readings else 0.0,
            "distinctUsers": distinct_users,
            "severityBreakdown": severity_breakdown,
        }


class WearableReportRepository:
    def __init__(self, db_session: AsyncSession):
        self.db_session = db_session

    async def create(self, **fields) -> WearableDailyReport:
        report = WearableDailyReport(**fields)
        try:
            self.db_session.add(report)
            await self.db_session.commit()
            await self.db_session.refresh(report)
        except Exception as e:
            await self.db_session.rollback()
            logger.error(f"Error saving wearable report for user {fields.get('user_id')}: {e}")
            raise
        return report

    async def latest_for_user(self, user_id: int) -> Optional[WearableDailyReport]:
        result = await self.db_session.execute(
            select(WearableDailyReport)
            .where(WearableDailyReport.user_id == user_id)
            .order_by(WearableDailyReport.report_date.desc(), WearableDailyReport.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()
