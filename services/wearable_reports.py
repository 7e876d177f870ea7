"""
Daily wearable reports.

Every run summarises the last week of blood-pressure readings for each user
with an active device and stores the summary plus a plain-text context block
that the AI assistant reads when the patient or doctor asks about vitals.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.database import utcnow
from core.logging import get_logger
from models.wearable import BloodPressureReading
from repositories.wearable import BloodPressureRepository, WearableDeviceRepository, WearableReportRepository
from services.blood_pressure import round_half_up
from services.helpers import to_local, format_date_it

logger = get_logger(__name__)

MAX_ANOMALY_DETAILS = 5


@dataclass
class ReportStats:
    total_readings: int
    avg_systolic: int
    avg_diastolic: int
    avg_heart_rate: int
    anomaly_count: int

    @property
    def anomaly_percentage(self) -> int:
        return round_half_up(self.anomaly_count / self.total_readings * 100) if self.total_readings else 0


def compute_stats(readings: Sequence[BloodPressureReading]) -> ReportStats:
    total = len(readings)
    heart_rates = [r.heart_rate for r in readings if r.heart_rate]
    return ReportStats(
        total_readings=total,
        avg_systolic=round_half_up(sum(r.systolic for r in readings) / total) if total else 0,
        avg_diastolic=round_half_up(sum(r.diastolic for r in readings) / total) if total else 0,
        avg_heart_rate=round_half_up(sum(heart_rates) / len(heart_rates)) if heart_rates else 0,
        anomaly_count=sum(1 for r in readings if r.is_anomalous),
    )


def trend_warnings(stats: ReportStats) -> List[str]:
    warnings = []
    if stats.anomaly_count > stats.total_readings * 0.3:
        warnings.append("⚠️ ATTENZIONE: Più del 30% delle misurazioni sono anomale. Consigliato controllo medico.")
    if stats.avg_systolic >= 140 or stats.avg_diastolic >= 90:
        warnings.append("⚠️ Pressione media elevata - possibile ipertensione. Monitoraggio continuo raccomandato.")
    if stats.avg_systolic < 90 or stats.avg_diastolic < 60:
        warnings.append("⚠️ Pressione media bassa - possibile ipotensione. Verificare con medico.")
    if stats.avg_heart_rate and stats.avg_heart_rate > 100:
        warnings.append("⚠️ Frequenza cardiaca media elevata (tachicardia). Valutare cause (stress, caffè, attività fisica).")
    if stats.avg_heart_rate and stats.avg_heart_rate < 50:
        warnings.append("⚠️ Frequenza cardiaca media bassa (bradicardia). Consultare cardiologo se sintomatico.")
    if stats.anomaly_count == 0 and stats.avg_systolic < 130 and stats.avg_diastolic < 80:
        warnings.append("✓ Parametri nella norma. Continuare monitoraggio preventivo.")
    return warnings


def _anomaly_line(reading: BloodPressureReading) -> str:
    when = to_local(reading.measurement_time).strftime("%d/%m/%Y, %H:%M:%S")
    pulse = f", {reading.heart_rate} bpm" if reading.heart_rate else ""
    return f"- {when}: {reading.systolic}/{reading.diastolic} mmHg{pulse} - {reading.ai_analysis or 'Nessuna analisi'}"


def build_ai_context(
    user_id: int,
    readings: Sequence[BloodPressureReading],
    stats: ReportStats,
    start: datetime,
    end: datetime,
) -> str:
    anomalies = [r for r in readings if r.is_anomalous]
    if anomalies:
        details = [_anomaly_line(r) for r in anomalies[:MAX_ANOMALY_DETAILS]]
        if len(anomalies) > MAX_ANOMALY_DETAILS:
            details.append(f"... e altre {len(anomalies) - MAX_ANOMALY_DETAILS} anomalie")
    else:
        details = ["- Nessuna anomalia rilevata"]

    lines = [
        "=== REPORT AUTOMATICO DISPOSITIVI WEARABLE ===",
        f"Periodo: {format_date_it(start)} - {format_date_it(end)}",
        f"Paziente ID: {user_id}",
        "Generato automaticamente dal sistema",
        "",
        f"STATISTICHE AGGREGATE (ultimi {settings.WEARABLE_REPORT_WINDOW_DAYS} giorni):",
        f"- Misurazioni totali: {stats.total_readings}",
        f"- Pressione media: {stats.avg_systolic}/{stats.avg_diastolic} mmHg",
        f"- Battiti cardiaci medi: {stats.avg_heart_rate or '--'} bpm",
        f"- Anomalie rilevate: {stats.anomaly_count} ({stats.anomaly_percentage}%)",
        "",
        "DETTAGLIO ANOMALIE:",
        *details,
        "",
        "TREND E RACCOMANDAZIONI:",
        *trend_warnings(stats),
    ]
    return "\n".join(lines).strip()


async def generate_daily_reports(db: AsyncSession, now: datetime = None) -> int:
    """Generate one report per user with an active device; returns reports created."""
    end = now or utcnow()
    start = end - timedelta(days=settings.WEARABLE_REPORT_WINDOW_DAYS)

    user_ids = await WearableDeviceRepository(db).get_user_ids_with_active_devices()
    logger.info("Generating wearable daily reports", users=len(user_ids))

    readings_repo = BloodPressureRepository(db)
    reports_repo = WearableReportRepository(db)
    generated = skipped = 0

    for user_id in user_ids:
        try:
            readings = await readings_repo.list_for_user(user_id, start=start, end=end, limit=10000)
            if not readings:
                skipped += 1
                continue

            stats = compute_stats(readings)
            await reports_repo.create(
                user_id=user_id,
                report_date=end,
                period_start=start,
                period_end=end,
                total_readings=stats.total_readings,
                avg_systolic=stats.avg_systolic,
                avg_diastolic=stats.avg_diastolic,
                avg_heart_rate=stats.avg_heart_rate or None,
                anomaly_count=stats.anomaly_count,
                anomaly_percentage=stats.anomaly_percentage,
                report_data={
                    "readings": [
                        {
                            "time": r.measurement_time.isoformat(),
                            "systolic": r.systolic,
                            "diastolic": r.diastolic,
                            "heartRate": r.heart_rate,
                            "isAnomalous": r.is_anomalous,
                        }
                        for r in readings
                    ],
                },
                ai_context_text=build_ai_context(user_id, readings, stats, start, end),
            )
            generated += 1
        except Exception:
            logger.exception("Failed to generate wearable report", user_id=user_id)

    logger.info("Wearable daily reports completed", generated=generated, skipped=skipped)
    return generated
