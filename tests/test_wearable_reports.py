from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

from models.wearable import BloodPressureReading, DeviceType, ReadingSource, Severity, WearableDevice
from repositories.wearable import WearableReportRepository
from services.wearable_reports import build_ai_context, compute_stats, generate_daily_reports, trend_warnings

NOW = datetime(2025, 3, 8, 6, 0, tzinfo=timezone.utc)


def fake_reading(systolic, diastolic, heart_rate=None, anomalous=False):
    return SimpleNamespace(
        systolic=systolic,
        diastolic=diastolic,
        heart_rate=heart_rate,
        is_anomalous=anomalous,
        measurement_time=NOW,
        ai_analysis="Pressione alta" if anomalous else None,
    )


def test_compute_stats_ignores_missing_heart_rate():
    stats = compute_stats([fake_reading(120, 80, 60), fake_reading(131, 85), fake_reading(150, 95, 71, True)])
    assert stats.total_readings == 3
    assert (stats.avg_systolic, stats.avg_diastolic) == (134, 87)
    assert stats.avg_heart_rate == 66
    assert stats.anomaly_count == 1
    assert stats.anomaly_percentage == 33


def test_healthy_trend():
    stats = compute_stats([fake_reading(118, 76, 64)])
    assert trend_warnings(stats) == ["✓ Parametri nella norma. Continuare monitoraggio preventivo."]


def test_hypertension_trend():
    stats = compute_stats([fake_reading(150, 95, 105, True), fake_reading(145, 92, 101, True)])
    warnings = trend_warnings(stats)
    assert any("30%" in w for w in warnings)
    assert any("ipertensione" in w for w in warnings)
    assert any("tachicardia" in w for w in warnings)


def test_ai_context_truncates_anomalies():
    readings = [fake_reading(150, 95, anomalous=True) for _ in range(7)]
    text = build_ai_context(9, readings, compute_stats(readings), NOW - timedelta(days=7), NOW)
    assert text.startswith("=== REPORT AUTOMATICO DISPOSITIVI WEARABLE ===")
    assert "Paziente ID: 9" in text
    assert "Periodo: 01/03/2025 - 08/03/2025" in text
    assert "... e altre 2 anomalie" in text
    assert "Battiti cardiaci medi: -- bpm" in text


async def test_generate_daily_reports(db, make_user):
    with_readings = await make_user()
    without_readings = await make_user()
    for user in (with_readings, without_readings):
        db.add(WearableDevice(user_id=user.id, device_type=DeviceType.BLOOD_PRESSURE))

    for days_ago, systolic, anomalous in ((1, 120, False), (2, 150, True), (10, 200, True)):
        db.add(
            BloodPressureReading(
                user_id=with_readings.id,
                systolic=systolic,
                diastolic=80,
                measurement_time=NOW - timedelta(days=days_ago),
                source=ReadingSource.MANUAL,
                is_anomalous=anomalous,
                severity=Severity.HIGH if anomalous else Severity.NORMAL,
                issues=[],
            )
        )
    await db.commit()

    assert await generate_daily_reports(db, now=NOW) == 1

    report = await WearableReportRepository(db).latest_for_user(with_readings.id)
    assert report.total_readings == 2
    assert report.avg_systolic == 135
    assert report.anomaly_count == 1
    assert report.anomaly_percentage == 50
    assert len(report.report_data["readings"]) == 2
    assert "Anomalie rilevate: 1 (50%)" in report.ai_context_text
    assert await WearableReportRepository(db).latest_for_user(without_readings.id) is None
