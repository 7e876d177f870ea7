"""
Blood-pressure anomaly detection and summary statistics.
"""

import math
from dataclasses import dataclass, field
from typing import Iterable, List

from models.wearable import Severity

LOW_SYSTOLIC = 90
LOW_DIASTOLIC = 60
HIGH_SYSTOLIC = 140
HIGH_DIASTOLIC = 90
ELEVATED_SYSTOLIC = 130
ELEVATED_DIASTOLIC = 80
MAX_PULSE_PRESSURE = 60
MIN_PULSE_PRESSURE = 30

NOTIFY_SEVERITIES = (Severity.HIGH, Severity.LOW)


@dataclass
class AnomalyResult:
    is_anomalous: bool
    severity: Severity
    analysis: str
    issues: List[str] = field(default_factory=list)

    @property
    def recommendation(self) -> str:
        if not self.is_anomalous:
            return "Valori nella norma, continua il monitoraggio regolare"
        return "Consigliato controllo medico se i valori persistono"

    @property
    def should_notify(self) -> bool:
        return self.severity in NOTIFY_SEVERITIES


def detect_blood_pressure_anomaly(systolic: int, diastolic: int) -> AnomalyResult:
    """Classify a reading; the first matching band sets the severity."""
    issues = []
    severity = Severity.NORMAL

    if systolic < LOW_SYSTOLIC or diastolic < LOW_DIASTOLIC:
        issues.append(f"Pressione bassa rilevata ({systolic}/{diastolic} mmHg)")
        severity = Severity.LOW
    elif systolic >= HIGH_SYSTOLIC or diastolic >= HIGH_DIASTOLIC:
        issues.append(f"Ipertensione rilevata ({systolic}/{diastolic} mmHg)")
        severity = Severity.HIGH
    elif systolic >= ELEVATED_SYSTOLIC or diastolic >= ELEVATED_DIASTOLIC:
        issues.append(f"Pressione elevata ({systolic}/{diastolic} mmHg) - monitorare attentamente")
        severity = Severity.ELEVATED

    pulse_pressure = systolic - diastolic
    if pulse_pressure > MAX_PULSE_PRESSURE:
        issues.append(f"Pressione differenziale elevata ({pulse_pressure} mmHg)")
    elif pulse_pressure < MIN_PULSE_PRESSURE:
        issues.append(f"Pressione differenziale ridotta ({pulse_pressure} mmHg)")

    if issues:
        analysis = f"⚠️ Anomalia rilevata: {'. '.join(issues)}. Consigliato controllo medico se persistente."
    else:
        analysis = f"✓ Pressione nella norma ({systolic}/{diastolic} mmHg). Valori ottimali: <120/<80 mmHg."

    return AnomalyResult(is_anomalous=bool(issues), severity=severity, analysis=analysis, issues=issues)


def summarize_readings(readings: Iterable) -> dict:
    readings = list(readings)
    total = len(readings)
    if not total:
        return {"total": 0, "anomalous": 0, "averageSystolic": 0, "averageDiastolic": 0}

    return {
        "total": total,
        "anomalous": sum(1 for r in readings if r.is_anomalous),
        "averageSystolic": round_half_up(sum(r.systolic for r in readings) / total),
        "averageDiastolic": round_half_up(sum(r.diastolic for r in readings) / total),
    }


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))
