"""
Proactive alerts for anomalous vitals and critical triage alerts.

Vitals alerts go to the patient (WhatsApp when opted in and verified, Web
Push to every subscription) and are debounced per user and reading type.
Triage alerts go to the doctors linked to the patient.
"""

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.database import utcnow
from core.logging import get_logger
from core.redis import acquire_debounce, debounce_key
from models.notification import NotificationPriority, ProactiveChannel, ProactiveStatus
from models.triage import UrgencyLevel
from models.wearable import Severity
from repositories.notification import NotificationRepository, ProactiveNotificationRepository
from repositories.user import UserRepository
from services.helpers import to_local
from services.messaging_service import messaging_service
from services.push_service import push_service, build_payload

logger = get_logger(__name__)

BLOOD_PRESSURE = "blood_pressure"
ANOMALY_PUSH_TITLE = "⚠️ Alert Pressione Sanguigna"

TRIAGE_PUSH_URGENCIES = (UrgencyLevel.HIGH, UrgencyLevel.EMERGENCY)


@dataclass
class WearableAnomalyEvent:
    user_id: int
    reading_type: str
    severity: Severity
    analysis: str
    measurement_time: datetime
    systolic: Optional[int] = None
    diastolic: Optional[int] = None
    heart_rate: Optional[int] = None
    reading_id: Optional[int] = None

    def to_payload(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["severity"] = self.severity.value
        payload["measurement_time"] = self.measurement_time.isoformat()
        return payload

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "WearableAnomalyEvent":
        data = dict(payload)
        data["severity"] = Severity(data["severity"])
        data["measurement_time"] = datetime.fromisoformat(data["measurement_time"])
        return cls(**data)


@dataclass
class TriageAlertEvent:
    patient_id: int
    patient_name: str
    urgency_level: UrgencyLevel
    reason: str
    alert_id: int

    def to_payload(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["urgency_level"] = self.urgency_level.value
        return payload

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "TriageAlertEvent":
        data = dict(payload)
        data["urgency_level"] = UrgencyLevel(data["urgency_level"])
        return cls(**data)


def format_whatsapp_message(event: WearableAnomalyEvent) -> str:
    header = "🔴 ALERT IPERTENSIONE" if event.severity == Severity.HIGH else "⚠️ ALERT IPOTENSIONE"
    values = f"Pressione: {event.systolic}/{event.diastolic} mmHg"
    if event.heart_rate:
        values += f"\nBattiti: {event.heart_rate} bpm"

    timestamp = to_local(event.measurement_time).strftime("%d/%m/%y, %H:%M")
    return (
        f"{header}\n\n{values}\n\n{event.analysis}\n\nRilevato: {timestamp}\n\n"
        "Se i sintomi persistono, contatta il tuo medico tramite l'app CIRY."
    )


class WearableNotificationService:
    """Sends vitals and triage alerts over WhatsApp and Web Push."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.users = UserRepository(db)
        self.proactive = ProactiveNotificationRepository(db)
        self.notifications = NotificationRepository(db)

    async def send_anomaly_notification(self, event: WearableAnomalyEvent) -> bool:
        """Returns True when an alert went out."""
        if event.severity not in (Severity.HIGH, Severity.LOW):
            return False

        user = await self.users.get_user_by_id(event.user_id)
        if not user:
            logger.error("User not found for anomaly notification", user_id=event.user_id)
            return False

        key = debounce_key(event.user_id, event.reading_type)
        if not acquire_debounce(key, settings.NOTIFICATION_DEBOUNCE_MINUTES * 60):
            logger.info("Anomaly notification debounced", user_id=event.user_id, reading_type=event.reading_type)
            return False

        whatsapp_sent = False
        if user.can_receive_whatsapp:
            result = await messaging_service.send_whatsapp(user.whatsapp_number, format_whatsapp_message(event))
            whatsapp_sent = result.success
            if not result.success:
                logger.error("WhatsApp anomaly alert failed", user_id=user.id, error=result.error)

        title = ANOMALY_PUSH_TITLE
        payload = build_payload(
            title,
            event.analysis,
            url="/wearable",
            type="wearable_anomaly",
            severity=event.severity.value,
        )
        push_result = await push_service.send_to_users(self.db, [user.id], payload)

        await self.notifications.create_many(
            [user.id],
            title=title,
            message=event.analysis,
            type="wearable_anomaly",
            priority=NotificationPriority.HIGH,
            related_url="/wearable",
        )
        await self.proactive.create(
            user_id=user.id,
            trigger_type="blood_pressure_alert",
            channel=ProactiveChannel.WHATSAPP if user.whatsapp_notifications_enabled else ProactiveChannel.PUSH,
            status=ProactiveStatus.SENT if (whatsapp_sent or push_result.sent) else ProactiveStatus.FAILED,
            title=title,
            message=event.analysis,
            related_id=event.reading_id,
            sent_at=utcnow(),
        )

        logger.info(
            "Anomaly alert sent",
            user_id=user.id,
            severity=event.severity.value,
            whatsapp=whatsapp_sent,
            push_sent=push_result.sent,
        )
        return True

    async def send_triage_alert_notification(self, event: TriageAlertEvent) -> int:
        """Push a critical alert to every doctor linked to the patient; returns doctors notified."""
        if event.urgency_level not in TRIAGE_PUSH_URGENCIES:
            return 0

        doctor_ids = await self.users.get_doctor_ids_for_patient(event.patient_id)
        if not doctor_ids:
            logger.info("No doctors linked to patient", patient_id=event.patient_id)
            return 0

        urgency = event.urgency_level.value.upper()
        emoji = "🚨" if event.urgency_level == UrgencyLevel.EMERGENCY else "⚠️"
        title = f"{emoji} Alert {urgency} - {event.patient_name}"
        url = f"/doctor/alert/{event.alert_id}"
        payload = build_payload(
            title,
            event.reason,
            url=url,
            type="triage_alert",
            urgency=urgency,
            patientId=event.patient_id,
        )

        await push_service.send_to_users(self.db, doctor_ids, payload)
        await self.notifications.create_many(
            doctor_ids,
            title=title,
            message=event.reason,
            type="triage_alert",
            priority=NotificationPriority.URGENT if event.urgency_level == UrgencyLevel.EMERGENCY else NotificationPriority.HIGH,
            related_url=url,
        )

        logger.info("Triage alert sent to doctors", patient_id=event.patient_id, doctors=len(doctor_ids))
        return len(doctor_ids)
