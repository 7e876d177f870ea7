import logging

from celery_app import celery_app
from services.wearable_notifications import (
    WearableNotificationService,
    WearableAnomalyEvent,
    TriageAlertEvent,
)
from services.wearable_reports import generate_daily_reports
from tasks.utils import run_with_session

logger = logging.getLogger(__name__)


async def _notify_anomaly(db, payload):
    event = WearableAnomalyEvent.from_payload(payload)
    return await WearableNotificationService(db).send_anomaly_notification(event)


async def _notify_triage_alert(db, payload):
    event = TriageAlertEvent.from_payload(payload)
    return await WearableNotificationService(db).send_triage_alert_notification(event)


@celery_app.task(name="notify_wearable_anomaly", max_retries=0)
def notify_anomaly(payload):
    try:
        return run_with_session(_notify_anomaly, payload)
    except Exception as e:
        logger.error(f"error in notify_wearable_anomaly task for user {payload.get('user_id')}: {e}")
        return False


@celery_app.task(name="notify_triage_alert", max_retries=0)
def notify_triage_alert(payload):
    try:
        return run_with_session(_notify_triage_alert, payload)
    except Exception as e:
        logger.error(f"error in notify_triage_alert task for alert {payload.get('alert_id')}: {e}")
        return 0


@celery_app.task(name="generate_wearable_reports")
def generate_wearable_reports():
    generated = run_with_session(generate_daily_reports)
    logger.info(f"Generated {generated} wearable reports")
    return generated
