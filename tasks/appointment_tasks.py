import logging

from celery_app import celery_app
from services.appointment_reminders import send_pending_reminders
from tasks.utils import run_with_session

logger = logging.getLogger(__name__)


@celery_app.task(name="send_appointment_reminders")
def send_appointment_reminders():
    result = run_with_session(send_pending_reminders)
    if result["success"]:
        logger.info(f"Appointment reminders: {result['remindersSent']} sent")
    else:
        logger.error(
            f"Appointment reminders completed with errors: {result['remindersSent']} sent, "
            f"{len(result['errors'])} failed"
        )
    return result
