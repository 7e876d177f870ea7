from celery import Celery
from core.config import settings
from celery.schedules import crontab

celery_app = Celery(
    settings.APP_NAME,
    broker=settings.broker_url,
    backend=settings.result_backend,
    include=[
        "tasks.wearable_tasks",
        "tasks.appointment_tasks",
        "tasks.certificate_tasks",
    ],
)

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    beat_schedule={
        "appointment-reminders-every-10-minutes": {
            "task": "send_appointment_reminders",
            "schedule": crontab(minute="*/10"),
        },
        "daily-wearable-reports": {
            "task": "generate_wearable_reports",
            "schedule": crontab(hour=2, minute=0),  # runs daily at 2 AM UTC
        },
    }
)

celery_app.conf.task_annotations = {
    "*": {"max_retries": 3, "default_retry_delay": 5}
}
