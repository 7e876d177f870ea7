import logging

from celery_app import celery_app
from services.certificates import send_certificate_email as send_certificate_email_job
from tasks.utils import run_with_session

logger = logging.getLogger(__name__)


@celery_app.task(name="send_certificate_email", max_retries=0)
def send_certificate_email(certificate_id):
    try:
        return run_with_session(send_certificate_email_job, certificate_id)
    except Exception as e:
        logger.error(f"error in send_certificate_email task for certificate {certificate_id}: {e}")
        return False
