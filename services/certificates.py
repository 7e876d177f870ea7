"""
Certificate issuance helpers shared by the API and the e-mail task.
"""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from core.logging import get_logger
from models.certificate import UserCertificate
from models.user import User
from repositories.certificate import CertificateRepository
from services.certificate_pdf import CertificateContent, certificate_filename, render_certificate
from services.email_service import email_service

logger = get_logger(__name__)

MIN_CERTIFICATE_SCORE = 70


def build_content(certificate: UserCertificate, user: User) -> CertificateContent:
    name = f"{user.first_name} {user.last_name}" if user.first_name and user.last_name else user.email
    return CertificateContent(
        recipient_name=name,
        quiz_title=certificate.title,
        score=certificate.score,
        verification_code=certificate.verification_code,
        issued_at=certificate.issued_at,
        user_id=user.id,
    )


def render_for(certificate: UserCertificate, user: User) -> tuple[bytes, str]:
    """PDF bytes and download filename."""
    return render_certificate(build_content(certificate, user)), certificate_filename(certificate.title, user.id)


async def send_certificate_email(db: AsyncSession, certificate_id: int) -> bool:
    certificate: Optional[UserCertificate] = await CertificateRepository(db).get(certificate_id)
    if not certificate:
        logger.warning("Certificate not found for e-mail", certificate_id=certificate_id)
        return False

    user = await db.get(User, certificate.user_id)
    if not user or not user.email:
        return False
    if not email_service.is_configured:
        logger.info("Mailgun not configured, skipping certificate e-mail", certificate_id=certificate_id)
        return False

    pdf_bytes, filename = render_for(certificate, user)
    await email_service.send_certificate_earned(
        recipient_email=user.email,
        recipient_name=user.full_name,
        quiz_title=certificate.title,
        score=certificate.score,
        verification_code=certificate.verification_code,
        pdf_bytes=pdf_bytes,
        pdf_filename=filename,
    )
    logger.info("Certificate e-mail sent", certificate_id=certificate_id, user_id=user.id)
    return True
