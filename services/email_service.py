"""
Email service for sending emails using Mailgun API.
"""

import httpx
from typing import List, Optional, Dict, Union
from core.config import settings
from core.logging import get_logger


logger = get_logger(__name__)


class EmailError(Exception):
    pass


class EmailService:
    """Email service for sending emails via Mailgun."""

    def __init__(self):
        self.api_key = settings.MAILGUN_API_KEY
        self.api_url = settings.MAILGUN_API_URL
        self.from_email = settings.MAIL_FROM

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key and self.api_url)

    async def send_email_via_mailgun(
        self,
        to: List[str],
        subject: str,
        text: Optional[str] = None,
        html: Optional[str] = None,
        from_email: Optional[str] = None,
        attachments: Optional[List[Dict[str, Union[str, bytes]]]] = None,
    ) -> Dict[str, Union[str, int]]:
        """
        Send an email using Mailgun's API.

        ``attachments`` items carry ``file_name`` and ``file_data`` (bytes).
        """
        if not self.api_key:
            raise EmailError("Mailgun API key is not configured")
        if not self.api_url:
            raise EmailError("Mailgun API URL is not configured")

        data = {
            "from": from_email or self.from_email,
            "to": ", ".join(to),
            "subject": subject,
        }
        if text:
            data["text"] = text
        if html:
            data["html"] = html

        files = [
            ("attachment", (attachment["file_name"], attachment["file_data"]))
            for attachment in attachments or []
        ]

        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    self.api_url,
                    auth=("api", self.api_key),
                    data=data,
                    files=files or None,
                    timeout=30.0,
                )
                response.raise_for_status()
                result = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"Mailgun API error: {e.response.status_code} - {e.response.text}")
            raise EmailError(f"Failed to send email: {e.response.text}") from e
        except httpx.HTTPError as e:
            logger.error(f"Error sending email: {str(e)}")
            raise EmailError(f"Failed to send email: {str(e)}") from e

        logger.info(f"Email sent successfully to {to}. Message ID: {result.get('id', 'unknown')}")
        return result

    async def send_certificate_earned(
        self,
        recipient_email: str,
        recipient_name: str,
        quiz_title: str,
        score: int,
        verification_code: str,
        pdf_bytes: Optional[bytes] = None,
        pdf_filename: Optional[str] = None,
    ) -> Dict[str, Union[str, int]]:
        """Congratulate the user and attach the certificate PDF when available."""
        verify_link = f"{settings.FRONTEND_URL.rstrip('/')}/verify/{verification_code}"
        subject = f"🎓 Certificato ottenuto: {quiz_title}"
        text = (
            f"Ciao {recipient_name},\n\n"
            f"complimenti! Hai completato \"{quiz_title}\" con un punteggio del {score}%.\n"
            f"Codice di verifica: {verification_code}\n"
            f"Verifica il certificato: {verify_link}\n\n"
            "Il team CIRY"
        )
        html = f"""
        <!DOCTYPE html>
        <html>
        <head><meta charset="UTF-8"></head>
        <body style="font-family: Arial, sans-serif; color: #1f2937;">
            <div style="max-width: 600px; margin: 0 auto; padding: 24px;">
                <h1 style="color: #2563eb;">Complimenti, {recipient_name}!</h1>
                <p>Hai completato <strong>{quiz_title}</strong> con un punteggio del
                   <strong>{score}%</strong>.</p>
                <p>Il tuo certificato è allegato a questa email.</p>
                <p style="background: #f3f4f6; padding: 12px; border-radius: 6px;">
                    Codice di verifica: <strong>{verification_code}</strong><br>
                    <a href="{verify_link}">{verify_link}</a>
                </p>
                <p style="color: #6b7280; font-size: 12px;">Il team CIRY</p>
            </div>
        </body>
        </html>
        """

        attachments = None
        if pdf_bytes:
            attachments = [{"file_name": pdf_filename or "certificate.pdf", "file_data": pdf_bytes}]

        return await self.send_email_via_mailgun(
            to=[recipient_email],
            subject=subject,
            text=text,
            html=html,
            attachments=attachments,
        )


email_service = EmailService()
