"""
WhatsApp delivery over Twilio.

Uses the Twilio REST client.
"""

from dataclasses import dataclass
from typing import Optional
from twilio.rest import Client
from twilio.base.exceptions import TwilioException
from core.config import settings
from core.logging import get_logger

logger = get_logger(__name__)


@dataclass
class MessageResult:
    success: bool
    sid: Optional[str] = None
    error: Optional[str] = None


def _whatsapp_address(number: str) -> str:
    return number if number.startswith("whatsapp:") else f"whatsapp:{number}"


class MessagingService:
    """Twilio wrapper for WhatsApp text messages."""

    def __init__(self):
        self.account_sid = settings.TWILIO_ACCOUNT_SID
        self.auth_token = settings.TWILIO_AUTH_TOKEN
        self.whatsapp_from = settings.TWILIO_WHATSAPP_FROM_NUMBER or settings.TWILIO_PHONE_NUMBER

        if all([self.account_sid, self.auth_token]):
            self.client = Client(self.account_sid, self.auth_token)
        else:
            self.client = None
            logger.warning("Twilio configuration incomplete")

    def _send(self, to: str, body: str, from_: Optional[str]) -> MessageResult:
        if not self.client or not from_:
            logger.warning("Messaging service not configured, skipping send", to=to)
            return MessageResult(success=False, error="Twilio not configured")

        try:
            message = self.client.messages.create(body=body, from_=from_, to=to)
            logger.info(f"Message sent successfully to {to}, SID: {message.sid}")
            return MessageResult(success=True, sid=message.sid)
        except TwilioException as e:
            logger.error(f"Failed to send message to {to}: {str(e)}")
            return MessageResult(success=False, error=str(e))
        except Exception as e:
            logger.error(f"Unexpected error sending message to {to}: {str(e)}")
            return MessageResult(success=False, error=str(e))

    async def send_whatsapp(self, to_number: str, message: str) -> MessageResult:
        """Send a free-form WhatsApp message."""
        from_ = _whatsapp_address(self.whatsapp_from) if self.whatsapp_from else None
        return self._send(_whatsapp_address(to_number), message, from_)


messaging_service = MessagingService()
