"""
Twilio Video access tokens.
"""

from dataclasses import dataclass

from twilio.jwt.access_token import AccessToken
from twilio.jwt.access_token.grants import VideoGrant

from core.config import settings
from core.logging import get_logger

logger = get_logger(__name__)


class VideoNotConfiguredError(Exception):
    """Twilio API key credentials are missing."""


@dataclass
class VideoToken:
    token: str
    room_name: str
    identity: str
    expires_in: int


def identity_for(user_id: int) -> str:
    return f"user-{user_id}"


class VideoService:
    def __init__(self):
        self.account_sid = settings.TWILIO_ACCOUNT_SID
        self.api_key_sid = settings.TWILIO_API_KEY_SID
        self.api_key_secret = settings.TWILIO_API_KEY_SECRET
        self.ttl = settings.VIDEO_TOKEN_TTL

    @property
    def is_configured(self) -> bool:
        return all([self.account_sid, self.api_key_sid, self.api_key_secret])

    def create_token(self, user_id: int, room_name: str) -> VideoToken:
        """Short-lived token granting access to a single room."""
        if not self.is_configured:
            raise VideoNotConfiguredError("Servizio video non configurato")

        identity = identity_for(user_id)
        token = AccessToken(
            self.account_sid,
            self.api_key_sid,
            self.api_key_secret,
            identity=identity,
            ttl=self.ttl,
        )
        token.add_grant(VideoGrant(room=room_name))
        jwt = token.to_jwt()
        if isinstance(jwt, bytes):
            jwt = jwt.decode("utf-8")

        logger.info("Video token issued", identity=identity, room=room_name)
        return VideoToken(token=jwt, room_name=room_name, identity=identity, expires_in=self.ttl)


video_service = VideoService()
