import re
import secrets
import string
from datetime import datetime
from zoneinfo import ZoneInfo
from passlib.context import CryptContext

from core.config import settings
from core.database import as_utc


def generate_random_string(length=8):
    alphabet = string.ascii_uppercase + string.digits
    return ''.join(secrets.choice(alphabet) for _ in range(length))


def generate_verification_code() -> str:
    """16 uppercase hex chars (8 random bytes)."""
    return secrets.token_hex(8).upper()


# Configure the hashing algorithm
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def to_local(value: datetime) -> datetime:
    """Convert a UTC datetime to the platform's display timezone."""
    return as_utc(value).astimezone(ZoneInfo(settings.TIMEZONE))


def format_date_it(value: datetime) -> str:
    return to_local(value).strftime("%d/%m/%Y")


def format_time_it(value: datetime) -> str:
    return to_local(value).strftime("%H:%M")


def sanitize_filename(value: str) -> str:
    return re.sub(r"[^a-zA-Z0-9]+", "_", value).strip("_") or "certificate"
