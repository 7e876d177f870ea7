"""
Runtime settings stored in the ``settings`` table.

API keys edited from the admin panel take precedence over the environment.
Lookups are cached in-process; saving a setting clears the cache.
"""

import time
from typing import Dict, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.logging import get_logger
from repositories.content import SettingRepository

logger = get_logger(__name__)

APPOINTMENTS_ENABLED = "appointments_enabled"

TRUE_VALUES = ("1", "true", "yes", "on")

_api_key_cache: Dict[str, Tuple[Optional[str], float]] = {}


def clear_api_key_cache() -> None:
    _api_key_cache.clear()
    logger.info("API key cache cleared")


async def get_api_key(db: AsyncSession, key: str) -> Optional[str]:
    """Database value first, then the environment; cached for API_KEY_CACHE_SECONDS."""
    cached = _api_key_cache.get(key)
    if cached and cached[1] > time.monotonic():
        return cached[0]

    setting = await SettingRepository(db).get(key)
    value = setting.value if setting and setting.value else getattr(settings, key, None)

    _api_key_cache[key] = (value, time.monotonic() + settings.API_KEY_CACHE_SECONDS)
    return value


async def get_setting(db: AsyncSession, key: str, default: Optional[str] = None) -> Optional[str]:
    setting = await SettingRepository(db).get(key)
    if setting is None or setting.value is None:
        return default
    return setting.value


async def is_enabled(db: AsyncSession, key: str, default: bool = False) -> bool:
    value = await get_setting(db, key)
    if value is None:
        return default
    return value.strip().lower() in TRUE_VALUES
