import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import require_admin
from core.database import get_db
from models.content import Setting
from models.user import User
from repositories.content import SettingRepository
from schemas.content import SettingRead, SettingUpdate
from services.settings_service import clear_api_key_cache

logger = logging.getLogger(__name__)

router = APIRouter()

MASK = "********"


def _masked(setting: Setting) -> SettingRead:
    read = SettingRead.model_validate(setting)
    if setting.is_secret and setting.value:
        read.value = MASK
    return read


@router.get("/settings", response_model=List[SettingRead])
async def admin_list_settings(_: User = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    return [_masked(s) for s in await SettingRepository(db).list_all()]


@router.put("/settings/{key}", response_model=SettingRead)
async def admin_save_setting(
    key: str,
    request: SettingUpdate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    setting = await SettingRepository(db).upsert(
        key,
        request.value,
        description=request.description,
        is_secret=request.is_secret,
    )
    clear_api_key_cache()
    logger.info(f"Admin {admin.id} updated setting {key}")
    return _masked(setting)
