import csv
import io
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import require_admin
from core.database import get_db
from models.user import User
from repositories.user import UserRepository
from schemas.auth import AdminUserUpdate, UserResponse

logger = logging.getLogger(__name__)

router = APIRouter()

EXPORT_COLUMNS = [
    "id",
    "email",
    "first_name",
    "last_name",
    "role",
    "is_admin",
    "is_active",
    "subscription_tier",
    "ai_only_access",
    "language",
    "created_at",
    "last_login",
]

EXPORT_BATCH = 500


def _csv_value(value) -> str:
    if value is None:
        return ""
    if hasattr(value, "value"):
        return str(value.value)
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)


@router.get("/users", response_model=List[UserResponse])
async def admin_list_users(
    search: Optional[str] = Query(default=None, max_length=100),
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=500),
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await UserRepository(db).list_users(search=search, skip=skip, limit=limit)


@router.get("/users/export/csv")
async def export_users_csv(_: User = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    repo = UserRepository(db)
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(EXPORT_COLUMNS)

    skip = 0
    while True:
        batch = await repo.list_users(skip=skip, limit=EXPORT_BATCH)
        for user in batch:
            writer.writerow([_csv_value(getattr(user, column)) for column in EXPORT_COLUMNS])
        if len(batch) < EXPORT_BATCH:
            break
        skip += EXPORT_BATCH

    output.seek(0)
    return StreamingResponse(
        iter([output.getvalue()]),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="users.csv"'},
    )


@router.patch("/users/{user_id}", response_model=UserResponse)
async def admin_update_user(
    user_id: int,
    request: AdminUserUpdate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    repo = UserRepository(db)
    user = await repo.get_user_by_id(user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    changes = request.model_dump(exclude_unset=True, exclude_none=True)
    if user.id == admin.id and (changes.get("is_admin") is False or changes.get("is_active") is False):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot remove your own admin access")

    user = await repo.update_user(user, changes)
    logger.info(f"Admin {admin.id} updated user {user.id}: {sorted(changes)}")
    return user
