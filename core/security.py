"""
Cookie session store: session creation, invalidation and user resolution.
"""

from datetime import timedelta
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.database import get_db, utcnow, as_utc
from models.authentication import UserSession
from models.user import User


def is_expired(expires_at) -> bool:
    return utcnow() > as_utc(expires_at)


async def create_user_session(db: AsyncSession, user_id: int, user_agent: str = "", ip_address: str = "") -> str:
    expires_at = utcnow() + timedelta(minutes=settings.SESSION_DURATION)
    session = UserSession(
        user_id=user_id,
        expires_at=expires_at,
        user_agent=(user_agent or "")[:255],
        ip_address=ip_address,
    )
    db.add(session)
    await db.commit()
    await db.refresh(session)
    return session.session_id


async def invalidate_session(db: AsyncSession, session_id: str) -> None:
    await db.execute(
        update(UserSession)
        .where(UserSession.session_id == session_id)
        .values(is_active=False)
    )
    await db.commit()


async def get_user_from_session(db: AsyncSession, session_id: Optional[str]) -> Optional[User]:
    if not session_id:
        return None

    result = await db.execute(select(UserSession).where(UserSession.session_id == session_id))
    session = result.scalar_one_or_none()
    if not session or session.is_active is False or is_expired(session.expires_at):
        return None

    result = await db.execute(select(User).where(User.id == session.user_id))
    return result.scalar_one_or_none()


async def get_current_user(request: Request, db: AsyncSession = Depends(get_db)) -> User:
    session_id = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if not session_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")

    user = await get_user_from_session(db, session_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired session")
    return user


async def get_current_active_user(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account disabled")
    return current_user
