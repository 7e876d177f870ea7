"""
Authentication API endpoints.

Handles registration, login, logout and the current-user lookup. Sessions
live in the database and are referenced by an HTTP-only cookie.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.database import get_db, utcnow
from core.security import create_user_session, invalidate_session, get_current_active_user
from models.user import User
from repositories.user import UserRepository
from schemas.auth import UserLogin, UserRegister, UserResponse
from schemas.responses import StandardSuccessResponse
from services.helpers import hash_password, verify_password

logger = logging.getLogger(__name__)

router = APIRouter()


def _set_session_cookie(response: Response, session_id: str) -> None:
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=session_id,
        max_age=settings.SESSION_DURATION * 60,
        httponly=True,
        secure=settings.SESSION_COOKIE_SECURE,
        samesite="lax",
    )


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserRegister,
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db),
):
    """User registration endpoint; the new account is logged in straight away."""
    user_repo = UserRepository(db)

    if await user_repo.get_user_by_email(user_data.email):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already registered"
        )

    user = await user_repo.create_user({
        "email": user_data.email.lower(),
        "password_hash": hash_password(user_data.password),
        "first_name": user_data.first_name,
        "last_name": user_data.last_name,
        "language": user_data.language,
        "role": user_data.role,
        "last_login": utcnow(),
    })

    session_id = await create_user_session(
        db,
        user.id,
        user_agent=request.headers.get("user-agent", ""),
        ip_address=request.client.host if request.client else "",
    )
    _set_session_cookie(response, session_id)
    logger.info(f"Registered user {user.id} ({user.role.value})")
    return user


@router.post("/login", response_model=UserResponse)
async def login(
    credentials: UserLogin,
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db),
):
    """User login endpoint."""
    user_repo = UserRepository(db)
    user = await user_repo.get_user_by_email(credentials.email)

    if not user or not user.password_hash or not verify_password(credentials.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account disabled"
        )

    user = await user_repo.update_user(user, {"last_login": utcnow()})

    session_id = await create_user_session(
        db,
        user.id,
        user_agent=request.headers.get("user-agent", ""),
        ip_address=request.client.host if request.client else "",
    )
    _set_session_cookie(response, session_id)
    logger.info(f"User {user.id} logged in")
    return user


@router.post("/logout", response_model=StandardSuccessResponse)
async def logout(
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db),
):
    session_id = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if session_id:
        await invalidate_session(db, session_id)
    response.delete_cookie(settings.SESSION_COOKIE_NAME)
    return StandardSuccessResponse(message="Logged out")


@router.get("/user", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_active_user)):
    return current_user
