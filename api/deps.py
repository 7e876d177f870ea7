"""
Dependency injection utilities for API endpoints.
"""

from fastapi import Depends, HTTPException, status

from core.security import get_current_active_user
from models.user import User


def require_admin(current_user: User = Depends(get_current_active_user)) -> User:
    """Require admin permissions."""
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin privileges required"
        )
    return current_user


def require_doctor(current_user: User = Depends(get_current_active_user)) -> User:
    """Require a doctor account (admins pass)."""
    if not (current_user.is_doctor or current_user.is_admin):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Doctor privileges required"
        )
    return current_user


def require_premium(current_user: User = Depends(get_current_active_user)) -> User:
    """Require a Premium or Premium Plus subscription."""
    if not current_user.is_premium:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Premium subscription required"
        )
    return current_user


def forbid_ai_only(current_user: User = Depends(get_current_active_user)) -> User:
    """AI-only accounts are limited to the prevention chat."""
    if current_user.ai_only_access and not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="This account only has access to the prevention assistant"
        )
    return current_user
