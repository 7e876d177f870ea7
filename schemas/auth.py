"""
Authentication and user schemas.
"""

from datetime import datetime
from typing import Optional
from pydantic import Field, EmailStr

from models.user import UserRole, SubscriptionTier
from schemas.common import BaseSchema


class UserLogin(BaseSchema):
    """User login request schema."""
    email: EmailStr = Field(..., description="User email")
    password: str = Field(..., min_length=6, description="User password")


class UserRegister(BaseSchema):
    """User registration request schema."""
    email: EmailStr = Field(..., description="User email")
    password: str = Field(..., min_length=8, max_length=128, description="User password")
    first_name: Optional[str] = Field(None, max_length=100, description="First name")
    last_name: Optional[str] = Field(None, max_length=100, description="Last name")
    language: str = Field(default="it", max_length=5)
    role: UserRole = UserRole.PATIENT


class UserResponse(BaseSchema):
    """User response schema."""
    id: int
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    language: str
    role: UserRole
    is_admin: bool
    is_active: bool
    is_premium: bool
    subscription_tier: SubscriptionTier
    ai_only_access: bool
    whatsapp_number: Optional[str] = None
    whatsapp_notifications_enabled: bool
    whatsapp_verified: bool
    created_at: Optional[datetime] = None
    last_login: Optional[datetime] = None


class AdminUserUpdate(BaseSchema):
    """Fields an administrator may change on an account."""
    subscription_tier: Optional[SubscriptionTier] = None
    is_admin: Optional[bool] = None
    ai_only_access: Optional[bool] = None
    is_active: Optional[bool] = None
    role: Optional[UserRole] = None
