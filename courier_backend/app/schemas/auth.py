"""
Pydantic schemas for admin authentication
"""
from datetime import datetime
from typing import Optional

from pydantic import ConfigDict, EmailStr, Field

from app.models.user import UserRole
from app.schemas.common import CamelModel


class LoginRequest(CamelModel):
    model_config = ConfigDict(str_strip_whitespace=False)

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)


class AdminUserResponse(CamelModel):
    id: int
    name: str
    email: str
    role: UserRole
    is_active: bool
    last_login: Optional[datetime] = None
