from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from app.models.user import Permission, UserRole
from app.schemas.base import BaseCreateSchema, BaseResponseSchema


class LoginRequest(BaseModel):
    """Login request schema."""
    email: EmailStr = Field(..., description="User email address")
    password: str = Field(..., min_length=6, description="User password")


class UserResponse(BaseResponseSchema):
    id: UUID
    email: str
    name: str
    phone: Optional[str] = None
    role: str
    permissions: List[str] = []
    is_super_admin: bool = False
    is_active: bool = True
    login_route: str
    last_login_at: Optional[datetime] = None
    created_at: datetime


class LoginResponse(BaseResponseSchema):
    success: bool = True
    token: str
    token_type: str = "bearer"
    expires_in: int = Field(..., description="Access token expiration in seconds")
    user: UserResponse


class UserCreate(BaseCreateSchema):
    """Super admin creating a login for any surface."""
    email: EmailStr
    password: str = Field(..., min_length=6)
    name: str = Field(..., min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=20)
    role: UserRole
    permissions: List[Permission] = []
    is_super_admin: bool = False


class UserListResponse(BaseResponseSchema):
    success: bool = True
    users: List[UserResponse]
    total: int
