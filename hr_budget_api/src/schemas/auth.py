from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from src.schemas.common import CamelModel


class TokenPair(BaseModel):
    """Access and refresh tokens."""
    token_type: str = Field("bearer", description="Token type, typically 'bearer'")
    access_token: str = Field(..., description="JWT access token")
    refresh_token: str = Field(..., description="JWT refresh token")


class RefreshRequest(BaseModel):
    """Request to refresh an access token."""
    refresh_token: str = Field(..., description="Refresh token")


class Message(BaseModel):
    """Simple message response."""
    message: str = Field(...)


class CurrentUserInfo(CamelModel):
    """User block of the GetCurrentUser payload consumed by the menu script."""
    emp_code: Optional[str] = Field(None, description="Employee code shown in the header")
    user_id: Optional[str] = Field(None, description="Login / user identifier")
    user_role: Optional[str] = Field(None, description="Primary role code")
    company: Optional[str] = Field(None, description="Company code (e.g. BJC, BIGC)")
    auth_type: Optional[str] = Field(None, description="LOCAL or AD")
    roles: List[str] = Field(default_factory=list, description="Role codes held by the user")
    permissions: List[str] = Field(default_factory=list, description="Permission codes")
    is_admin: bool = Field(False, description="Administrator flag")


class CurrentUserResponse(CamelModel):
    """Response of GET /api/Auth/GetCurrentUser."""
    success: bool = Field(...)
    message: Optional[str] = Field(None)
    user: Optional[CurrentUserInfo] = Field(None)


class UserRead(CamelModel):
    """User read model."""
    id: UUID = Field(..., description="User ID")
    user_name: str = Field(..., description="Login name")
    email: str = Field(..., description="User email")
    name: Optional[str] = Field(None)
    emp_code: Optional[str] = Field(None)
    company: Optional[str] = Field(None)
    auth_type: str = Field("LOCAL")
    is_active: bool = Field(..., description="Active flag")
    is_superadmin: bool = Field(..., description="Administrator flag")
    created_at: datetime = Field(..., description="Created timestamp")
    updated_at: datetime = Field(..., description="Updated timestamp")
    roles: List[str] = Field(default_factory=list, description="Role codes assigned to the user")


class UserCreate(CamelModel):
    """Admin create user payload."""
    user_name: str = Field(..., min_length=1, max_length=256)
    email: str = Field(..., description="Email")
    password: str = Field(..., description="Password (validated by the identity password policy)")
    name: Optional[str] = Field(None)
    emp_code: Optional[str] = Field(None)
    company: Optional[str] = Field(None)
    is_active: bool = Field(default=True)
    is_superadmin: bool = Field(default=False)
    roles: List[str] = Field(default_factory=list, description="Role codes to assign")


class UserUpdate(CamelModel):
    """Admin update user payload; omitted fields are left unchanged."""
    email: Optional[str] = Field(None)
    name: Optional[str] = Field(None)
    emp_code: Optional[str] = Field(None)
    company: Optional[str] = Field(None)
    is_active: Optional[bool] = Field(None)
    is_superadmin: Optional[bool] = Field(None)
    roles: Optional[List[str]] = Field(None, description="Replaces the role set when given")


class ResetPasswordRequest(CamelModel):
    """New password for an administrator-driven reset."""
    new_password: str = Field(...)


class RoleRead(CamelModel):
    """Role read model."""
    id: UUID = Field(..., description="Role ID")
    name: str = Field(..., description="Role code")
    description: Optional[str] = Field(None)
