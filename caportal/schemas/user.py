"""
Pydantic schemas for user accounts.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

from caportal.models.user import UserRole


class UserCreate(BaseModel):
    """
    Schema for creating a staff member or a client portal login.

    WHY: A CLIENT login is meaningless without the client it belongs to,
    and a staff account bound to a client would be scoped by mistake.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=100)
    role: UserRole = Field(default=UserRole.CLIENT)
    client_id: Optional[int] = Field(default=None, description="Required for CLIENT users")

    @model_validator(mode="after")
    def check_client_binding(self) -> "UserCreate":
        if self.role is UserRole.CLIENT and self.client_id is None:
            raise ValueError("client_id is required for CLIENT users")
        if self.role is not UserRole.CLIENT and self.client_id is not None:
            raise ValueError("Staff users cannot be bound to a client")
        return self


class UserResponse(BaseModel):
    """User data without the password hash."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    role: UserRole
    client_id: Optional[int] = None
    is_active: bool
    created_at: datetime


class UserUpdate(BaseModel):
    """
    Schema for editing an account (ADMIN only).

    WHY: Role changes move people between office roles; a staff account
    never becomes a client login or the other way round.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    role: Optional[UserRole] = None
    is_active: Optional[bool] = None


class PasswordResetResponse(BaseModel):
    """One-time display of a generated password."""

    user_id: int
    email: str
    password: str
    message: str = "Password reset successfully"


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1, max_length=100)
    new_password: str = Field(..., min_length=8, max_length=100)


class MessageResponse(BaseModel):
    message: str
