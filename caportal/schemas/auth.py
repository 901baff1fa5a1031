"""
Pydantic schemas for authentication endpoints.

WHY: Schemas define request/response contracts, providing:
1. Automatic validation of request data
2. API documentation (OpenAPI/Swagger)
3. Clear separation between API and database models
"""

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from caportal.schemas.user import UserResponse


class LoginRequest(BaseModel):
    """Login request schema."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "email": "partner@caoffice.in",
                "password": "SecurePassword123!",
            }
        }
    )

    email: EmailStr = Field(..., description="User's email address")
    password: str = Field(..., min_length=1, max_length=100, description="User's password")


class TokenResponse(BaseModel):
    """
    JWT token response schema.

    WHY: The frontend needs the role and client binding straight after
    login to pick the office or client layout, so the user comes along.
    """

    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer", description="Token type (always 'bearer')")
    expires_in: int = Field(..., description="Token expiration time in seconds")
    user: UserResponse


class LogoutResponse(BaseModel):
    """Logout response schema."""

    message: str = Field(default="Successfully logged out")
