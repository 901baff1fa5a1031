"""
Authentication API endpoints.

WHY: These endpoints provide the authentication flow:
1. Login - Authenticate user and return JWT token
2. Logout - Blacklist token to prevent further use
3. Me - Get current user information
4. Change password - Replace the caller's own password

Security:
- All authentication events are audit logged
- Passwords are compared with bcrypt
- Generic error messages prevent user enumeration
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from caportal.core.auth import verify_password, create_access_token, blacklist_token
from caportal.core.config import settings
from caportal.core.deps import get_current_user, get_token
from caportal.core.exceptions import AuthenticationError
from caportal.dao.user import UserDAO
from caportal.db.session import get_db
from caportal.models.user import User, UserRole
from caportal.schemas.auth import LoginRequest, TokenResponse, LogoutResponse
from caportal.schemas.user import ChangePasswordRequest, MessageResponse, UserResponse
from caportal.services.audit import AuditService
from caportal.services.user_service import UserService


router = APIRouter(prefix="/auth", tags=["authentication"])


@router.post("/login", response_model=TokenResponse)
async def login(
    credentials: LoginRequest,
    db: AsyncSession = Depends(get_db),
) -> TokenResponse:
    """
    Authenticate user and return JWT access token.

    The token carries user_id, role and client_id; the user row is still
    re-read on every request.

    Raises:
        AuthenticationError (401): If credentials are invalid
    """
    audit = AuditService(db)
    user = await UserDAO(db).get_by_email(credentials.email)

    failure = None
    if not user or not verify_password(credentials.password, user.hashed_password):
        failure = "Invalid email or password"
    elif not user.is_active:
        failure = "Account is inactive"

    if failure:
        await audit.log_login_failure(attempted_email=credentials.email, reason=failure)
        # Keep the failure entry although the request errors out
        await db.commit()
        raise AuthenticationError(message=failure)

    token_data = {
        "user_id": user.id,
        "role": UserRole(user.role).value,
        "client_id": user.client_id,
        "email": user.email,
    }
    access_token = create_access_token(token_data)

    await audit.log_login_success(user_id=user.id)

    return TokenResponse(
        access_token=access_token,
        token_type="bearer",
        expires_in=settings.JWT_EXPIRATION_MINUTES * 60,
        user=UserResponse.model_validate(user),
    )


@router.post("/logout", response_model=LogoutResponse)
async def logout(
    token: str = Depends(get_token),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> LogoutResponse:
    """
    Logout current user by blacklisting their token.

    WHY: JWTs are stateless; the blacklist makes this one unusable until
    it would have expired anyway.
    """
    await blacklist_token(token, current_user.id)
    await AuditService(db).log_logout(current_user.id)
    return LogoutResponse()


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    current_user: User = Depends(get_current_user),
) -> User:
    """Get the authenticated user's profile."""
    return current_user


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    data: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    """
    Change the caller's own password.

    Raises:
        AuthenticationError (401): Current password is wrong
        ValidationError (400): New password equals the current one
    """
    await UserService(db).change_password(current_user, data.current_password, data.new_password)
    await AuditService(db).log_update(
        "user",
        current_user.id,
        current_user.id,
        changes={"fields": ["password"]},
        client_id=current_user.client_id,
    )
    return MessageResponse(message="Password changed successfully")
