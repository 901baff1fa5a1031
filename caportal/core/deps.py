"""
FastAPI dependencies for authentication and authorization.

WHY: Dependencies provide reusable authentication and authorization logic
that can be injected into route handlers. Role checks are expressed once,
against the named role sets on the user model, instead of as role-list
literals repeated in every handler.
"""

from typing import Optional
from fastapi import Depends, Query
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from caportal.core.auth import verify_token, is_token_blacklisted
from caportal.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    FileAccessRestrictedError,
    TokenExpiredError,
    TokenInvalidError,
)
from caportal.db.session import get_db
from caportal.models.user import (
    User,
    UserRole,
    STAFF_ROLES,
    BILLING_ROLES,
    FILE_MANAGER_ROLES,
)
from caportal.dao.user import UserDAO
from caportal.services.access_gate import FileAccessDecision, FileAccessGate
from caportal.services.audit import AuditService


# WHY: auto_error=False so a ?token= query parameter can be used instead of
# the header (direct download and preview links opened in a new tab)
security = HTTPBearer(auto_error=False)


async def get_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    token: Optional[str] = Query(default=None, include_in_schema=False),
) -> str:
    """
    Extract the bearer token from the Authorization header or ``?token=``.

    Raises:
        AuthenticationError: If neither is present
    """
    if credentials and credentials.credentials:
        return credentials.credentials
    if token:
        return token
    raise AuthenticationError(message="Not authenticated")


async def get_current_user(
    token: str = Depends(get_token),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Get current authenticated user from JWT token.

    WHY: This dependency:
    1. Verifies token signature and expiration
    2. Checks if token is blacklisted (logged out)
    3. Fetches user from database
    4. Ensures user still exists and is active

    Returns:
        Authenticated User instance (the request principal)

    Raises:
        AuthenticationError: If token is invalid, expired, or user not found
    """
    try:
        payload = verify_token(token)
    except (TokenExpiredError, TokenInvalidError) as e:
        raise AuthenticationError(
            message=str(e),
            status_code=e.status_code,
        )

    if await is_token_blacklisted(token):
        raise AuthenticationError(
            message="Token has been revoked",
            reason="logged_out",
        )

    user_id = payload.get("user_id")
    if not user_id:
        raise AuthenticationError(message="Invalid token: missing user_id")

    # WHY: Role or client binding in the token may be stale; always fetch
    user = await UserDAO(db).get_by_id(user_id)

    if not user:
        raise AuthenticationError(message="User not found", user_id=user_id)

    if not user.is_active:
        raise AuthenticationError(message="User account is inactive", user_id=user_id)

    return user


def require_roles(*roles: UserRole):
    """
    Factory creating a dependency that requires one of ``roles``.

    Usage:
        @router.post("/invoices")
        async def create(user: User = Depends(require_roles(*BILLING_ROLES))):
            ...

    Returns:
        Dependency function returning the authorized user

    Raises:
        AuthorizationError: If the user's role is not allowed
    """
    allowed = frozenset(roles)

    async def role_checker(current_user: User = Depends(get_current_user)) -> User:
        if UserRole(current_user.role) not in allowed:
            raise AuthorizationError(
                message="You do not have permission to perform this action",
                user_id=current_user.id,
                user_role=UserRole(current_user.role).value,
                required_roles=sorted(role.value for role in allowed),
            )
        return current_user

    return role_checker


# Named role dependencies
# WHY: INTERN is staff for reading but never appears in a writing role set
require_staff = require_roles(*STAFF_ROLES)
require_billing = require_roles(*BILLING_ROLES)
require_file_manager = require_roles(*FILE_MANAGER_ROLES)
require_admin = require_roles(UserRole.ADMIN)


async def enforce_file_access(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> FileAccessDecision:
    """
    Apply the file-access gate to a document read request.

    WHY: Listing, downloading, previewing and zipping files all depend on
    this one function, so the billing rule cannot drift between them.
    Staff pass straight through. A CLIENT principal is checked against
    its own client; which file or client it then asks for is an ownership
    question answered by the file service.

    Returns:
        The gate's decision (always granting when this returns)

    Raises:
        AccessDeniedError: CLIENT account not linked to a client
        FileAccessRestrictedError: Overdue invoices block file access
    """
    decision = await FileAccessGate(db).check_access(current_user, current_user.client_id)

    if not decision.has_file_access:
        payload = decision.to_dict()
        await AuditService(db).log_access_denied(
            actor_user_id=current_user.id,
            client_id=current_user.client_id,
            decision=payload,
        )
        # The request fails, but the denial entry must survive the rollback
        await db.commit()
        raise FileAccessRestrictedError(message=decision.message, **payload)

    return decision
