"""
User management API endpoints.

WHY: The office owner creates staff accounts and client portal logins;
there is no self-registration. Managers may reset a client's password
when the client is locked out.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from caportal.core.auth import hash_password
from caportal.core.deps import require_admin, require_billing
from caportal.core.exceptions import ClientNotFoundError, ResourceAlreadyExistsError
from caportal.dao.client import ClientDAO
from caportal.dao.user import UserDAO
from caportal.db.session import get_db
from caportal.models.user import User, UserRole
from caportal.schemas.user import PasswordResetResponse, UserCreate, UserResponse, UserUpdate
from caportal.services.audit import AuditService
from caportal.services.user_service import UserService


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    data: UserCreate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Create a staff user or a client portal login (ADMIN only).

    Raises:
        ResourceAlreadyExistsError (409): Email already registered
        ClientNotFoundError (404): client_id does not exist
    """
    user_dao = UserDAO(db)
    if await user_dao.email_exists(data.email):
        raise ResourceAlreadyExistsError(message="Email already registered", email=data.email)

    if data.client_id is not None and await ClientDAO(db).get_by_id(data.client_id) is None:
        raise ClientNotFoundError(message=f"Client {data.client_id} not found", client_id=data.client_id)

    user = await user_dao.create(
        name=data.name,
        email=data.email.lower(),
        hashed_password=hash_password(data.password),
        role=data.role,
        client_id=data.client_id,
    )

    await AuditService(db).log_create(
        "user",
        user.id,
        actor_user_id=admin.id,
        client_id=user.client_id,
        extra_data={"role": data.role.value},
    )
    logger.info("User %s created with role %s", user.email, data.role.value)
    return user


@router.get("", response_model=List[UserResponse])
async def list_users(
    role: Optional[UserRole] = Query(default=None),
    client_id: Optional[int] = Query(default=None),
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=500),
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> List[User]:
    """List accounts newest first, optionally by role or client (ADMIN only)."""
    return await UserDAO(db).get_all(skip=skip, limit=limit, role=role, client_id=client_id)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> User:
    return await UserService(db).get_user(user_id)


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: int,
    data: UserUpdate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Change an account's name, role or active flag (ADMIN only).

    Raises:
        UserNotFoundError (404): Unknown user
        AuthorizationError (403): Target is an administrator
        ValidationError (400): Role change not allowed
    """
    user = await UserService(db).update_user(
        admin,
        user_id,
        name=data.name,
        role=data.role,
        is_active=data.is_active,
    )

    await AuditService(db).log_update(
        "user",
        user.id,
        admin.id,
        changes=data.model_dump(mode="json", exclude_none=True),
        client_id=user.client_id,
    )
    return user


@router.delete("/{user_id}", response_model=UserResponse)
async def deactivate_user(
    user_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Deactivate an account (ADMIN only).

    The login stops working on its next request; the row is kept so the
    audit trail still names the person.
    """
    user = await UserService(db).deactivate_user(admin, user_id)
    await AuditService(db).log_delete("user", user.id, admin.id, client_id=user.client_id)
    return user


@router.post("/{user_id}/reset-password", response_model=PasswordResetResponse)
async def reset_password(
    user_id: int,
    current_user: User = Depends(require_billing),
    db: AsyncSession = Depends(get_db),
) -> PasswordResetResponse:
    """
    Generate a new password for an account and show it once.

    ADMIN resets any non-administrator account; MANAGER resets client logins.
    """
    user, password = await UserService(db).reset_password(current_user, user_id)

    await AuditService(db).log_update(
        "user",
        user.id,
        current_user.id,
        changes={"fields": ["password"]},
        client_id=user.client_id,
    )
    return PasswordResetResponse(user_id=user.id, email=user.email, password=password)
