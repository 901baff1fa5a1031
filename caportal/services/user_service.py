"""
Account management service.

WHAT: Rules for editing, deactivating and resetting user accounts, and
for a user changing their own password.

WHY: The office owner manages every login. The rules are small but easy to
get wrong from a handler: administrator accounts are never edited through
these operations, an office account never turns into a client login (or
back), and a manager may reset a client's password but not a colleague's.
"""

import logging
import secrets
from typing import Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from caportal.core.auth import hash_password, verify_password
from caportal.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    UserNotFoundError,
    ValidationError,
)
from caportal.dao.user import UserDAO
from caportal.models.user import User, UserRole


logger = logging.getLogger(__name__)

# No 0/O, 1/l/I: generated passwords are read out over the phone
PASSWORD_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnpqrstuvwxyz23456789"
GENERATED_PASSWORD_LENGTH = 12


def generate_password(length: int = GENERATED_PASSWORD_LENGTH) -> str:
    """Random password drawn from an alphabet without look-alike characters."""
    return "".join(secrets.choice(PASSWORD_ALPHABET) for _ in range(length))


class UserService:
    """Service for account administration."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.user_dao = UserDAO(session)

    async def get_user(self, user_id: int) -> User:
        user = await self.user_dao.get_by_id(user_id)
        if user is None:
            raise UserNotFoundError(message=f"User {user_id} not found", user_id=user_id)
        return user

    async def _get_editable(self, actor: User, user_id: int) -> User:
        user = await self.get_user(user_id)
        if UserRole(user.role) is UserRole.ADMIN:
            raise AuthorizationError(
                message="Administrator accounts cannot be changed here",
                user_id=user_id,
            )
        return user

    async def update_user(
        self,
        actor: User,
        user_id: int,
        name: Optional[str] = None,
        role: Optional[UserRole] = None,
        is_active: Optional[bool] = None,
    ) -> User:
        """
        Edit another account's name, role or active flag.

        Raises:
            UserNotFoundError: Unknown user
            AuthorizationError: Target is an administrator
            ValidationError: Role change across office/client, or to ADMIN
        """
        user = await self._get_editable(actor, user_id)
        changes = {}

        if name is not None:
            changes["name"] = name

        if role is not None and role is not UserRole(user.role):
            if role is UserRole.ADMIN:
                raise ValidationError(message="Administrator role cannot be granted here")
            if role.is_staff != user.is_staff:
                raise ValidationError(message="Office and client accounts cannot change into each other")
            changes["role"] = role

        if is_active is not None:
            changes["is_active"] = is_active

        if not changes:
            return user

        user = await self.user_dao.update(user.id, **changes)
        logger.info("User %s updated by %s: %s", user.id, actor.id, sorted(changes))
        return user

    async def deactivate_user(self, actor: User, user_id: int) -> User:
        """
        Switch an account off. The row stays so audit entries keep their actor.

        Raises:
            UserNotFoundError: Unknown user
            AuthorizationError: Target is an administrator
        """
        user = await self._get_editable(actor, user_id)
        user = await self.user_dao.update(user.id, is_active=False)
        logger.info("User %s deactivated by %s", user.id, actor.id)
        return user

    async def reset_password(self, actor: User, user_id: int) -> Tuple[User, str]:
        """
        Replace an account's password with a generated one.

        ADMIN may reset any office or client account; MANAGER only client
        logins.

        Returns:
            (user, new plain-text password)

        Raises:
            UserNotFoundError: Unknown user
            AuthorizationError: Target is an administrator, or a manager
                resetting an office account
        """
        user = await self._get_editable(actor, user_id)
        if user.is_staff and UserRole(actor.role) is not UserRole.ADMIN:
            raise AuthorizationError(
                message="Only an administrator can reset office passwords",
                user_id=user_id,
            )

        password = generate_password()
        await self.user_dao.update(user.id, hashed_password=hash_password(password))
        logger.info("Password of user %s reset by %s", user.id, actor.id)
        return user, password

    async def change_password(self, user: User, current_password: str, new_password: str) -> None:
        """
        Change the caller's own password.

        Raises:
            AuthenticationError: Current password is wrong
            ValidationError: New password equals the current one
        """
        if not verify_password(current_password, user.hashed_password):
            raise AuthenticationError(message="Current password is incorrect")
        if current_password == new_password:
            raise ValidationError(message="New password must differ from the current one")

        await self.user_dao.update(user.id, hashed_password=hash_password(new_password))
        logger.info("User %s changed their password", user.id)
