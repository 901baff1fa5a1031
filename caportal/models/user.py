"""
User model.

WHY: Users are either office staff (ADMIN, MANAGER, STAFF, INTERN) or client
logins (CLIENT). A CLIENT user is bound to exactly one client record through
client_id, which is what scopes every invoice, billing and file query they make.
"""

import enum
from sqlalchemy import Column, Integer, String, Enum, ForeignKey, Boolean
from sqlalchemy.orm import relationship

from caportal.models.base import Base, TimestampMixin, PrimaryKeyMixin


class UserRole(str, enum.Enum):
    """
    User role enumeration.

    WHY: A closed enum with a single staff predicate replaces scattered
    role-list literals in route handlers.
    """

    ADMIN = "ADMIN"  # Office owner, full access
    MANAGER = "MANAGER"  # Billing and client management
    STAFF = "STAFF"  # Document handling
    INTERN = "INTERN"  # Read-only office access
    CLIENT = "CLIENT"  # Client portal login, scoped to one client

    @property
    def is_staff(self) -> bool:
        """True for every office role, False for CLIENT."""
        return self is not UserRole.CLIENT


# Named role sets used by the authorization dependencies.
# INTERN is read-only: never in a set that writes or deletes.
STAFF_ROLES = frozenset(role for role in UserRole if role.is_staff)
BILLING_ROLES = frozenset({UserRole.ADMIN, UserRole.MANAGER})
FILE_MANAGER_ROLES = frozenset({UserRole.ADMIN, UserRole.MANAGER, UserRole.STAFF})


class User(Base, PrimaryKeyMixin, TimestampMixin):
    """User model representing office staff and client portal logins."""

    __tablename__ = "users"

    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=True)

    role = Column(
        Enum(UserRole, name="userrole"),
        nullable=False,
        default=UserRole.CLIENT,
    )

    # WHY: Required for CLIENT users, always NULL for staff
    client_id = Column(
        Integer,
        ForeignKey("clients.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    is_active = Column(Boolean, default=True, nullable=False)

    client = relationship("Client", back_populates="users")

    @property
    def is_staff(self) -> bool:
        return UserRole(self.role).is_staff

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"
