"""
Audit Log Model.

WHAT: SQLAlchemy model for the portal's activity trail.

WHY: An accounting office has to be able to say who touched a client's
invoices and documents, and when. Entries are append-only and carry the
request context (IP address, user agent) captured by the middleware.

HOW: Immutable rows with JSON columns for before/after values and extra
context (JSON maps to JSONB on PostgreSQL and JSON on SQLite).
"""

import enum
from sqlalchemy import Column, Integer, String, Enum, ForeignKey, Text, JSON
from sqlalchemy.orm import relationship

from caportal.models.base import Base, TimestampMixin, PrimaryKeyMixin


class AuditAction(str, enum.Enum):
    """Enumeration of auditable actions."""

    # Authentication events
    LOGIN_SUCCESS = "LOGIN_SUCCESS"
    LOGIN_FAILURE = "LOGIN_FAILURE"
    LOGOUT = "LOGOUT"

    # Data mutation events
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"

    # Document events
    FILE_DOWNLOAD = "FILE_DOWNLOAD"
    ACCESS_DENIED = "ACCESS_DENIED"


class AuditLog(Base, PrimaryKeyMixin, TimestampMixin):
    """
    Immutable audit log entry.

    Fields:
    - actor_user_id: Who performed the action (nullable for failed logins)
    - action: What happened (AuditAction)
    - resource_type: "invoice", "payment", "client_file", ...
    - resource_id: Affected row, if any
    - client_id: Client the event concerns, for per-client history
    - changes / extra_data: JSON context
    - ip_address / user_agent: Request context
    """

    __tablename__ = "audit_logs"

    # WHY: Nullable because failed logins may not map to a known user
    actor_user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    action = Column(Enum(AuditAction, name="auditaction"), nullable=False, index=True)

    resource_type = Column(String(100), nullable=False, index=True)
    resource_id = Column(Integer, nullable=True, index=True)

    client_id = Column(
        Integer,
        ForeignKey("clients.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Example: {"status": {"before": "PENDING", "after": "CANCELLED"}}
    changes = Column(JSON, nullable=True)
    # NOTE: Named 'extra_data' because 'metadata' is reserved by SQLAlchemy
    extra_data = Column(JSON, nullable=True)

    ip_address = Column(String(45), nullable=True, index=True)  # IPv6 max length
    user_agent = Column(Text, nullable=True)

    actor = relationship("User", foreign_keys=[actor_user_id])

    def __repr__(self) -> str:
        return (
            f"<AuditLog(id={self.id}, action={self.action}, "
            f"actor_user_id={self.actor_user_id}, resource_type={self.resource_type})>"
        )
