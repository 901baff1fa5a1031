"""
Audit Log Data Access Object (DAO).

WHAT: Data access layer for audit log operations.

WHY: Audit entries are append-only. This DAO deliberately exposes only
create and query methods; there is no update or delete path.
"""

from typing import Optional, List, Dict, Any
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from caportal.models.audit_log import AuditLog, AuditAction


class AuditLogDAO:
    """Data Access Object for audit log operations."""

    def __init__(self, session: AsyncSession):
        """
        Initialize AuditLogDAO with database session.

        Args:
            session: Async database session
        """
        self.session = session

    async def create(
        self,
        action: AuditAction,
        resource_type: str,
        actor_user_id: Optional[int] = None,
        resource_id: Optional[int] = None,
        client_id: Optional[int] = None,
        changes: Optional[Dict[str, Any]] = None,
        extra_data: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> AuditLog:
        """
        Create a new audit log entry.

        Args:
            action: Type of event (from AuditAction enum)
            resource_type: Category of affected resource
            actor_user_id: User who performed the action (nullable for failed logins)
            resource_id: Specific resource ID (nullable)
            client_id: Client the event concerns
            changes: Before/after values for mutations
            extra_data: Additional context
            ip_address: Client IP address
            user_agent: Client browser/application info

        Returns:
            Created AuditLog instance
        """
        log = AuditLog(
            actor_user_id=actor_user_id,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            client_id=client_id,
            changes=changes,
            extra_data=extra_data,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        self.session.add(log)
        await self.session.flush()
        return log

    async def list_logs(
        self,
        action: Optional[AuditAction] = None,
        resource_type: Optional[str] = None,
        client_id: Optional[int] = None,
        actor_user_id: Optional[int] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[AuditLog]:
        """
        Query audit logs, newest first.

        Args:
            action: Filter by action type
            resource_type: Filter by resource category
            client_id: Filter by client
            actor_user_id: Filter by acting user
            skip: Pagination offset
            limit: Page size

        Returns:
            List of audit log entries
        """
        query = select(AuditLog)
        if action is not None:
            query = query.where(AuditLog.action == action)
        if resource_type is not None:
            query = query.where(AuditLog.resource_type == resource_type)
        if client_id is not None:
            query = query.where(AuditLog.client_id == client_id)
        if actor_user_id is not None:
            query = query.where(AuditLog.actor_user_id == actor_user_id)

        query = query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        result = await self.session.execute(query.offset(skip).limit(limit))
        return list(result.scalars().all())
