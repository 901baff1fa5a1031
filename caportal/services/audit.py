"""
Audit logging service.

WHAT: Service layer for creating audit log entries with request context.

WHY: Office staff need a per-client history of who issued or edited an
invoice, who recorded a payment and who downloaded which document. This
service gives routes one-line helpers for those events.

HOW: Uses the AuditLogDAO for persistence and the RequestContext
middleware for automatic IP/user-agent capture.
"""

import logging
from typing import Optional, Dict, Any

from sqlalchemy.ext.asyncio import AsyncSession

from caportal.dao.audit_log import AuditLogDAO
from caportal.models.audit_log import AuditLog, AuditAction
from caportal.middleware.request_context import get_request_context


# Logger for audit service errors (not audit events themselves)
logger = logging.getLogger(__name__)


class AuditService:
    """
    Service for creating audit log entries.

    Example:
        audit = AuditService(db)
        await audit.log_create("invoice", invoice.id, actor_user_id=user.id,
                               client_id=invoice.client_id)
    """

    def __init__(self, session: AsyncSession):
        self.dao = AuditLogDAO(session)

    def _get_context(self) -> tuple[Optional[str], Optional[str]]:
        ctx = get_request_context()
        if ctx:
            return ctx.ip_address, ctx.user_agent
        return None, None

    async def log_event(
        self,
        action: AuditAction,
        resource_type: str,
        actor_user_id: Optional[int] = None,
        resource_id: Optional[int] = None,
        client_id: Optional[int] = None,
        changes: Optional[Dict[str, Any]] = None,
        extra_data: Optional[Dict[str, Any]] = None,
    ) -> Optional[AuditLog]:
        """
        Log a generic audit event.

        Args:
            action: Type of event
            resource_type: Category of affected resource
            actor_user_id: User who performed the action
            resource_id: Specific resource ID
            client_id: Client the event concerns
            changes: Before/after values for mutations
            extra_data: Additional context

        Returns:
            Created AuditLog or None if logging failed

        Note:
            Never raises. A failed audit write is logged and the business
            operation carries on.
        """
        ip_address, user_agent = self._get_context()
        try:
            return await self.dao.create(
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
        except Exception as e:
            logger.error("Failed to create audit log: %s", e, exc_info=True)
            return None

    async def log_login_success(self, user_id: int) -> Optional[AuditLog]:
        return await self.log_event(
            action=AuditAction.LOGIN_SUCCESS,
            resource_type="auth",
            actor_user_id=user_id,
            resource_id=user_id,
        )

    async def log_login_failure(self, attempted_email: str, reason: str) -> Optional[AuditLog]:
        return await self.log_event(
            action=AuditAction.LOGIN_FAILURE,
            resource_type="auth",
            extra_data={"attempted_email": attempted_email, "reason": reason},
        )

    async def log_logout(self, user_id: int) -> Optional[AuditLog]:
        return await self.log_event(
            action=AuditAction.LOGOUT,
            resource_type="auth",
            actor_user_id=user_id,
            resource_id=user_id,
        )

    async def log_create(
        self,
        resource_type: str,
        resource_id: Optional[int],
        actor_user_id: int,
        client_id: Optional[int] = None,
        extra_data: Optional[Dict[str, Any]] = None,
    ) -> Optional[AuditLog]:
        return await self.log_event(
            action=AuditAction.CREATE,
            resource_type=resource_type,
            actor_user_id=actor_user_id,
            resource_id=resource_id,
            client_id=client_id,
            extra_data=extra_data,
        )

    async def log_update(
        self,
        resource_type: str,
        resource_id: Optional[int],
        actor_user_id: int,
        changes: Optional[Dict[str, Any]] = None,
        client_id: Optional[int] = None,
    ) -> Optional[AuditLog]:
        return await self.log_event(
            action=AuditAction.UPDATE,
            resource_type=resource_type,
            actor_user_id=actor_user_id,
            resource_id=resource_id,
            client_id=client_id,
            changes=changes,
        )

    async def log_delete(
        self,
        resource_type: str,
        resource_id: Optional[int],
        actor_user_id: int,
        client_id: Optional[int] = None,
        extra_data: Optional[Dict[str, Any]] = None,
    ) -> Optional[AuditLog]:
        return await self.log_event(
            action=AuditAction.DELETE,
            resource_type=resource_type,
            actor_user_id=actor_user_id,
            resource_id=resource_id,
            client_id=client_id,
            extra_data=extra_data,
        )

    async def log_file_download(
        self,
        file_id: int,
        actor_user_id: int,
        client_id: int,
        mode: str,
    ) -> Optional[AuditLog]:
        return await self.log_event(
            action=AuditAction.FILE_DOWNLOAD,
            resource_type="client_file",
            actor_user_id=actor_user_id,
            resource_id=file_id,
            client_id=client_id,
            extra_data={"mode": mode},
        )

    async def log_access_denied(
        self,
        actor_user_id: int,
        client_id: Optional[int],
        decision: Dict[str, Any],
    ) -> Optional[AuditLog]:
        """Record a file-access denial with the figures the client was shown."""
        return await self.log_event(
            action=AuditAction.ACCESS_DENIED,
            resource_type="client_file",
            actor_user_id=actor_user_id,
            client_id=client_id,
            extra_data={
                "overdue_invoices": decision.get("overdue_invoices"),
                "total_outstanding": str(decision.get("total_outstanding")),
            },
        )
