"""
Audit log API endpoints.

Read-only view of the audit trail for the office owner and managers.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from caportal.core.deps import require_billing
from caportal.dao.audit_log import AuditLogDAO
from caportal.db.session import get_db
from caportal.models.audit_log import AuditAction, AuditLog
from caportal.models.user import User
from caportal.schemas.audit_log import AuditLogResponse


router = APIRouter(prefix="/audit-logs", tags=["audit"])


@router.get("", response_model=List[AuditLogResponse])
async def list_audit_logs(
    action: Optional[AuditAction] = Query(default=None),
    resource_type: Optional[str] = Query(default=None, max_length=100),
    client_id: Optional[int] = Query(default=None),
    actor_user_id: Optional[int] = Query(default=None),
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=500),
    current_user: User = Depends(require_billing),
    db: AsyncSession = Depends(get_db),
) -> List[AuditLog]:
    """List audit entries newest first, with optional filters."""
    return await AuditLogDAO(db).list_logs(
        action=action,
        resource_type=resource_type,
        client_id=client_id,
        actor_user_id=actor_user_id,
        skip=skip,
        limit=limit,
    )
