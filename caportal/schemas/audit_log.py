"""
Pydantic schemas for audit log queries.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict

from caportal.models.audit_log import AuditAction


class AuditLogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    actor_user_id: Optional[int] = None
    action: AuditAction
    resource_type: str
    resource_id: Optional[int] = None
    client_id: Optional[int] = None
    changes: Optional[Dict[str, Any]] = None
    extra_data: Optional[Dict[str, Any]] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: datetime
