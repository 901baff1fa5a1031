"""
Database models package.

WHY: Centralizing model imports ensures Alembic can discover all models
for migration generation and makes it easier to import models elsewhere.
"""

from caportal.models.base import Base, TimestampMixin, PrimaryKeyMixin
from caportal.models.client import Client
from caportal.models.user import (
    User,
    UserRole,
    STAFF_ROLES,
    BILLING_ROLES,
    FILE_MANAGER_ROLES,
)
from caportal.models.service import ServiceOffering, ServiceCategory
from caportal.models.invoice import (
    Invoice,
    InvoiceItem,
    Payment,
    InvoiceStatus,
    PaymentMethod,
)
from caportal.models.client_file import ClientFile, FileCategory
from caportal.models.audit_log import AuditLog, AuditAction
from caportal.models.reminder import (
    Reminder,
    ReminderType,
    ReminderPriority,
    ReminderStatus,
)

__all__ = [
    "Base",
    "TimestampMixin",
    "PrimaryKeyMixin",
    "Client",
    "User",
    "UserRole",
    "STAFF_ROLES",
    "BILLING_ROLES",
    "FILE_MANAGER_ROLES",
    "ServiceOffering",
    "ServiceCategory",
    "Invoice",
    "InvoiceItem",
    "Payment",
    "InvoiceStatus",
    "PaymentMethod",
    "ClientFile",
    "FileCategory",
    "AuditLog",
    "AuditAction",
    "Reminder",
    "ReminderType",
    "ReminderPriority",
    "ReminderStatus",
]
