"""
Data Access Object (DAO) package.

WHY: DAOs provide a clean separation between database operations and business logic,
making the codebase more testable and maintainable.
"""

from caportal.dao.base import BaseDAO
from caportal.dao.user import UserDAO
from caportal.dao.client import ClientDAO
from caportal.dao.service import ServiceOfferingDAO
from caportal.dao.invoice import InvoiceDAO
from caportal.dao.client_file import ClientFileDAO
from caportal.dao.audit_log import AuditLogDAO
from caportal.dao.reminder import ReminderDAO

__all__ = [
    "BaseDAO",
    "UserDAO",
    "ClientDAO",
    "ServiceOfferingDAO",
    "InvoiceDAO",
    "ClientFileDAO",
    "AuditLogDAO",
    "ReminderDAO",
]
