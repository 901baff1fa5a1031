"""
Services package.

WHY: Services hold the business rules (ledger derivation, file-access gate,
document handling, deadlines, accounts) on top of the DAOs, keeping route handlers thin.
"""

from caportal.services.ledger import (
    InvoiceLedger,
    LedgerTotals,
    LineItemInput,
    derive_totals,
    line_amount,
)
from caportal.services.access_gate import (
    FileAccessDecision,
    FileAccessGate,
    evaluate_invoices,
)
from caportal.services.audit import AuditService
from caportal.services.storage import FileStorage, S3FileStorage, get_file_storage
from caportal.services.file_service import FileService
from caportal.services.pdf_service import InvoicePDFService
from caportal.services.reminder_service import ReminderService
from caportal.services.user_service import UserService
from caportal.services.client_service import ClientService

__all__ = [
    "InvoiceLedger",
    "LedgerTotals",
    "LineItemInput",
    "derive_totals",
    "line_amount",
    "FileAccessDecision",
    "FileAccessGate",
    "evaluate_invoices",
    "AuditService",
    "FileStorage",
    "S3FileStorage",
    "get_file_storage",
    "FileService",
    "InvoicePDFService",
    "ReminderService",
    "UserService",
    "ClientService",
]
