"""
File-access gate.

WHAT: Decides whether a client may read documents, based on the client's
outstanding billing state.

WHY: The office withholds document access from clients with overdue
invoices. The rule is evaluated from the client's full invoice set on every
request (no caching), so a payment recorded a second ago is already
reflected in the next download attempt.

HOW:
- ``evaluate_invoices`` is a pure function over a list of invoices
- ``FileAccessGate`` adds the principal rules (staff bypass, own-client
  only) and loads the invoices
- A denial is a normal result, not an exception. The HTTP dependency that
  guards the file read endpoints turns it into a 403.

Rule: access is denied only when at least one invoice is unpaid
(PENDING/PARTIAL) and its due date has passed. No invoices, nothing
unpaid, or unpaid but still within the due date all grant access.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Iterable, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from caportal.core.exceptions import AccessDeniedError
from caportal.dao.invoice import InvoiceDAO
from caportal.models.invoice import Invoice, InvoiceStatus
from caportal.models.user import User


logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


@dataclass(frozen=True)
class OverdueInvoice:
    """One overdue invoice, as shown to the client."""

    invoice_number: str
    due_date: date
    balance_amount: Decimal


@dataclass(frozen=True)
class FileAccessDecision:
    """
    Outcome of a file-access check with its diagnostic figures.

    Attributes:
        has_file_access: Whether document reads are allowed
        total_invoices: All invoices of the client
        paid_invoices: Invoices in PAID status
        pending_invoices: Invoices in PENDING or PARTIAL status
        overdue_invoices: Pending invoices past their due date
        total_outstanding: Sum of overdue balances
        total_balance_due: Sum of pending balances, overdue or not
        overdue_details: Per overdue invoice number, due date and balance
    """

    has_file_access: bool
    total_invoices: int = 0
    paid_invoices: int = 0
    pending_invoices: int = 0
    overdue_invoices: int = 0
    total_outstanding: Decimal = ZERO
    total_balance_due: Decimal = ZERO
    overdue_details: Tuple[OverdueInvoice, ...] = field(default_factory=tuple)

    @property
    def message(self) -> str:
        if self.has_file_access:
            return "File access granted"
        return "File access restricted due to pending payments"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "has_file_access": self.has_file_access,
            "total_invoices": self.total_invoices,
            "paid_invoices": self.paid_invoices,
            "pending_invoices": self.pending_invoices,
            "overdue_invoices": self.overdue_invoices,
            "total_outstanding": self.total_outstanding,
            "total_balance_due": self.total_balance_due,
            "overdue_details": [
                {
                    "invoice_number": item.invoice_number,
                    "due_date": item.due_date,
                    "balance_amount": item.balance_amount,
                }
                for item in self.overdue_details
            ],
        }


def evaluate_invoices(invoices: Iterable[Invoice], today: date) -> FileAccessDecision:
    """
    Evaluate a client's invoice set.

    Args:
        invoices: Every invoice of one client
        today: Reference date; an invoice is overdue when due_date < today

    Returns:
        FileAccessDecision
    """
    invoices = list(invoices)
    pending = [inv for inv in invoices if InvoiceStatus(inv.status).is_open]
    overdue = sorted(
        (inv for inv in pending if inv.is_overdue(today)),
        key=lambda inv: (inv.due_date, inv.invoice_number),
    )

    return FileAccessDecision(
        has_file_access=not overdue,
        total_invoices=len(invoices),
        paid_invoices=sum(1 for inv in invoices if inv.status == InvoiceStatus.PAID),
        pending_invoices=len(pending),
        overdue_invoices=len(overdue),
        total_outstanding=sum((inv.balance_amount for inv in overdue), ZERO),
        total_balance_due=sum((inv.balance_amount for inv in pending), ZERO),
        overdue_details=tuple(
            OverdueInvoice(
                invoice_number=inv.invoice_number,
                due_date=inv.due_date,
                balance_amount=inv.balance_amount,
            )
            for inv in overdue
        ),
    )


STAFF_DECISION = FileAccessDecision(has_file_access=True)


class FileAccessGate:
    """
    Applies the file-access rule to a principal.

    Example:
        gate = FileAccessGate(db)
        decision = await gate.check_access(current_user, current_user.client_id)
        if not decision.has_file_access:
            ...
    """

    def __init__(self, session: AsyncSession):
        self.invoice_dao = InvoiceDAO(session)

    @staticmethod
    def _ensure_own_client(principal: User, client_id: Optional[int]) -> None:
        if principal.client_id is None:
            raise AccessDeniedError(message="Client account is not linked to a client")
        if client_id != principal.client_id:
            logger.info(
                "User %s denied billing state of client %s",
                principal.id,
                client_id,
            )
            raise AccessDeniedError(message="You can only access your own billing status")

    async def evaluate_client(self, client_id: int, today: Optional[date] = None) -> FileAccessDecision:
        """Evaluate a client's current invoices, with no principal rules applied."""
        invoices = await self.invoice_dao.get_all_for_client(client_id)
        return evaluate_invoices(invoices, today or date.today())

    async def check_access(
        self,
        principal: User,
        client_id: Optional[int],
        today: Optional[date] = None,
    ) -> FileAccessDecision:
        """
        Decide whether ``principal`` may read documents of ``client_id``.

        Staff always pass without a query. A CLIENT principal may only be
        checked against its own client.

        Raises:
            AccessDeniedError: CLIENT principal with no client, or asking
                about another client
        """
        if principal.is_staff:
            return STAFF_DECISION

        self._ensure_own_client(principal, client_id)
        decision = await self.evaluate_client(client_id, today)

        if not decision.has_file_access:
            logger.info(
                "File access denied for client %s: %s overdue invoice(s), %s outstanding",
                client_id,
                decision.overdue_invoices,
                decision.total_outstanding,
            )
        return decision

    async def client_status(
        self,
        principal: User,
        client_id: int,
        today: Optional[date] = None,
    ) -> FileAccessDecision:
        """
        Billing state of a client as the gate sees it.

        Unlike ``check_access`` this evaluates the invoices for staff as
        well, so the office can see what the client will be told.

        Raises:
            AccessDeniedError: CLIENT principal asking about another client
        """
        if not principal.is_staff:
            self._ensure_own_client(principal, client_id)
        return await self.evaluate_client(client_id, today)
