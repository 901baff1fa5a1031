"""
Invoice ledger service.

WHAT: Owns the invoice lifecycle: line items, payments and the derived
totals and status.

WHY: Every figure a client sees on an invoice (paid, balance, status) and
every file-access decision depends on these totals being right. They are
computed in exactly one place, the pure ``derive_totals`` function, and
every mutating operation calls it explicitly before persisting. Nothing is
recomputed behind the caller's back by a persistence hook.

HOW:
- ``derive_totals`` is a pure function of (items, tax, payments, status)
- ``InvoiceLedger`` loads the invoice, mutates it, re-derives, then flushes
- The invoice row carries a version counter; a flush that loses a race
  raises StaleDataError, surfaced as ConcurrencyConflictError (409), so a
  concurrent payment is rejected instead of silently lost
"""

import logging
import time
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Iterable, List, Mapping, Optional, Sequence

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from caportal.core.exceptions import (
    AccessDeniedError,
    ConcurrencyConflictError,
    DuplicateInvoiceNumberError,
    InvoiceNotFoundError,
    PaymentNotFoundError,
    StorageError,
    ValidationError,
)
from caportal.dao.client import ClientDAO
from caportal.dao.invoice import InvoiceDAO
from caportal.models.invoice import (
    Invoice,
    InvoiceItem,
    InvoiceStatus,
    Payment,
    PaymentMethod,
)
from caportal.models.base import as_naive_utc, utcnow
from caportal.models.user import User


logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value: Any) -> Decimal:
    """Convert a number to a Decimal rounded to paise/cents."""
    if value is None:
        return ZERO
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def _value(obj: Any, name: str) -> Any:
    if isinstance(obj, Mapping):
        return obj[name]
    return getattr(obj, name)


def _optional(obj: Any, name: str) -> Any:
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)


def to_quantity(value: Any) -> Decimal:
    """Round a quantity to the two decimal places the item table stores."""
    return to_money(value)


def line_amount(quantity: Any, unit_price: Any) -> Decimal:
    """Amount of one line item: quantity x unit price."""
    return to_money(to_quantity(quantity) * to_money(unit_price))


@dataclass(frozen=True)
class LedgerTotals:
    """Derived figures of an invoice."""

    subtotal: Decimal
    total: Decimal
    paid: Decimal
    balance: Decimal
    status: InvoiceStatus


def derive_totals(
    items: Iterable[Any],
    tax: Any,
    payments: Iterable[Any],
    current_status: Optional[InvoiceStatus] = None,
) -> LedgerTotals:
    """
    Derive subtotal, total, paid, balance and status of an invoice.

    Rules:
    - subtotal = sum of quantity x unit_price over the items
    - total = subtotal + tax (tax is a flat amount, added once)
    - paid = sum of payment amounts
    - balance = total - paid, clamped at zero on overpayment
    - status: CANCELLED is kept as is; otherwise paid == 0 gives PENDING,
      0 < paid < total gives PARTIAL and paid >= total gives PAID

    Args:
        items: Objects or mappings with ``quantity`` and ``unit_price``
        tax: Flat tax amount
        payments: Objects or mappings with ``amount``
        current_status: Status before this derivation

    Returns:
        LedgerTotals
    """
    subtotal = sum(
        (line_amount(_value(item, "quantity"), _value(item, "unit_price")) for item in items),
        ZERO,
    )
    total = to_money(subtotal + to_money(tax))
    paid = sum((to_money(_value(payment, "amount")) for payment in payments), ZERO)
    balance = max(ZERO, total - paid)

    if current_status is not None and InvoiceStatus(current_status) is InvoiceStatus.CANCELLED:
        status = InvoiceStatus.CANCELLED
    elif paid == ZERO:
        status = InvoiceStatus.PENDING
    elif paid < total:
        status = InvoiceStatus.PARTIAL
    else:
        status = InvoiceStatus.PAID

    return LedgerTotals(
        subtotal=to_money(subtotal),
        total=total,
        paid=to_money(paid),
        balance=to_money(balance),
        status=status,
    )


@dataclass
class LineItemInput:
    """A line item as supplied by a caller."""

    name: str
    quantity: Decimal
    unit_price: Decimal
    service_id: Optional[int] = None


class InvoiceLedger:
    """
    Service for invoice lifecycle operations.

    Every operation works inside the caller's session and transaction; the
    request-scoped session commits or rolls back as a whole.

    Example:
        ledger = InvoiceLedger(db)
        invoice = await ledger.create_invoice(
            client_id=3,
            items=[LineItemInput("ITR filing", Decimal("1"), Decimal("1000"))],
            tax=Decimal("0"),
            due_date=date(2024, 7, 31),
        )
        await ledger.add_payment(invoice.id, Decimal("400"), PaymentMethod.UPI)
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.invoice_dao = InvoiceDAO(session)
        self.client_dao = ClientDAO(session)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _load(self, invoice_id: int) -> Invoice:
        invoice = await self.invoice_dao.get_fresh(invoice_id)
        if invoice is None:
            raise InvoiceNotFoundError(
                message=f"Invoice {invoice_id} not found",
                invoice_id=invoice_id,
            )
        return invoice

    async def _require_client(self, client_id: int) -> None:
        if await self.client_dao.get_by_id(client_id) is None:
            raise ValidationError(
                message=f"Client {client_id} does not exist",
                client_id=client_id,
            )

    async def _next_invoice_number(self) -> str:
        millis = int(time.time() * 1000)
        # Two invoices created within the same millisecond get consecutive numbers
        while await self.invoice_dao.invoice_number_taken(f"INV-{millis}"):
            millis += 1
        return f"INV-{millis}"

    @staticmethod
    def _build_items(items: Sequence[Any]) -> List[InvoiceItem]:
        built = []
        for position, item in enumerate(items):
            # Rounded before anything is derived from it: later recomputations
            # only ever see the stored two-decimal quantity
            quantity = to_quantity(_value(item, "quantity"))
            unit_price = to_money(_value(item, "unit_price"))
            if quantity <= 0:
                raise ValidationError(message="Item quantity must be positive", position=position)
            if unit_price < 0:
                raise ValidationError(message="Item unit price cannot be negative", position=position)
            built.append(
                InvoiceItem(
                    position=position,
                    name=_value(item, "name"),
                    quantity=quantity,
                    unit_price=unit_price,
                    amount=line_amount(quantity, unit_price),
                    service_id=_optional(item, "service_id"),
                )
            )
        return built

    @staticmethod
    def _apply_totals(invoice: Invoice) -> LedgerTotals:
        totals = derive_totals(
            invoice.items,
            invoice.tax_amount,
            invoice.payments,
            invoice.status,
        )
        invoice.subtotal = totals.subtotal
        invoice.total_amount = totals.total
        invoice.paid_amount = totals.paid
        invoice.balance_amount = totals.balance
        invoice.status = totals.status
        # Always touch the row so the version check runs even when the
        # derived figures come out unchanged
        invoice.updated_at = utcnow()
        return totals

    async def _flush(self, invoice_id: Optional[int], invoice_number: Optional[str]) -> None:
        try:
            await self.session.flush()
        except StaleDataError as exc:
            logger.warning("Optimistic lock conflict on invoice %s", invoice_id)
            raise ConcurrencyConflictError(invoice_id=invoice_id) from exc
        except IntegrityError as exc:
            if "invoice_number" in str(exc.orig):
                raise DuplicateInvoiceNumberError(
                    message=f"Invoice number {invoice_number} already exists",
                    invoice_number=invoice_number,
                ) from exc
            logger.error("Integrity error persisting invoice %s: %s", invoice_id, exc.orig)
            raise StorageError(message="Could not persist invoice") from exc

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def create_invoice(
        self,
        client_id: int,
        items: Sequence[Any],
        tax: Any,
        due_date: date,
        created_by: Optional[int] = None,
        issue_date: Optional[date] = None,
        notes: Optional[str] = None,
        invoice_number: Optional[str] = None,
    ) -> Invoice:
        """
        Create an invoice with its initial line items.

        The new invoice starts with no payments: paid = 0, balance = total,
        status PENDING.

        Args:
            client_id: Client being billed (must exist)
            items: Line items (name, quantity, unit_price, optional service_id)
            tax: Flat tax amount
            due_date: Payment due date
            created_by: Issuing staff user
            issue_date: Defaults to today
            notes: Free text
            invoice_number: Defaults to INV-<epoch millis>

        Returns:
            Created invoice

        Raises:
            ValidationError: Unknown client, no items or bad amounts
            DuplicateInvoiceNumberError: invoice_number already used
        """
        if not items:
            raise ValidationError(message="An invoice needs at least one item")
        if to_money(tax) < 0:
            raise ValidationError(message="Tax cannot be negative")

        await self._require_client(client_id)

        if invoice_number:
            if await self.invoice_dao.invoice_number_taken(invoice_number):
                raise DuplicateInvoiceNumberError(
                    message=f"Invoice number {invoice_number} already exists",
                    invoice_number=invoice_number,
                )
        else:
            invoice_number = await self._next_invoice_number()

        invoice = Invoice(
            invoice_number=invoice_number,
            client_id=client_id,
            tax_amount=to_money(tax),
            status=InvoiceStatus.PENDING,
            issue_date=issue_date or date.today(),
            due_date=due_date,
            notes=notes,
            created_by=created_by,
            items=self._build_items(items),
            payments=[],
        )
        self._apply_totals(invoice)
        self.session.add(invoice)
        await self._flush(None, invoice_number)

        logger.info(
            "Invoice %s created for client %s (total %s)",
            invoice.invoice_number,
            client_id,
            invoice.total_amount,
        )
        return invoice

    async def add_payment(
        self,
        invoice_id: int,
        amount: Any,
        method: PaymentMethod = PaymentMethod.CASH,
        date: Optional[datetime] = None,
        transaction_id: Optional[str] = None,
        note: Optional[str] = None,
    ) -> Invoice:
        """
        Record a payment against an invoice and re-derive its totals.

        Raises:
            InvoiceNotFoundError: Invoice does not exist
            ValidationError: Amount is not positive
            ConcurrencyConflictError: Invoice changed underneath this request
        """
        amount = to_money(amount)
        if amount <= 0:
            raise ValidationError(message="Payment amount must be positive", amount=amount)

        invoice = await self._load(invoice_id)
        payment = Payment(
            amount=amount,
            method=method,
            transaction_id=transaction_id,
            note=note,
        )
        if date is not None:
            payment.date = as_naive_utc(date)
        invoice.payments.append(payment)

        totals = self._apply_totals(invoice)
        await self._flush(invoice_id, invoice.invoice_number)

        logger.info(
            "Payment of %s recorded on invoice %s (paid %s, status %s)",
            amount,
            invoice.invoice_number,
            totals.paid,
            totals.status.value,
        )
        return invoice

    async def remove_payment(self, invoice_id: int, payment_id: int) -> Invoice:
        """
        Remove a payment and re-derive totals from the remaining payments.

        Raises:
            InvoiceNotFoundError: Invoice does not exist
            PaymentNotFoundError: Payment is not on this invoice
        """
        invoice = await self._load(invoice_id)
        payment = self.invoice_dao.find_payment(invoice, payment_id)
        if payment is None:
            raise PaymentNotFoundError(
                message=f"Payment {payment_id} not found on invoice {invoice_id}",
                invoice_id=invoice_id,
                payment_id=payment_id,
            )

        invoice.payments.remove(payment)
        totals = self._apply_totals(invoice)
        await self._flush(invoice_id, invoice.invoice_number)

        logger.info(
            "Payment %s removed from invoice %s (paid %s, status %s)",
            payment_id,
            invoice.invoice_number,
            totals.paid,
            totals.status.value,
        )
        return invoice

    async def update_invoice(
        self,
        invoice_id: int,
        items: Optional[Sequence[Any]] = None,
        tax: Any = None,
        notes: Optional[str] = None,
        due_date: Optional[date] = None,
        issue_date: Optional[date] = None,
        invoice_number: Optional[str] = None,
        client_id: Optional[int] = None,
        clear_notes: bool = False,
    ) -> Invoice:
        """
        Edit an invoice. Arguments left as None are not changed; notes are
        removed only with ``clear_notes``.

        New items or tax recompute subtotal and total before paid, balance
        and status are re-derived. Payments are never touched here. A
        cancelled invoice stays cancelled.

        Raises:
            InvoiceNotFoundError: Invoice does not exist
            ValidationError: Unknown client, empty item list or bad amounts
            DuplicateInvoiceNumberError: New number already used elsewhere
        """
        invoice = await self._load(invoice_id)

        if invoice_number is not None and invoice_number != invoice.invoice_number:
            if await self.invoice_dao.invoice_number_taken(invoice_number, exclude_id=invoice_id):
                raise DuplicateInvoiceNumberError(
                    message=f"Invoice number {invoice_number} already exists",
                    invoice_number=invoice_number,
                )
            invoice.invoice_number = invoice_number

        if client_id is not None and client_id != invoice.client_id:
            await self._require_client(client_id)
            invoice.client_id = client_id

        if items is not None:
            if not items:
                raise ValidationError(message="An invoice needs at least one item")
            invoice.items = self._build_items(items)

        if tax is not None:
            if to_money(tax) < 0:
                raise ValidationError(message="Tax cannot be negative")
            invoice.tax_amount = to_money(tax)

        if clear_notes:
            invoice.notes = None
        elif notes is not None:
            invoice.notes = notes
        if due_date is not None:
            invoice.due_date = due_date
        if issue_date is not None:
            invoice.issue_date = issue_date

        self._apply_totals(invoice)
        await self._flush(invoice_id, invoice.invoice_number)
        return invoice

    async def set_status(self, invoice_id: int, status: InvoiceStatus) -> Invoice:
        """
        Explicitly set an invoice's status.

        CANCELLED is stored as given and then survives every later payment
        or item edit. Any other value lifts a cancellation; the status is
        then re-derived from the payments, so an override can never claim
        PAID on an invoice that has not been paid.

        Raises:
            InvoiceNotFoundError: Invoice does not exist
        """
        invoice = await self._load(invoice_id)
        previous = InvoiceStatus(invoice.status)
        status = InvoiceStatus(status)

        invoice.status = status
        totals = self._apply_totals(invoice)
        await self._flush(invoice_id, invoice.invoice_number)

        if totals.status is not status:
            logger.info(
                "Status override on invoice %s: requested %s, derived %s",
                invoice.invoice_number,
                status.value,
                totals.status.value,
            )
        else:
            logger.info(
                "Invoice %s status changed %s -> %s",
                invoice.invoice_number,
                previous.value,
                totals.status.value,
            )
        return invoice

    async def delete_invoice(self, invoice_id: int) -> None:
        """
        Hard-delete an invoice together with its items and payments.

        Raises:
            InvoiceNotFoundError: Invoice does not exist
        """
        invoice = await self._load(invoice_id)
        invoice_number = invoice.invoice_number

        await self.session.delete(invoice)
        await self._flush(invoice_id, invoice_number)

        logger.info("Invoice %s deleted", invoice_number)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def list_invoices(
        self,
        principal: User,
        client_id: Optional[int] = None,
        status: Optional[InvoiceStatus] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Invoice]:
        """
        List invoices newest first.

        A CLIENT principal always gets its own client's invoices, whatever
        client_id filter was requested.

        Raises:
            AccessDeniedError: CLIENT principal not linked to a client
        """
        return await self.invoice_dao.list_invoices(
            client_id=self._scoped_client_id(principal, client_id),
            status=status,
            skip=skip,
            limit=limit,
        )

    async def count_invoices(
        self,
        principal: User,
        client_id: Optional[int] = None,
        status: Optional[InvoiceStatus] = None,
    ) -> int:
        """Count the invoices ``list_invoices`` would page through."""
        return await self.invoice_dao.count(
            client_id=self._scoped_client_id(principal, client_id),
            status=status,
        )

    @staticmethod
    def _scoped_client_id(principal: User, client_id: Optional[int]) -> Optional[int]:
        if principal.is_staff:
            return client_id
        if principal.client_id is None:
            raise AccessDeniedError(message="Client account is not linked to a client")
        return principal.client_id

    async def get_invoice(self, principal: User, invoice_id: int) -> Invoice:
        """
        Fetch one invoice on behalf of a principal.

        Raises:
            InvoiceNotFoundError: Invoice does not exist
            AccessDeniedError: CLIENT principal asking for another client's invoice
        """
        invoice = await self._load(invoice_id)
        if not principal.is_staff and invoice.client_id != principal.client_id:
            logger.info(
                "User %s denied access to invoice %s of client %s",
                principal.id,
                invoice_id,
                invoice.client_id,
            )
            raise AccessDeniedError(message="You can only view your own invoices")
        return invoice
