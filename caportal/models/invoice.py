"""
Invoice, line item and payment models.

WHAT: SQLAlchemy models for the office's invoice ledger.

WHY: Invoices are the only billing state the portal keeps. Their derived
columns (subtotal, total, paid, balance, status) feed both the billing UI
and the file-access gate, so they are stored denormalized and recomputed
explicitly by the ledger service on every mutation.

HOW:
- Line items and payments are child tables owned by the invoice
  (delete-orphan cascade, eagerly loaded with selectin)
- Amounts are Numeric(12, 2) and handled as Decimal in Python
- ``version`` is the mapper's version_id_col: every UPDATE of the invoice
  row checks and bumps it, so a racing write fails instead of silently
  overwriting another request's recomputation
"""

import enum
from datetime import date
from decimal import Decimal

from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Date,
    DateTime,
    ForeignKey,
    Numeric,
    Enum as SQLEnum,
)
from sqlalchemy.orm import relationship

from caportal.models.base import Base, TimestampMixin, PrimaryKeyMixin, utcnow


class InvoiceStatus(str, enum.Enum):
    """
    Invoice payment status.

    WHY: PENDING, PARTIAL and PAID are derived from recorded payments.
    CANCELLED is only ever set explicitly and suppresses the derivation.
    """

    PENDING = "PENDING"
    PARTIAL = "PARTIAL"
    PAID = "PAID"
    CANCELLED = "CANCELLED"

    @property
    def is_open(self) -> bool:
        """True while money is still expected on the invoice."""
        return self in (InvoiceStatus.PENDING, InvoiceStatus.PARTIAL)


class PaymentMethod(str, enum.Enum):
    """How a payment was received."""

    CASH = "CASH"
    BANK_TRANSFER = "BANK_TRANSFER"
    UPI = "UPI"
    CHEQUE = "CHEQUE"
    OTHER = "OTHER"


class Invoice(Base, PrimaryKeyMixin, TimestampMixin):
    """
    Invoice issued to a client.

    Attributes:
        invoice_number: Unique human-readable identifier (e.g. INV-1718000000000)
        client_id: Owning client
        subtotal: Sum of line item amounts
        tax_amount: Flat tax added once on top of the subtotal
        total_amount: subtotal + tax_amount
        paid_amount: Sum of payment amounts, never set independently
        balance_amount: max(0, total_amount - paid_amount)
        status: Derived payment status, or CANCELLED
        issue_date / due_date: Calendar dates, due_date drives overdue checks
        created_by: Staff user who issued the invoice
        version: Optimistic concurrency counter
    """

    __tablename__ = "invoices"

    invoice_number = Column(String(50), unique=True, nullable=False, index=True)

    client_id = Column(
        Integer,
        ForeignKey("clients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    subtotal = Column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    tax_amount = Column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    total_amount = Column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    paid_amount = Column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    balance_amount = Column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))

    status = Column(
        SQLEnum(InvoiceStatus, name="invoicestatus"),
        nullable=False,
        default=InvoiceStatus.PENDING,
        index=True,
    )

    issue_date = Column(Date, nullable=False, default=date.today)
    due_date = Column(Date, nullable=False, index=True)

    notes = Column(Text, nullable=True)

    created_by = Column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    client = relationship("Client", back_populates="invoices")
    creator = relationship("User", foreign_keys=[created_by])

    items = relationship(
        "InvoiceItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceItem.position",
        lazy="selectin",
    )
    payments = relationship(
        "Payment",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="Payment.id",
        lazy="selectin",
    )

    def is_overdue(self, today: date) -> bool:
        """Unpaid (PENDING/PARTIAL) and past its due date."""
        return InvoiceStatus(self.status).is_open and self.due_date < today

    def __repr__(self) -> str:
        return (
            f"<Invoice(id={self.id}, number={self.invoice_number}, "
            f"status={self.status}, balance={self.balance_amount})>"
        )


class InvoiceItem(Base, PrimaryKeyMixin):
    """Line item on an invoice. ``amount`` is always quantity x unit_price."""

    __tablename__ = "invoice_items"

    invoice_id = Column(
        Integer,
        ForeignKey("invoices.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position = Column(Integer, nullable=False, default=0)

    name = Column(String(255), nullable=False)
    # Quantities are kept to two decimal places, like amounts
    quantity = Column(Numeric(12, 2), nullable=False, default=Decimal("1"))
    unit_price = Column(Numeric(12, 2), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)

    # Catalog service this line was billed from, if any
    service_id = Column(
        Integer,
        ForeignKey("service_offerings.id", ondelete="SET NULL"),
        nullable=True,
    )

    invoice = relationship("Invoice", back_populates="items")

    def __repr__(self) -> str:
        return f"<InvoiceItem(name={self.name}, amount={self.amount})>"


class Payment(Base, PrimaryKeyMixin):
    """Payment applied against an invoice. Has no lifecycle of its own."""

    __tablename__ = "payments"

    invoice_id = Column(
        Integer,
        ForeignKey("invoices.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    amount = Column(Numeric(12, 2), nullable=False)
    date = Column(DateTime, nullable=False, default=utcnow)
    method = Column(
        SQLEnum(PaymentMethod, name="paymentmethod"),
        nullable=False,
        default=PaymentMethod.CASH,
    )
    transaction_id = Column(String(255), nullable=True)
    note = Column(Text, nullable=True)

    invoice = relationship("Invoice", back_populates="payments")

    def __repr__(self) -> str:
        return f"<Payment(id={self.id}, amount={self.amount}, method={self.method})>"
