"""
Pydantic schemas for invoice endpoints.

WHAT: Request/response models for invoices, line items, payments and the
payment-status diagnostic.

WHY: Request amounts arrive as Decimal so no float rounding enters the
ledger. Responses expose amounts as numbers for the frontend. Derived
fields (subtotal, total, paid, balance, status) are read-only: they are
never accepted from a request.

HOW: Uses Pydantic v2 with Field constraints and model_config.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from caportal.models.invoice import InvoiceStatus, PaymentMethod


# ============================================================================
# Request Schemas
# ============================================================================


class InvoiceItemCreate(BaseModel):
    """One line item."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=255, description="Line item description")
    quantity: Decimal = Field(default=Decimal("1"), gt=0, decimal_places=2, description="Quantity")
    unit_price: Decimal = Field(..., ge=0, decimal_places=2, description="Price per unit")
    service_id: Optional[int] = Field(default=None, description="Catalog service billed")


class InvoiceCreate(BaseModel):
    """
    Schema for issuing an invoice.

    invoice_number is optional; when omitted the server assigns
    INV-<epoch millis>.
    """

    model_config = ConfigDict(
        str_strip_whitespace=True,
        json_schema_extra={
            "example": {
                "client_id": 1,
                "items": [{"name": "ITR filing FY 2023-24", "quantity": 1, "unit_price": 1000}],
                "tax_amount": 180,
                "due_date": "2024-07-31",
            }
        },
    )

    client_id: int
    items: List[InvoiceItemCreate] = Field(..., min_length=1)
    tax_amount: Decimal = Field(default=Decimal("0"), ge=0, description="Flat tax amount")
    due_date: date
    issue_date: Optional[date] = None
    notes: Optional[str] = Field(default=None, max_length=5000)
    invoice_number: Optional[str] = Field(default=None, min_length=1, max_length=50)


class InvoiceUpdate(BaseModel):
    """
    Schema for editing an invoice.

    Omitted fields are unchanged. ``notes: null`` clears the notes; null
    for any other field counts as omitted.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    items: Optional[List[InvoiceItemCreate]] = Field(default=None, min_length=1)
    tax_amount: Optional[Decimal] = Field(default=None, ge=0)
    notes: Optional[str] = Field(default=None, max_length=5000)
    due_date: Optional[date] = None
    issue_date: Optional[date] = None
    invoice_number: Optional[str] = Field(default=None, min_length=1, max_length=50)
    client_id: Optional[int] = None


class InvoiceStatusUpdate(BaseModel):
    """Explicit status override (cancel / un-cancel)."""

    status: InvoiceStatus


class PaymentCreate(BaseModel):
    """Schema for recording a payment."""

    model_config = ConfigDict(str_strip_whitespace=True)

    amount: Decimal = Field(..., gt=0, description="Payment amount received")
    method: PaymentMethod = Field(default=PaymentMethod.CASH)
    date: Optional[datetime] = Field(default=None, description="Defaults to now")
    transaction_id: Optional[str] = Field(default=None, max_length=255)
    note: Optional[str] = Field(default=None, max_length=1000)


# ============================================================================
# Response Schemas
# ============================================================================


class InvoiceItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    quantity: float
    unit_price: float
    amount: float
    service_id: Optional[int] = None


class PaymentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    amount: float
    date: datetime
    method: PaymentMethod
    transaction_id: Optional[str] = None
    note: Optional[str] = None


class InvoiceResponse(BaseModel):
    """Complete invoice with items, payments and derived figures."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    invoice_number: str
    client_id: int
    status: InvoiceStatus

    items: List[InvoiceItemResponse]
    payments: List[PaymentResponse]

    subtotal: float
    tax_amount: float
    total_amount: float
    paid_amount: float
    balance_amount: float

    issue_date: date
    due_date: date
    notes: Optional[str] = None
    created_by: Optional[int] = None
    version: int

    created_at: datetime
    updated_at: datetime


class InvoiceListResponse(BaseModel):
    """Paginated list response for invoices, newest first."""

    items: List[InvoiceResponse]
    total: int
    skip: int
    limit: int


class OverdueInvoiceDetail(BaseModel):
    invoice_number: str
    due_date: date
    balance_amount: float


class PaymentStatusResponse(BaseModel):
    """
    File-access diagnostic for one client.

    WHY: The client dashboard calls this before showing documents so it can
    warn about overdue invoices instead of failing on the first download.
    """

    client_id: int
    has_file_access: bool
    total_invoices: int
    paid_invoices: int
    pending_invoices: int
    overdue_invoices: int
    total_outstanding: float = Field(description="Sum of overdue balances")
    total_balance_due: float = Field(description="Sum of all unpaid balances")
    overdue_details: List[OverdueInvoiceDetail]
