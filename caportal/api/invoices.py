"""
Invoice API endpoints.

WHAT: RESTful API for the invoice ledger: issuing invoices, recording and
removing payments, status overrides, PDF download, and the payment-status
diagnostic used by the client dashboard.

WHY: Every write goes through InvoiceLedger, which re-derives subtotal,
total, paid amount, balance and status from the stored items and payments.
Handlers never set derived figures themselves.

HOW: FastAPI router with:
- BILLING_ROLES required for every write
- Ownership scoping for CLIENT principals on reads
- Audit logging for every mutation
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from caportal.core.deps import get_current_user, require_billing
from caportal.core.exceptions import ClientNotFoundError
from caportal.dao.client import ClientDAO
from caportal.db.session import get_db
from caportal.models.invoice import InvoiceStatus
from caportal.models.user import User
from caportal.schemas.invoice import (
    InvoiceCreate,
    InvoiceListResponse,
    InvoiceResponse,
    InvoiceStatusUpdate,
    InvoiceUpdate,
    PaymentCreate,
    PaymentStatusResponse,
)
from caportal.services.access_gate import FileAccessGate
from caportal.services.audit import AuditService
from caportal.services.ledger import InvoiceLedger
from caportal.services.pdf_service import InvoicePDFService


router = APIRouter(prefix="/invoices", tags=["invoices"])
payment_status_router = APIRouter(prefix="/payment-status", tags=["invoices"])


def get_pdf_service() -> InvoicePDFService:
    """Dependency returning the PDF renderer with office branding from settings."""
    return InvoicePDFService()


# ============================================================================
# Invoice CRUD Endpoints
# ============================================================================


@router.post(
    "",
    response_model=InvoiceResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create invoice",
)
async def create_invoice(
    data: InvoiceCreate,
    current_user: User = Depends(require_billing),
    db: AsyncSession = Depends(get_db),
):
    """
    Issue a new invoice for a client.

    WHAT: Creates the invoice with its line items. It starts PENDING with
    balance equal to total.

    RBAC: ADMIN or MANAGER.

    Raises:
        ValidationError (400): Unknown client, bad amounts, duplicate number
    """
    invoice = await InvoiceLedger(db).create_invoice(
        client_id=data.client_id,
        items=data.items,
        tax=data.tax_amount,
        due_date=data.due_date,
        created_by=current_user.id,
        issue_date=data.issue_date,
        notes=data.notes,
        invoice_number=data.invoice_number,
    )

    await AuditService(db).log_create(
        resource_type="invoice",
        resource_id=invoice.id,
        actor_user_id=current_user.id,
        client_id=invoice.client_id,
        extra_data={
            "invoice_number": invoice.invoice_number,
            "total": str(invoice.total_amount),
        },
    )
    return invoice


@router.get(
    "",
    response_model=InvoiceListResponse,
    summary="List invoices",
)
async def list_invoices(
    client_id: Optional[int] = Query(default=None, description="Filter by client (staff only)"),
    status_filter: Optional[InvoiceStatus] = Query(default=None, alias="status"),
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=500),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> InvoiceListResponse:
    """
    List invoices newest first.

    A CLIENT login always sees its own client's invoices; the client_id
    filter is only honoured for staff.
    """
    ledger = InvoiceLedger(db)
    invoices = await ledger.list_invoices(
        current_user,
        client_id=client_id,
        status=status_filter,
        skip=skip,
        limit=limit,
    )
    total = await ledger.count_invoices(current_user, client_id=client_id, status=status_filter)

    return InvoiceListResponse(
        items=[InvoiceResponse.model_validate(invoice) for invoice in invoices],
        total=total,
        skip=skip,
        limit=limit,
    )


@router.get(
    "/{invoice_id}",
    response_model=InvoiceResponse,
    summary="Get invoice",
)
async def get_invoice(
    invoice_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Get one invoice with items and payments.

    Raises:
        InvoiceNotFoundError (404): Unknown invoice
        AccessDeniedError (403): Another client's invoice
    """
    return await InvoiceLedger(db).get_invoice(current_user, invoice_id)


@router.put(
    "/{invoice_id}",
    response_model=InvoiceResponse,
    summary="Update invoice",
)
async def update_invoice(
    invoice_id: int,
    data: InvoiceUpdate,
    current_user: User = Depends(require_billing),
    db: AsyncSession = Depends(get_db),
):
    """
    Edit an invoice's items, tax, dates, notes, number or client.

    Totals, balance and status are recomputed from the stored payments.
    """
    changes = data.model_dump(exclude_unset=True)
    invoice = await InvoiceLedger(db).update_invoice(
        invoice_id,
        items=data.items,
        tax=data.tax_amount,
        notes=data.notes,
        due_date=data.due_date,
        issue_date=data.issue_date,
        invoice_number=data.invoice_number,
        client_id=data.client_id,
        # An explicit null clears the notes; an omitted field leaves them
        clear_notes="notes" in data.model_fields_set and data.notes is None,
    )

    await AuditService(db).log_update(
        resource_type="invoice",
        resource_id=invoice.id,
        actor_user_id=current_user.id,
        changes={"fields": sorted(changes)},
        client_id=invoice.client_id,
    )
    return invoice


@router.patch(
    "/{invoice_id}/status",
    response_model=InvoiceResponse,
    summary="Set invoice status",
)
async def set_invoice_status(
    invoice_id: int,
    data: InvoiceStatusUpdate,
    current_user: User = Depends(require_billing),
    db: AsyncSession = Depends(get_db),
):
    """
    Cancel an invoice, or lift a cancellation.

    Any status other than CANCELLED is re-derived from the payments, so the
    stored status may differ from the one requested.
    """
    invoice = await InvoiceLedger(db).set_status(invoice_id, data.status)

    await AuditService(db).log_update(
        resource_type="invoice",
        resource_id=invoice.id,
        actor_user_id=current_user.id,
        changes={
            "requested_status": data.status.value,
            "status": InvoiceStatus(invoice.status).value,
        },
        client_id=invoice.client_id,
    )
    return invoice


@router.delete(
    "/{invoice_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete invoice",
)
async def delete_invoice(
    invoice_id: int,
    current_user: User = Depends(require_billing),
    db: AsyncSession = Depends(get_db),
) -> None:
    """Hard-delete an invoice with its items and payments."""
    ledger = InvoiceLedger(db)
    invoice = await ledger.get_invoice(current_user, invoice_id)
    client_id, invoice_number = invoice.client_id, invoice.invoice_number

    await ledger.delete_invoice(invoice_id)

    await AuditService(db).log_delete(
        resource_type="invoice",
        resource_id=invoice_id,
        actor_user_id=current_user.id,
        client_id=client_id,
        extra_data={"invoice_number": invoice_number},
    )


# ============================================================================
# Payments
# ============================================================================


@router.post(
    "/{invoice_id}/payments",
    response_model=InvoiceResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record payment",
)
async def add_payment(
    invoice_id: int,
    data: PaymentCreate,
    current_user: User = Depends(require_billing),
    db: AsyncSession = Depends(get_db),
):
    """
    Record a payment and return the recomputed invoice.

    Raises:
        InvoiceNotFoundError (404): Unknown invoice
        ConcurrencyConflictError (409): Invoice changed mid-request
    """
    invoice = await InvoiceLedger(db).add_payment(
        invoice_id,
        amount=data.amount,
        method=data.method,
        date=data.date,
        transaction_id=data.transaction_id,
        note=data.note,
    )

    await AuditService(db).log_create(
        resource_type="payment",
        resource_id=invoice.payments[-1].id,
        actor_user_id=current_user.id,
        client_id=invoice.client_id,
        extra_data={
            "invoice_id": invoice.id,
            "amount": str(data.amount),
            "method": data.method.value,
        },
    )
    return invoice


@router.delete(
    "/{invoice_id}/payments/{payment_id}",
    response_model=InvoiceResponse,
    summary="Remove payment",
)
async def remove_payment(
    invoice_id: int,
    payment_id: int,
    current_user: User = Depends(require_billing),
    db: AsyncSession = Depends(get_db),
):
    """Remove a payment and return the recomputed invoice."""
    invoice = await InvoiceLedger(db).remove_payment(invoice_id, payment_id)

    await AuditService(db).log_delete(
        resource_type="payment",
        resource_id=payment_id,
        actor_user_id=current_user.id,
        client_id=invoice.client_id,
        extra_data={"invoice_id": invoice.id},
    )
    return invoice


# ============================================================================
# PDF
# ============================================================================


@router.get(
    "/{invoice_id}/pdf",
    summary="Download invoice PDF",
)
async def download_invoice_pdf(
    invoice_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    pdf_service: InvoicePDFService = Depends(get_pdf_service),
) -> Response:
    """
    Render the invoice as a PDF attachment.

    Same ownership rule as reading the invoice.
    """
    invoice = await InvoiceLedger(db).get_invoice(current_user, invoice_id)

    client = await ClientDAO(db).get_by_id(invoice.client_id)
    if client is None:
        raise ClientNotFoundError(client_id=invoice.client_id)

    pdf_bytes = pdf_service.generate_invoice_pdf(invoice=invoice, client=client)

    filename = f"invoice-{invoice.invoice_number}.pdf"
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
        },
    )


# ============================================================================
# Payment status
# ============================================================================


@payment_status_router.get(
    "/{client_id}",
    response_model=PaymentStatusResponse,
    summary="Client payment status",
)
async def get_payment_status(
    client_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> PaymentStatusResponse:
    """
    Billing state of a client as the file-access gate sees it.

    WHY: The client dashboard shows the overdue invoices up front instead
    of failing on the first download. Staff get the same evaluation so
    they can see what the client is told.

    Raises:
        AccessDeniedError (403): CLIENT asking about another client
        ClientNotFoundError (404): Unknown client (staff)
    """
    if current_user.is_staff and await ClientDAO(db).get_by_id(client_id) is None:
        raise ClientNotFoundError(message=f"Client {client_id} not found", client_id=client_id)

    decision = await FileAccessGate(db).client_status(current_user, client_id)
    return PaymentStatusResponse(client_id=client_id, **decision.to_dict())
