"""
Invoice PDF generation.

WHAT: Renders an invoice, its line items and its payment history to PDF
with ReportLab.

WHY: Clients download invoices for their own records and staff print them
for the physical client file. Generating on demand from the ledger means
the PDF always shows the current paid amount and balance.

HOW: ReportLab platypus flowables on an A4 page; office branding comes from
settings. Returns bytes for a streaming response.
"""

import io
import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, List, Optional
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_RIGHT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import mm
from reportlab.platypus import (
    SimpleDocTemplate,
    Paragraph,
    Spacer,
    Table,
    TableStyle,
)

from caportal.core.config import settings
from caportal.models.client import Client
from caportal.models.invoice import Invoice, InvoiceStatus

logger = logging.getLogger(__name__)


@dataclass
class OfficeInfo:
    """Branding printed at the top of every invoice."""

    name: str
    address: str = ""
    phone: str = ""
    email: str = ""
    currency_symbol: str = "Rs."

    @classmethod
    def from_settings(cls) -> "OfficeInfo":
        return cls(
            name=settings.OFFICE_NAME,
            address=settings.OFFICE_ADDRESS,
            phone=settings.OFFICE_PHONE,
            email=settings.OFFICE_EMAIL,
            currency_symbol=settings.CURRENCY_SYMBOL,
        )


STATUS_COLORS = {
    InvoiceStatus.PAID: colors.HexColor("#2f855a"),
    InvoiceStatus.PARTIAL: colors.HexColor("#b7791f"),
    InvoiceStatus.PENDING: colors.HexColor("#c53030"),
    InvoiceStatus.CANCELLED: colors.HexColor("#718096"),
}


def get_styles():
    """Sample stylesheet plus the invoice-specific paragraph styles."""
    styles = getSampleStyleSheet()

    styles.add(ParagraphStyle(
        name="OfficeTitle",
        parent=styles["Heading1"],
        fontSize=20,
        spaceAfter=4,
        textColor=colors.HexColor("#1a365d"),
    ))
    styles.add(ParagraphStyle(
        name="OfficeContact",
        parent=styles["Normal"],
        fontSize=8,
        textColor=colors.HexColor("#4a5568"),
    ))
    styles.add(ParagraphStyle(
        name="InvoiceBody",
        parent=styles["Normal"],
        fontSize=10,
        spaceAfter=2,
    ))
    styles.add(ParagraphStyle(
        name="InvoiceRight",
        parent=styles["Normal"],
        fontSize=10,
        alignment=TA_RIGHT,
    ))
    styles.add(ParagraphStyle(
        name="SectionTitle",
        parent=styles["Heading3"],
        spaceBefore=12,
        spaceAfter=6,
        textColor=colors.HexColor("#2d3748"),
    ))

    return styles


def format_amount(amount: Any, symbol: str = "Rs.") -> str:
    """Format an amount with the office currency symbol, e.g. "Rs. 1,234.50"."""
    try:
        value = float(amount or 0)
    except (TypeError, ValueError):
        value = 0.0
    return f"{symbol} {value:,.2f}"


def format_date(d: Any) -> str:
    """Format a date as 15 Jan 2024."""
    if d is None:
        return ""
    if isinstance(d, datetime):
        d = d.date()
    if isinstance(d, date):
        return d.strftime("%d %b %Y")
    return str(d)


TABLE_STYLE = [
    ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#edf2f7")),
    ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
    ("FONTSIZE", (0, 0), (-1, -1), 9),
    ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
    ("TOPPADDING", (0, 0), (-1, -1), 6),
    ("ALIGN", (1, 0), (-1, -1), "RIGHT"),
    ("LINEBELOW", (0, 0), (-1, -1), 0.25, colors.HexColor("#cbd5e0")),
]


class InvoicePDFService:
    """
    Builds invoice PDFs.

    Example:
        pdf_bytes = InvoicePDFService().generate_invoice_pdf(invoice, client)
    """

    def __init__(self, office: Optional[OfficeInfo] = None):
        self.office = office or OfficeInfo.from_settings()
        self.styles = get_styles()

    def _money(self, amount: Any) -> str:
        return format_amount(amount, self.office.currency_symbol)

    def _header(self, invoice: Invoice, client: Client) -> List:
        elements = [Paragraph(escape(self.office.name), self.styles["OfficeTitle"])]

        contact = " | ".join(
            part for part in (self.office.address, self.office.phone, self.office.email) if part
        )
        if contact:
            elements.append(Paragraph(escape(contact), self.styles["OfficeContact"]))
        elements.append(Spacer(1, 8 * mm))

        bill_to = [
            Paragraph("<b>Bill To:</b>", self.styles["InvoiceBody"]),
            Paragraph(escape(client.name), self.styles["InvoiceBody"]),
            Paragraph(escape(client.email), self.styles["InvoiceBody"]),
        ]
        if client.gst_number:
            bill_to.append(Paragraph(f"GSTIN: {client.gst_number}", self.styles["InvoiceBody"]))
        if client.pan_number:
            bill_to.append(Paragraph(f"PAN: {client.pan_number}", self.styles["InvoiceBody"]))

        meta = [
            Paragraph(f"<b>INVOICE</b> {invoice.invoice_number}", self.styles["InvoiceRight"]),
            Paragraph(f"Issue date: {format_date(invoice.issue_date)}", self.styles["InvoiceRight"]),
            Paragraph(f"Due date: {format_date(invoice.due_date)}", self.styles["InvoiceRight"]),
        ]

        table = Table([[bill_to, meta]], colWidths=[95 * mm, 85 * mm])
        table.setStyle(TableStyle([("VALIGN", (0, 0), (-1, -1), "TOP")]))
        elements.append(table)
        elements.append(Spacer(1, 6 * mm))
        return elements

    def _items(self, invoice: Invoice) -> List:
        data = [["Description", "Qty", "Unit Price", "Amount"]]
        for item in invoice.items:
            data.append([
                Paragraph(escape(item.name), self.styles["InvoiceBody"]),
                f"{item.quantity.normalize():f}",
                self._money(item.unit_price),
                self._money(item.amount),
            ])

        table = Table(data, colWidths=[90 * mm, 20 * mm, 35 * mm, 35 * mm])
        table.setStyle(TableStyle(TABLE_STYLE))
        return [table, Spacer(1, 4 * mm)]

    def _totals(self, invoice: Invoice) -> List:
        rows = [
            ["Subtotal", self._money(invoice.subtotal)],
            ["Tax", self._money(invoice.tax_amount)],
            ["Total", self._money(invoice.total_amount)],
            ["Paid", self._money(invoice.paid_amount)],
            ["Balance Due", self._money(invoice.balance_amount)],
        ]
        table = Table(rows, colWidths=[145 * mm, 35 * mm])
        table.setStyle(TableStyle([
            ("ALIGN", (0, 0), (-1, -1), "RIGHT"),
            ("FONTSIZE", (0, 0), (-1, -1), 10),
            ("FONTNAME", (0, 2), (-1, 2), "Helvetica-Bold"),
            ("FONTNAME", (0, 4), (-1, 4), "Helvetica-Bold"),
            ("LINEABOVE", (0, 2), (-1, 2), 0.5, colors.black),
        ]))

        status = InvoiceStatus(invoice.status)
        status_style = ParagraphStyle(
            name="StatusLine",
            parent=self.styles["InvoiceRight"],
            textColor=STATUS_COLORS[status],
            fontName="Helvetica-Bold",
        )
        return [table, Spacer(1, 2 * mm), Paragraph(f"Status: {status.value}", status_style)]

    def _payments(self, invoice: Invoice) -> List:
        if not invoice.payments:
            return []

        data = [["Date", "Method", "Reference", "Amount"]]
        for payment in invoice.payments:
            data.append([
                format_date(payment.date),
                payment.method.value.replace("_", " ").title(),
                payment.transaction_id or "",
                self._money(payment.amount),
            ])

        table = Table(data, colWidths=[35 * mm, 40 * mm, 70 * mm, 35 * mm])
        table.setStyle(TableStyle(TABLE_STYLE + [("ALIGN", (1, 0), (2, -1), "LEFT")]))
        return [Paragraph("Payments Received", self.styles["SectionTitle"]), table]

    def generate_invoice_pdf(self, invoice: Invoice, client: Client) -> bytes:
        """
        Render an invoice to PDF.

        Args:
            invoice: Invoice with items and payments loaded
            client: Billed client

        Returns:
            PDF document bytes
        """
        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            leftMargin=15 * mm,
            rightMargin=15 * mm,
            topMargin=15 * mm,
            bottomMargin=15 * mm,
            title=f"Invoice {invoice.invoice_number}",
            author=self.office.name,
        )

        elements = self._header(invoice, client)
        elements += self._items(invoice)
        elements += self._totals(invoice)
        elements += self._payments(invoice)

        if invoice.notes:
            elements.append(Paragraph("Notes", self.styles["SectionTitle"]))
            elements.append(Paragraph(escape(invoice.notes), self.styles["InvoiceBody"]))

        doc.build(elements)
        logger.debug("Rendered PDF for invoice %s", invoice.invoice_number)
        return buffer.getvalue()
