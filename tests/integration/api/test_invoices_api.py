"""
Integration tests for invoice endpoints.

WHY: The invoice API is where office staff bill clients and record what
was paid. These tests cover the full HTTP path: validation, role checks,
client scoping, recomputed figures and the audit trail.
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from caportal.models.audit_log import AuditAction, AuditLog
from tests.factories import InvoiceFactory


DUE = (date.today() + timedelta(days=30)).isoformat()


def invoice_payload(client_id, **overrides):
    payload = {
        "client_id": client_id,
        "items": [
            {"name": "ITR filing FY 2023-24", "quantity": 1, "unit_price": "1000"},
            {"name": "Capital gains schedule", "quantity": 2, "unit_price": "250"},
        ],
        "tax_amount": "270",
        "due_date": DUE,
    }
    payload.update(overrides)
    return payload


class TestCreateInvoice:
    @pytest.mark.asyncio
    async def test_create_derives_figures(self, client: AsyncClient, manager_headers, test_client_record):
        response = await client.post(
            "/api/invoices", json=invoice_payload(test_client_record.id), headers=manager_headers
        )

        assert response.status_code == 201
        data = response.json()
        assert data["invoice_number"].startswith("INV-")
        assert data["status"] == "PENDING"
        assert data["subtotal"] == 1500.0
        assert data["total_amount"] == 1770.0
        assert data["paid_amount"] == 0.0
        assert data["balance_amount"] == 1770.0
        assert [item["amount"] for item in data["items"]] == [1000.0, 500.0]
        assert data["version"] == 1

    @pytest.mark.asyncio
    async def test_create_is_audited(self, client: AsyncClient, db_session, manager_headers, test_client_record):
        response = await client.post(
            "/api/invoices", json=invoice_payload(test_client_record.id), headers=manager_headers
        )

        result = await db_session.execute(
            select(AuditLog).where(AuditLog.resource_type == "invoice", AuditLog.action == AuditAction.CREATE)
        )
        entry = result.scalar_one()
        assert entry.resource_id == response.json()["id"]
        assert entry.client_id == test_client_record.id

    @pytest.mark.asyncio
    async def test_unknown_client(self, client: AsyncClient, manager_headers):
        response = await client.post("/api/invoices", json=invoice_payload(9999), headers=manager_headers)

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_duplicate_number(self, client: AsyncClient, manager_headers, test_client_record):
        payload = invoice_payload(test_client_record.id, invoice_number="INV-2024-100")
        first = await client.post("/api/invoices", json=payload, headers=manager_headers)
        second = await client.post("/api/invoices", json=payload, headers=manager_headers)

        assert first.status_code == 201
        assert second.status_code == 400
        assert second.json()["error"] == "DuplicateInvoiceNumberError"

    @pytest.mark.asyncio
    async def test_negative_price_rejected(self, client: AsyncClient, manager_headers, test_client_record):
        payload = invoice_payload(
            test_client_record.id, items=[{"name": "Refund", "quantity": 1, "unit_price": "-10"}]
        )

        response = await client.post("/api/invoices", json=payload, headers=manager_headers)

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_no_items_rejected(self, client: AsyncClient, manager_headers, test_client_record):
        response = await client.post(
            "/api/invoices", json=invoice_payload(test_client_record.id, items=[]), headers=manager_headers
        )

        assert response.status_code == 400


    @pytest.mark.asyncio
    async def test_quantity_beyond_two_decimals_rejected(self, client: AsyncClient, manager_headers, test_client_record):
        payload = invoice_payload(
            test_client_record.id, items=[{"name": "Bookkeeping hours", "quantity": "2.125", "unit_price": "1000"}]
        )

        response = await client.post("/api/invoices", json=payload, headers=manager_headers)

        assert response.status_code == 400


class TestReadInvoices:
    @pytest.mark.asyncio
    async def test_client_sees_only_own_invoices(
        self, client: AsyncClient, db_session, client_headers, test_client_record, other_client_record
    ):
        own = await InvoiceFactory.create(db_session, test_client_record.id)
        await InvoiceFactory.create(db_session, other_client_record.id)

        # client_id filter is ignored for client logins
        response = await client.get(
            f"/api/invoices?client_id={other_client_record.id}", headers=client_headers
        )

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert [i["id"] for i in data["items"]] == [own.id]

    @pytest.mark.asyncio
    async def test_staff_filter_by_client_and_status(
        self, client: AsyncClient, db_session, intern_headers, test_client_record, other_client_record
    ):
        paid = await InvoiceFactory.create(db_session, test_client_record.id, payments=[Decimal("1000")])
        await InvoiceFactory.create(db_session, test_client_record.id)
        await InvoiceFactory.create(db_session, other_client_record.id)

        everything = await client.get("/api/invoices", headers=intern_headers)
        filtered = await client.get(
            f"/api/invoices?client_id={test_client_record.id}&status=PAID", headers=intern_headers
        )

        assert everything.json()["total"] == 3
        assert [i["id"] for i in filtered.json()["items"]] == [paid.id]

    @pytest.mark.asyncio
    async def test_other_clients_invoice_forbidden(
        self, client: AsyncClient, db_session, client_headers, other_client_record
    ):
        invoice = await InvoiceFactory.create(db_session, other_client_record.id)

        response = await client.get(f"/api/invoices/{invoice.id}", headers=client_headers)

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_missing_invoice(self, client: AsyncClient, staff_headers):
        response = await client.get("/api/invoices/4040", headers=staff_headers)

        assert response.status_code == 404
        assert response.json()["error"] == "InvoiceNotFoundError"

    @pytest.mark.asyncio
    async def test_pdf_download(self, client: AsyncClient, db_session, client_headers, test_client_record):
        invoice = await InvoiceFactory.create(db_session, test_client_record.id, payments=[Decimal("250")])

        response = await client.get(f"/api/invoices/{invoice.id}/pdf", headers=client_headers)

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert f'filename="invoice-{invoice.invoice_number}.pdf"' in response.headers["content-disposition"]
        assert response.content.startswith(b"%PDF")


class TestPayments:
    @pytest.mark.asyncio
    async def test_payment_sequence(self, client: AsyncClient, db_session, manager_headers, test_client_record):
        invoice = await InvoiceFactory.create(db_session, test_client_record.id)

        first = await client.post(
            f"/api/invoices/{invoice.id}/payments",
            json={"amount": "400", "method": "UPI", "transaction_id": "UPI-1"},
            headers=manager_headers,
        )
        assert first.status_code == 201
        assert first.json()["status"] == "PARTIAL"
        assert first.json()["balance_amount"] == 600.0

        second = await client.post(
            f"/api/invoices/{invoice.id}/payments",
            json={"amount": "600", "method": "BANK_TRANSFER"},
            headers=manager_headers,
        )
        data = second.json()
        assert data["status"] == "PAID"
        assert data["paid_amount"] == 1000.0
        assert data["balance_amount"] == 0.0
        assert len(data["payments"]) == 2

        removed = await client.delete(
            f"/api/invoices/{invoice.id}/payments/{data['payments'][1]['id']}", headers=manager_headers
        )
        assert removed.status_code == 200
        assert removed.json()["status"] == "PARTIAL"
        assert removed.json()["balance_amount"] == 600.0

    @pytest.mark.asyncio
    async def test_utc_timestamp_accepted(self, client: AsyncClient, db_session, manager_headers, test_client_record):
        invoice = await InvoiceFactory.create(db_session, test_client_record.id)

        response = await client.post(
            f"/api/invoices/{invoice.id}/payments",
            json={"amount": "250", "method": "UPI", "date": "2024-07-01T10:00:00Z"},
            headers=manager_headers,
        )

        assert response.status_code == 201
        assert response.json()["payments"][0]["date"] == "2024-07-01T10:00:00"

    @pytest.mark.asyncio
    async def test_zero_payment_rejected(self, client: AsyncClient, db_session, manager_headers, test_client_record):
        invoice = await InvoiceFactory.create(db_session, test_client_record.id)

        response = await client.post(
            f"/api/invoices/{invoice.id}/payments", json={"amount": "0"}, headers=manager_headers
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_unknown_payment(self, client: AsyncClient, db_session, manager_headers, test_client_record):
        invoice = await InvoiceFactory.create(db_session, test_client_record.id)

        response = await client.delete(f"/api/invoices/{invoice.id}/payments/777", headers=manager_headers)

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_staff_cannot_record_payments(
        self, client: AsyncClient, db_session, staff_headers, test_client_record
    ):
        invoice = await InvoiceFactory.create(db_session, test_client_record.id)

        response = await client.post(
            f"/api/invoices/{invoice.id}/payments", json={"amount": "100"}, headers=staff_headers
        )

        assert response.status_code == 403


class TestEditAndStatus:
    @pytest.mark.asyncio
    async def test_update_recomputes(self, client: AsyncClient, db_session, admin_headers, test_client_record):
        invoice = await InvoiceFactory.create(db_session, test_client_record.id, payments=[Decimal("500")])

        response = await client.put(
            f"/api/invoices/{invoice.id}",
            json={"items": [{"name": "Audit fee", "quantity": 1, "unit_price": "500"}]},
            headers=admin_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["total_amount"] == 500.0
        assert data["status"] == "PAID"

    @pytest.mark.asyncio
    async def test_explicit_null_clears_notes(self, client: AsyncClient, admin_headers, test_client_record):
        created = await client.post(
            "/api/invoices",
            json=invoice_payload(test_client_record.id, notes="Pay by cheque"),
            headers=admin_headers,
        )
        invoice_id = created.json()["id"]

        untouched = await client.put(f"/api/invoices/{invoice_id}", json={"tax_amount": "0"}, headers=admin_headers)
        cleared = await client.put(f"/api/invoices/{invoice_id}", json={"notes": None}, headers=admin_headers)

        assert untouched.json()["notes"] == "Pay by cheque"
        assert cleared.status_code == 200
        assert cleared.json()["notes"] is None

    @pytest.mark.asyncio
    async def test_cancel_and_restore(self, client: AsyncClient, db_session, admin_headers, test_client_record):
        invoice = await InvoiceFactory.create(db_session, test_client_record.id, payments=[Decimal("100")])

        cancelled = await client.patch(
            f"/api/invoices/{invoice.id}/status", json={"status": "CANCELLED"}, headers=admin_headers
        )
        assert cancelled.json()["status"] == "CANCELLED"

        # Payments still count while cancelled
        paid = await client.post(
            f"/api/invoices/{invoice.id}/payments", json={"amount": "50"}, headers=admin_headers
        )
        assert paid.json()["status"] == "CANCELLED"
        assert paid.json()["paid_amount"] == 150.0

        restored = await client.patch(
            f"/api/invoices/{invoice.id}/status", json={"status": "PAID"}, headers=admin_headers
        )
        assert restored.json()["status"] == "PARTIAL"

    @pytest.mark.asyncio
    async def test_delete(self, client: AsyncClient, db_session, admin_headers, test_client_record):
        invoice = await InvoiceFactory.create(db_session, test_client_record.id, payments=[Decimal("100")])

        response = await client.delete(f"/api/invoices/{invoice.id}", headers=admin_headers)
        assert response.status_code == 204

        response = await client.get(f"/api/invoices/{invoice.id}", headers=admin_headers)
        assert response.status_code == 404


class TestPaymentStatus:
    @pytest.mark.asyncio
    async def test_client_sees_overdue_figures(
        self, client: AsyncClient, db_session, client_headers, test_client_record
    ):
        overdue = await InvoiceFactory.create(
            db_session,
            test_client_record.id,
            due_date=date.today() - timedelta(days=5),
            payments=[Decimal("400")],
        )
        await InvoiceFactory.create(db_session, test_client_record.id)

        response = await client.get(f"/api/payment-status/{test_client_record.id}", headers=client_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["client_id"] == test_client_record.id
        assert data["has_file_access"] is False
        assert data["total_invoices"] == 2
        assert data["pending_invoices"] == 2
        assert data["overdue_invoices"] == 1
        assert data["total_outstanding"] == 600.0
        assert data["total_balance_due"] == 1600.0
        assert data["overdue_details"] == [
            {
                "invoice_number": overdue.invoice_number,
                "due_date": overdue.due_date.isoformat(),
                "balance_amount": 600.0,
            }
        ]

    @pytest.mark.asyncio
    async def test_client_cannot_query_other_client(
        self, client: AsyncClient, client_headers, other_client_record
    ):
        response = await client.get(f"/api/payment-status/{other_client_record.id}", headers=client_headers)

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_staff_unknown_client(self, client: AsyncClient, staff_headers):
        response = await client.get("/api/payment-status/9999", headers=staff_headers)

        assert response.status_code == 404
