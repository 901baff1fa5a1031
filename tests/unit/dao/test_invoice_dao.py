"""
Unit tests for InvoiceDAO.

WHAT: Number checks, listing and the unpaginated per-client queries the
file-access gate relies on.
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from caportal.dao.invoice import InvoiceDAO
from caportal.models.invoice import InvoiceStatus
from caportal.services.ledger import InvoiceLedger
from tests.factories import InvoiceFactory


TODAY = date.today()


class TestLookup:
    @pytest.mark.asyncio
    async def test_invoice_number_taken_excludes_self(self, db_session, test_client_record):
        invoice = await InvoiceFactory.create(db_session, test_client_record.id, invoice_number="INV-2024-002")
        dao = InvoiceDAO(db_session)

        assert await dao.invoice_number_taken("INV-2024-002") is True
        assert await dao.invoice_number_taken("INV-2024-002", exclude_id=invoice.id) is False

    @pytest.mark.asyncio
    async def test_children_loaded_with_invoice(self, db_session, test_client_record):
        invoice = await InvoiceFactory.create(db_session, test_client_record.id, payments=[Decimal("100")])

        loaded = await InvoiceDAO(db_session).get_fresh(invoice.id)

        assert len(loaded.items) == 1
        assert [p.amount for p in loaded.payments] == [Decimal("100.00")]
        assert InvoiceDAO(db_session).find_payment(loaded, loaded.payments[0].id) is loaded.payments[0]
        assert InvoiceDAO(db_session).find_payment(loaded, 999) is None


class TestListing:
    @pytest.mark.asyncio
    async def test_list_scoped_and_filtered(self, db_session, test_client_record, other_client_record):
        first = await InvoiceFactory.create(db_session, test_client_record.id)
        paid = await InvoiceFactory.create(db_session, test_client_record.id, payments=[Decimal("1000")])
        await InvoiceFactory.create(db_session, other_client_record.id)
        dao = InvoiceDAO(db_session)

        own = await dao.list_invoices(client_id=test_client_record.id)
        assert [i.id for i in own] == [paid.id, first.id]

        only_paid = await dao.list_invoices(client_id=test_client_record.id, status=InvoiceStatus.PAID)
        assert [i.id for i in only_paid] == [paid.id]

        assert len(await dao.list_invoices()) == 3
        assert await dao.count(client_id=test_client_record.id) == 2

    @pytest.mark.asyncio
    async def test_get_all_for_client_is_unpaginated(self, db_session, test_client_record):
        for _ in range(3):
            await InvoiceFactory.create(db_session, test_client_record.id)

        assert len(await InvoiceDAO(db_session).get_all_for_client(test_client_record.id)) == 3

    @pytest.mark.asyncio
    async def test_overdue_excludes_paid_cancelled_and_current(self, db_session, test_client_record):
        overdue = await InvoiceFactory.create(
            db_session, test_client_record.id, due_date=TODAY - timedelta(days=3), payments=[Decimal("50")]
        )
        await InvoiceFactory.create(
            db_session, test_client_record.id, due_date=TODAY - timedelta(days=3), payments=[Decimal("1000")]
        )
        cancelled = await InvoiceFactory.create(db_session, test_client_record.id, due_date=TODAY - timedelta(days=3))
        await InvoiceLedger(db_session).set_status(cancelled.id, InvoiceStatus.CANCELLED)
        await InvoiceFactory.create(db_session, test_client_record.id, due_date=TODAY)

        invoices = await InvoiceDAO(db_session).get_all_for_client(test_client_record.id)

        assert [i.id for i in invoices if i.is_overdue(TODAY)] == [overdue.id]
