"""
Invoice Data Access Object (DAO).

WHAT: Database operations for the Invoice model and its owned children.

WHY: The ledger service and the file-access gate both read invoices; keeping
the queries here means the client scoping and the newest-first ordering are
written once.

HOW: Extends BaseDAO with invoice-specific queries:
- Invoice number uniqueness pre-check
- Client-scoped listing with optional status filter
- Full per-client invoice set for the file-access gate
- Fresh reloads that bypass the identity map
"""

from typing import List, Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from caportal.dao.base import BaseDAO
from caportal.models.invoice import Invoice, InvoiceStatus, Payment


class InvoiceDAO(BaseDAO[Invoice]):
    """
    Data Access Object for Invoice model.

    Line items and payments are loaded eagerly (selectin) with every invoice,
    so callers never trigger lazy loads on the async session.
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize InvoiceDAO.

        Args:
            session: Async database session
        """
        super().__init__(Invoice, session)

    async def get_fresh(self, invoice_id: int) -> Optional[Invoice]:
        """
        Load an invoice, overwriting any stale state held in the session.

        WHY: Ledger mutations recompute totals from the payment list, so the
        list must reflect what is committed, not what an earlier read in the
        same session cached.

        Args:
            invoice_id: Invoice primary key

        Returns:
            Invoice with items and payments, or None
        """
        result = await self.session.execute(
            select(Invoice)
            .where(Invoice.id == invoice_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def invoice_number_taken(
        self,
        invoice_number: str,
        exclude_id: Optional[int] = None,
    ) -> bool:
        """Check whether another invoice already uses this number."""
        query = select(Invoice.id).where(Invoice.invoice_number == invoice_number)
        if exclude_id is not None:
            query = query.where(Invoice.id != exclude_id)
        result = await self.session.execute(query.limit(1))
        return result.scalar_one_or_none() is not None

    async def list_invoices(
        self,
        client_id: Optional[int] = None,
        status: Optional[InvoiceStatus] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Invoice]:
        """
        List invoices, newest created first.

        Args:
            client_id: Restrict to one client (None = all clients)
            status: Restrict to one status
            skip: Pagination offset
            limit: Page size

        Returns:
            List of invoices
        """
        return await self.get_all(skip=skip, limit=limit, client_id=client_id, status=status)

    async def get_all_for_client(self, client_id: int) -> List[Invoice]:
        """
        Get every invoice of a client, unpaginated.

        WHY: The file-access gate must see the client's complete billing
        history; a page of it could hide an overdue invoice.

        Args:
            client_id: Client ID

        Returns:
            All invoices for the client, newest first
        """
        result = await self.session.execute(
            select(Invoice)
            .where(Invoice.client_id == client_id)
            .order_by(*self._newest_first())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    def find_payment(self, invoice: Invoice, payment_id: int) -> Optional[Payment]:
        """Find a payment in an invoice's loaded payment list."""
        for payment in invoice.payments:
            if payment.id == payment_id:
                return payment
        return None
