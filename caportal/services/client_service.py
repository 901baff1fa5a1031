"""
Client removal service.

WHAT: Deletes a client together with everything that belongs to it: stored
documents, invoices with their items and payments, deadline reminders and
the client's portal logins.

WHY: Database cascades remove the rows but not the objects in storage, and
the file records are the only map from a client to its storage keys. Files
are therefore purged first, while the records still exist.
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from caportal.core.exceptions import ClientNotFoundError
from caportal.dao.client import ClientDAO
from caportal.dao.invoice import InvoiceDAO
from caportal.dao.reminder import ReminderDAO
from caportal.models.client import Client
from caportal.models.user import User
from caportal.services.file_service import FileService
from caportal.services.storage import FileStorage


logger = logging.getLogger(__name__)


class ClientService:
    """Service for removing a client and its records."""

    def __init__(self, session: AsyncSession, storage: FileStorage):
        self.session = session
        self.client_dao = ClientDAO(session)
        self.file_service = FileService(session, storage)

    async def delete_client(self, client_id: int) -> Client:
        """
        Delete a client and all of its records.

        Returns:
            The removed client (detached; read its fields only)

        Raises:
            ClientNotFoundError: Unknown client
        """
        client = await self.client_dao.get_by_id(client_id)
        if client is None:
            raise ClientNotFoundError(message=f"Client {client_id} not found", client_id=client_id)

        files = await self.file_service.purge_client(client_id)

        invoices = await InvoiceDAO(self.session).get_all_for_client(client_id)
        for invoice in invoices:
            await self.session.delete(invoice)

        reminders = await ReminderDAO(self.session).delete_for_client(client_id)

        result = await self.session.execute(select(User).where(User.client_id == client_id))
        logins = list(result.scalars().all())
        for user in logins:
            await self.session.delete(user)

        await self.session.delete(client)
        await self.session.flush()

        logger.info(
            "Client %s deleted with %d file(s), %d invoice(s), %d reminder(s), %d login(s)",
            client_id,
            files,
            len(invoices),
            reminders,
            len(logins),
        )
        return client
