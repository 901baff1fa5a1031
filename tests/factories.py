"""
Test factories for creating test data.

WHY: Factories provide a consistent, reusable way to create test objects,
reducing duplication and keeping tests stable when models change.
Invoices are created through the ledger so their derived figures are
always consistent with their items and payments.
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import Dict, List, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from caportal.core.auth import create_access_token, hash_password
from caportal.models.client import Client
from caportal.models.client_file import ClientFile, FileCategory
from caportal.models.invoice import Invoice, PaymentMethod
from caportal.models.reminder import Reminder, ReminderStatus, ReminderType
from caportal.models.user import User, UserRole
from caportal.services.ledger import InvoiceLedger, LineItemInput


class ClientFactory:
    """Factory for Client (customer) records."""

    _counter = 0

    @classmethod
    async def create(
        cls,
        session: AsyncSession,
        name: str = "Test Client",
        email: Optional[str] = None,
        phone: str = "9876543210",
        pan_number: Optional[str] = "ABCDE1234F",
        gst_number: Optional[str] = None,
    ) -> Client:
        cls._counter += 1
        client = Client(
            name=name,
            email=email or f"client{cls._counter}@example.com",
            phone=phone,
            pan_number=pan_number,
            gst_number=gst_number,
        )
        session.add(client)
        await session.flush()
        await session.refresh(client)
        return client


class UserFactory:
    """Factory for staff users and client portal logins."""

    @staticmethod
    async def create(
        session: AsyncSession,
        email: str,
        role: UserRole = UserRole.STAFF,
        client_id: Optional[int] = None,
        name: Optional[str] = None,
        password: str = "SecurePassword123!",
        is_active: bool = True,
    ) -> User:
        user = User(
            name=name or email.split("@")[0].title(),
            email=email,
            hashed_password=hash_password(password),
            role=role,
            client_id=client_id,
            is_active=is_active,
        )
        session.add(user)
        await session.flush()
        await session.refresh(user)
        return user


class InvoiceFactory:
    """Factory issuing invoices through InvoiceLedger."""

    @staticmethod
    async def create(
        session: AsyncSession,
        client_id: int,
        items: Optional[Sequence[LineItemInput]] = None,
        tax: Decimal = Decimal("0"),
        due_date: Optional[date] = None,
        payments: Sequence[Decimal] = (),
        invoice_number: Optional[str] = None,
    ) -> Invoice:
        """
        Create an invoice and record the given payments against it.

        Defaults to a single 1000.00 line item due in 30 days.
        """
        ledger = InvoiceLedger(session)
        invoice = await ledger.create_invoice(
            client_id=client_id,
            items=items or [LineItemInput("Professional fees", Decimal("1"), Decimal("1000"))],
            tax=tax,
            due_date=due_date or date.today() + timedelta(days=30),
            invoice_number=invoice_number,
        )
        for amount in payments:
            invoice = await ledger.add_payment(invoice.id, amount, PaymentMethod.UPI)
        return invoice


class ClientFileFactory:
    """Factory for stored documents: metadata row plus bytes in the storage double."""

    _counter = 0

    @classmethod
    async def create(
        cls,
        session: AsyncSession,
        storage,
        client_id: int,
        file_name: str = "form16.pdf",
        data: bytes = b"%PDF-1.4 test document",
        category: FileCategory = FileCategory.ITR,
        year: Optional[str] = "2024-25",
        content_type: str = "application/pdf",
        tags: Optional[List[str]] = None,
    ) -> ClientFile:
        cls._counter += 1
        key = f"clients/{client_id}/{category.value}/{year or 'general'}/{cls._counter:08d}_{file_name}"
        await storage.put(key, data, content_type)

        record = ClientFile(
            client_id=client_id,
            category=category,
            year=year,
            file_name=file_name,
            original_file_name=file_name,
            storage_key=key,
            file_size=len(data),
            content_type=content_type,
            tags=list(tags or []),
        )
        session.add(record)
        await session.flush()
        await session.refresh(record)
        return record


class ReminderFactory:
    """Factory for deadline reminders. Defaults to a GST return due in 10 days."""

    @staticmethod
    async def create(
        session: AsyncSession,
        client_id: int,
        title: str = "GSTR-3B",
        due_date: Optional[date] = None,
        reminder_type: ReminderType = ReminderType.GST,
        status: ReminderStatus = ReminderStatus.PENDING,
    ) -> Reminder:
        reminder = Reminder(
            client_id=client_id,
            title=title,
            due_date=due_date or date.today() + timedelta(days=10),
            reminder_type=reminder_type,
            status=status,
        )
        session.add(reminder)
        await session.flush()
        await session.refresh(reminder)
        return reminder


def auth_headers(user: User) -> Dict[str, str]:
    """Bearer header for a user, carrying the claims the login endpoint issues."""
    token = create_access_token(
        {
            "user_id": user.id,
            "role": UserRole(user.role).value,
            "client_id": user.client_id,
            "email": user.email,
        }
    )
    return {"Authorization": f"Bearer {token}"}
