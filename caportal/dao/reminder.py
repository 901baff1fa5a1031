"""
Reminder Data Access Object.

WHY: Deadline listings are always ordered by due date, soonest first, and
the overdue sweep must stay scoped to the same client filter as the
listing that triggers it.
"""

from datetime import date
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from caportal.dao.base import BaseDAO
from caportal.models.base import utcnow
from caportal.models.reminder import Reminder, ReminderStatus, ReminderType


class ReminderDAO(BaseDAO[Reminder]):
    """Data Access Object for deadline reminders."""

    def __init__(self, session: AsyncSession):
        super().__init__(Reminder, session)

    async def list_reminders(
        self,
        client_id: Optional[int] = None,
        status: Optional[ReminderStatus] = None,
        reminder_type: Optional[ReminderType] = None,
        due_from: Optional[date] = None,
        due_to: Optional[date] = None,
        due_before: Optional[date] = None,
    ) -> List[Reminder]:
        """
        List reminders ordered by due date (soonest first).

        Args:
            client_id: Restrict to one client
            status: Restrict to one status
            reminder_type: Restrict to one filing type
            due_from / due_to: Inclusive due date window
            due_before: Due strictly before this date

        Returns:
            Matching reminders
        """
        query = select(Reminder)
        if client_id is not None:
            query = query.where(Reminder.client_id == client_id)
        if status is not None:
            query = query.where(Reminder.status == status)
        if reminder_type is not None:
            query = query.where(Reminder.reminder_type == reminder_type)
        if due_from is not None:
            query = query.where(Reminder.due_date >= due_from)
        if due_to is not None:
            query = query.where(Reminder.due_date <= due_to)
        if due_before is not None:
            query = query.where(Reminder.due_date < due_before)

        query = query.order_by(Reminder.due_date, Reminder.id)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def mark_overdue(self, today: date, client_id: Optional[int] = None) -> int:
        """
        Move PENDING reminders due before ``today`` to OVERDUE.

        Args:
            today: Reference date
            client_id: Only touch this client's reminders

        Returns:
            Number of reminders updated
        """
        stmt = (
            update(Reminder)
            .where(Reminder.status == ReminderStatus.PENDING, Reminder.due_date < today)
            .values(status=ReminderStatus.OVERDUE, updated_at=utcnow())
            .execution_options(synchronize_session="fetch")
        )
        if client_id is not None:
            stmt = stmt.where(Reminder.client_id == client_id)

        result = await self.session.execute(stmt)
        return result.rowcount

    async def delete_for_client(self, client_id: int) -> int:
        """Delete every reminder of a client. Returns how many were removed."""
        reminders = await self.list_reminders(client_id=client_id)
        for reminder in reminders:
            await self.session.delete(reminder)
        await self.session.flush()
        return len(reminders)
