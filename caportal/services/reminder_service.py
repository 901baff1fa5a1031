"""
Filing deadline reminder service.

WHAT: Tracks the compliance deadlines of each client: listing, the
upcoming and overdue views, and the create/edit/complete/delete lifecycle.

WHY: Staff plan their week from the upcoming view and chase clients from
the overdue one. A client sees only its own deadlines, whatever filter it
sends, the same scoping rule the invoice ledger applies.

HOW: Reads are principal-scoped through ``_scope``. The overdue view first
moves PENDING reminders that are past due to OVERDUE (for the same scope),
then returns every OVERDUE reminder. Notification delivery is not part of
this service; ``notify_before`` is stored for the client UI.
"""

import logging
from datetime import date, timedelta
from typing import Any, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from caportal.core.exceptions import AccessDeniedError, ReminderNotFoundError, ValidationError
from caportal.dao.client import ClientDAO
from caportal.dao.reminder import ReminderDAO
from caportal.models.reminder import Reminder, ReminderStatus, ReminderType
from caportal.models.user import User


logger = logging.getLogger(__name__)

UPCOMING_WINDOW_DAYS = 30


class ReminderService:
    """
    Service for deadline reminders.

    Example:
        service = ReminderService(db)
        reminder = await service.create_reminder(
            client_id=3,
            title="ITR for AY 2024-25",
            due_date=date(2024, 7, 31),
            reminder_type=ReminderType.ITR,
            created_by=current_user.id,
        )
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.reminder_dao = ReminderDAO(session)
        self.client_dao = ClientDAO(session)

    @staticmethod
    def _scope(principal: User, client_id: Optional[int]) -> Optional[int]:
        if principal.is_staff:
            return client_id
        if principal.client_id is None:
            raise AccessDeniedError(message="Client account is not linked to a client")
        return principal.client_id

    async def _load(self, reminder_id: int) -> Reminder:
        reminder = await self.reminder_dao.get_by_id(reminder_id)
        if reminder is None:
            raise ReminderNotFoundError(
                message=f"Reminder {reminder_id} not found",
                reminder_id=reminder_id,
            )
        return reminder

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def list_reminders(
        self,
        principal: User,
        client_id: Optional[int] = None,
        status: Optional[ReminderStatus] = None,
        reminder_type: Optional[ReminderType] = None,
    ) -> List[Reminder]:
        """List reminders soonest first; CLIENT principals get only their own."""
        return await self.reminder_dao.list_reminders(
            client_id=self._scope(principal, client_id),
            status=status,
            reminder_type=reminder_type,
        )

    async def list_upcoming(self, principal: User, today: Optional[date] = None) -> List[Reminder]:
        """PENDING reminders due from today through the next 30 days."""
        today = today or date.today()
        return await self.reminder_dao.list_reminders(
            client_id=self._scope(principal, None),
            status=ReminderStatus.PENDING,
            due_from=today,
            due_to=today + timedelta(days=UPCOMING_WINDOW_DAYS),
        )

    async def list_overdue(self, principal: User, today: Optional[date] = None) -> List[Reminder]:
        """
        Reminders whose deadline has passed without being completed.

        PENDING reminders due before today are marked OVERDUE first. The
        sweep uses the same client scope as the listing, so a client's
        request never changes another client's reminders.
        """
        today = today or date.today()
        client_id = self._scope(principal, None)

        moved = await self.reminder_dao.mark_overdue(today, client_id=client_id)
        if moved:
            logger.info("Marked %d reminder(s) overdue", moved)

        return await self.reminder_dao.list_reminders(
            client_id=client_id,
            status=ReminderStatus.OVERDUE,
        )

    async def list_for_client(self, principal: User, client_id: int) -> List[Reminder]:
        """
        Every reminder of one client.

        Raises:
            AccessDeniedError: CLIENT principal asking for another client
        """
        if not principal.is_staff and principal.client_id != client_id:
            raise AccessDeniedError(message="You can only view your own reminders")
        return await self.reminder_dao.list_reminders(client_id=client_id)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def create_reminder(
        self,
        client_id: int,
        title: str,
        due_date: date,
        reminder_type: ReminderType,
        created_by: Optional[int] = None,
        **fields: Any,
    ) -> Reminder:
        """
        Add a deadline for a client.

        Raises:
            ValidationError: Unknown client
        """
        if await self.client_dao.get_by_id(client_id) is None:
            raise ValidationError(message=f"Client {client_id} does not exist", client_id=client_id)

        reminder = await self.reminder_dao.create(
            client_id=client_id,
            title=title,
            due_date=due_date,
            reminder_type=reminder_type,
            created_by=created_by,
            **fields,
        )
        logger.info("Reminder %s added for client %s due %s", reminder.id, client_id, due_date)
        return reminder

    async def update_reminder(self, reminder_id: int, **changes: Any) -> Reminder:
        """
        Edit a reminder.

        Moving the due date of an OVERDUE reminder back into the future
        returns it to PENDING unless a status is given explicitly.

        Raises:
            ReminderNotFoundError: Unknown reminder
        """
        reminder = await self._load(reminder_id)

        new_due = changes.get("due_date")
        if (
            new_due is not None
            and "status" not in changes
            and ReminderStatus(reminder.status) is ReminderStatus.OVERDUE
            and new_due >= date.today()
        ):
            changes["status"] = ReminderStatus.PENDING

        return await self.reminder_dao.update(reminder.id, **changes)

    async def complete_reminder(self, reminder_id: int) -> Reminder:
        """Mark a reminder COMPLETED."""
        reminder = await self._load(reminder_id)
        return await self.reminder_dao.update(reminder.id, status=ReminderStatus.COMPLETED)

    async def delete_reminder(self, reminder_id: int) -> Reminder:
        """Delete a reminder and return the removed row."""
        reminder = await self._load(reminder_id)
        await self.reminder_dao.delete(reminder.id)
        logger.info("Reminder %s deleted", reminder_id)
        return reminder
