"""
Filing deadline reminder API endpoints.

WHY: Staff track each client's compliance deadlines here; clients read
their own to know what is due. Adding and editing deadlines is document
work, so it takes the same roles as managing files (INTERN reads only).
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from caportal.core.deps import get_current_user, require_file_manager
from caportal.db.session import get_db
from caportal.models.reminder import Reminder, ReminderStatus, ReminderType
from caportal.models.user import User
from caportal.schemas.reminder import ReminderCreate, ReminderResponse, ReminderUpdate
from caportal.services.audit import AuditService
from caportal.services.reminder_service import ReminderService


router = APIRouter(prefix="/reminders", tags=["reminders"])


@router.get("", response_model=List[ReminderResponse])
async def list_reminders(
    status_filter: Optional[ReminderStatus] = Query(default=None, alias="status"),
    client_id: Optional[int] = Query(default=None),
    reminder_type: Optional[ReminderType] = Query(default=None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> List[Reminder]:
    """List reminders soonest first. Client logins only ever see their own."""
    return await ReminderService(db).list_reminders(
        current_user,
        client_id=client_id,
        status=status_filter,
        reminder_type=reminder_type,
    )


@router.get("/upcoming", response_model=List[ReminderResponse])
async def list_upcoming(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> List[Reminder]:
    """Pending deadlines in the next 30 days."""
    return await ReminderService(db).list_upcoming(current_user)


@router.get("/overdue", response_model=List[ReminderResponse])
async def list_overdue(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> List[Reminder]:
    """Deadlines that passed without being completed."""
    return await ReminderService(db).list_overdue(current_user)


@router.get("/client/{client_id}", response_model=List[ReminderResponse])
async def list_client_reminders(
    client_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> List[Reminder]:
    return await ReminderService(db).list_for_client(current_user, client_id)


@router.post("", response_model=ReminderResponse, status_code=status.HTTP_201_CREATED)
async def create_reminder(
    data: ReminderCreate,
    current_user: User = Depends(require_file_manager),
    db: AsyncSession = Depends(get_db),
) -> Reminder:
    """
    Add a deadline for a client.

    Raises:
        ValidationError (400): Unknown client
    """
    fields = data.model_dump()
    reminder = await ReminderService(db).create_reminder(created_by=current_user.id, **fields)

    await AuditService(db).log_create(
        "reminder",
        reminder.id,
        current_user.id,
        client_id=reminder.client_id,
        extra_data={"due_date": reminder.due_date.isoformat()},
    )
    return reminder


@router.put("/{reminder_id}", response_model=ReminderResponse)
async def update_reminder(
    reminder_id: int,
    data: ReminderUpdate,
    current_user: User = Depends(require_file_manager),
    db: AsyncSession = Depends(get_db),
) -> Reminder:
    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    reminder = await ReminderService(db).update_reminder(reminder_id, **changes)

    await AuditService(db).log_update(
        "reminder",
        reminder.id,
        current_user.id,
        changes={"fields": sorted(changes)},
        client_id=reminder.client_id,
    )
    return reminder


@router.patch("/{reminder_id}/complete", response_model=ReminderResponse)
async def complete_reminder(
    reminder_id: int,
    current_user: User = Depends(require_file_manager),
    db: AsyncSession = Depends(get_db),
) -> Reminder:
    reminder = await ReminderService(db).complete_reminder(reminder_id)

    await AuditService(db).log_update(
        "reminder",
        reminder.id,
        current_user.id,
        changes={"status": ReminderStatus.COMPLETED.value},
        client_id=reminder.client_id,
    )
    return reminder


@router.delete("/{reminder_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_reminder(
    reminder_id: int,
    current_user: User = Depends(require_file_manager),
    db: AsyncSession = Depends(get_db),
) -> None:
    reminder = await ReminderService(db).delete_reminder(reminder_id)
    await AuditService(db).log_delete("reminder", reminder_id, current_user.id, client_id=reminder.client_id)
