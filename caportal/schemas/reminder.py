"""
Pydantic schemas for filing deadline reminders.
"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from caportal.models.reminder import ReminderPriority, ReminderStatus, ReminderType


class ReminderCreate(BaseModel):
    """Schema for adding a deadline."""

    model_config = ConfigDict(
        str_strip_whitespace=True,
        json_schema_extra={
            "example": {
                "client_id": 1,
                "title": "GSTR-3B for June",
                "due_date": "2024-07-20",
                "reminder_type": "GST",
                "priority": "HIGH",
            }
        },
    )

    client_id: int
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=5000)
    due_date: date
    reminder_type: ReminderType
    priority: ReminderPriority = ReminderPriority.MEDIUM
    notify_before: int = Field(default=7, ge=0, le=365, description="Days of advance notice")


class ReminderUpdate(BaseModel):
    """Schema for editing a deadline. Only supplied fields change."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=5000)
    due_date: Optional[date] = None
    reminder_type: Optional[ReminderType] = None
    priority: Optional[ReminderPriority] = None
    status: Optional[ReminderStatus] = None
    notify_before: Optional[int] = Field(default=None, ge=0, le=365)


class ReminderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    client_id: int
    title: str
    description: Optional[str] = None
    due_date: date
    reminder_type: ReminderType
    priority: ReminderPriority
    status: ReminderStatus
    notify_before: int
    created_by: Optional[int] = None
    created_at: datetime
    updated_at: datetime
