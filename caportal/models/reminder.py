"""
Filing deadline reminder model.

WHAT: A dated compliance deadline the office tracks for a client (ITR due
date, a GST return, books to close).

WHY: Deadlines are what the office works against. Staff keep one row per
deadline; clients see their own so they know which documents to send in.

HOW: Status starts PENDING. Completing a reminder sets COMPLETED. A PENDING
reminder whose due date has passed is moved to OVERDUE by the reminder
service the first time an overdue listing sees it.
"""

import enum
from sqlalchemy import Column, Integer, String, Text, Date, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship

from caportal.models.base import Base, TimestampMixin, PrimaryKeyMixin


class ReminderType(str, enum.Enum):
    """Kind of filing the deadline belongs to."""

    ITR = "ITR"
    GST = "GST"
    ACCOUNTING = "ACCOUNTING"
    OTHER = "OTHER"


class ReminderPriority(str, enum.Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class ReminderStatus(str, enum.Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    OVERDUE = "OVERDUE"


class Reminder(Base, PrimaryKeyMixin, TimestampMixin):
    """
    Deadline reminder for one client.

    Attributes:
        client_id: Client the deadline concerns
        title / description: What has to be filed
        due_date: Calendar deadline
        reminder_type: Filing category
        priority: LOW, MEDIUM or HIGH
        status: PENDING, COMPLETED or OVERDUE
        notify_before: Days ahead of the deadline the client should be told
        created_by: Staff user who added the reminder
    """

    __tablename__ = "reminders"

    client_id = Column(
        Integer,
        ForeignKey("clients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    due_date = Column(Date, nullable=False, index=True)

    reminder_type = Column(SQLEnum(ReminderType, name="remindertype"), nullable=False)
    priority = Column(
        SQLEnum(ReminderPriority, name="reminderpriority"),
        nullable=False,
        default=ReminderPriority.MEDIUM,
    )
    status = Column(
        SQLEnum(ReminderStatus, name="reminderstatus"),
        nullable=False,
        default=ReminderStatus.PENDING,
        index=True,
    )

    notify_before = Column(Integer, nullable=False, default=7)

    created_by = Column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    client = relationship("Client", back_populates="reminders")

    def __repr__(self) -> str:
        return f"<Reminder(id={self.id}, title={self.title}, due={self.due_date}, status={self.status})>"
