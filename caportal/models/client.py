"""
Client model.

WHAT: The office's client registry (individuals and businesses whose tax,
GST and accounting work the office handles).

WHY: Clients are the tenant boundary of the portal. Invoices, files and
client logins all hang off a client row, and every client-role query is
scoped by its id.
"""

from sqlalchemy import Column, String
from sqlalchemy.orm import relationship

from caportal.models.base import Base, TimestampMixin, PrimaryKeyMixin


class Client(Base, PrimaryKeyMixin, TimestampMixin):
    """A client of the office."""

    __tablename__ = "clients"

    name = Column(String(255), nullable=False, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    phone = Column(String(32), nullable=False)

    # Identity & compliance
    pan_number = Column(String(10), nullable=True, index=True)
    gst_number = Column(String(15), nullable=True, index=True)

    # Physical file tracking in the office
    physical_file_number = Column(String(50), nullable=True)
    rack_location = Column(String(100), nullable=True)

    users = relationship("User", back_populates="client", passive_deletes=True)
    invoices = relationship("Invoice", back_populates="client", passive_deletes=True)
    files = relationship("ClientFile", back_populates="client", passive_deletes=True)
    reminders = relationship("Reminder", back_populates="client", passive_deletes=True)

    def __repr__(self) -> str:
        return f"<Client(id={self.id}, name={self.name})>"
