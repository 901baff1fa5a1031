"""
Client file model.

WHAT: Metadata for a document stored in object storage on behalf of a client.

WHY: The bytes live in S3, the database only keeps what the portal needs to
list, filter, label and find them again: the storage key, the filing period
(category/year/month) and user-facing flags such as starred and archived.
"""

import enum

from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Boolean,
    BigInteger,
    ForeignKey,
    JSON,
    Enum as SQLEnum,
)
from sqlalchemy.orm import relationship

from caportal.models.base import Base, TimestampMixin, PrimaryKeyMixin


class FileCategory(str, enum.Enum):
    """Top-level folder a document is filed under."""

    ITR = "ITR"
    GST = "GST"
    ACCOUNTING = "ACCOUNTING"
    USER_DOCS = "USER_DOCS"


class ClientFile(Base, PrimaryKeyMixin, TimestampMixin):
    """
    Document uploaded for a client.

    Attributes:
        client_id: Owning client
        category: Filing category (ITR, GST, ACCOUNTING, USER_DOCS)
        year: Financial year label, e.g. "2024-25"
        month: Month label for monthly filings (GST)
        doc_type: Free-form document type ("Form 16", "GSTR-3B", ...)
        file_name: Sanitised name used in the storage key
        original_file_name: Name as uploaded
        storage_key: Object key in the bucket
        tags: List of free-text labels
        is_starred / is_archived: User-facing flags
        notes: Free text, editable by the owning client
    """

    __tablename__ = "client_files"

    client_id = Column(
        Integer,
        ForeignKey("clients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    category = Column(SQLEnum(FileCategory, name="filecategory"), nullable=False, index=True)
    year = Column(String(20), nullable=True, index=True)
    month = Column(String(20), nullable=True)
    doc_type = Column(String(100), nullable=True)

    file_name = Column(String(255), nullable=False)
    original_file_name = Column(String(255), nullable=False)
    storage_key = Column(String(1024), nullable=False, unique=True)
    file_size = Column(BigInteger, nullable=False, default=0)
    content_type = Column(String(255), nullable=True)

    uploaded_by = Column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    tags = Column(JSON, nullable=False, default=list)
    is_starred = Column(Boolean, nullable=False, default=False)
    is_archived = Column(Boolean, nullable=False, default=False)
    notes = Column(Text, nullable=True)

    client = relationship("Client", back_populates="files")
    uploader = relationship("User", foreign_keys=[uploaded_by])

    def __repr__(self) -> str:
        return f"<ClientFile(id={self.id}, client_id={self.client_id}, name={self.file_name})>"
