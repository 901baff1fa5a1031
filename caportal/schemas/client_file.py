"""
Pydantic schemas for client file endpoints.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from caportal.models.client_file import FileCategory


class ClientFileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    client_id: int
    category: FileCategory
    year: Optional[str] = None
    month: Optional[str] = None
    doc_type: Optional[str] = None
    file_name: str
    original_file_name: str
    file_size: int
    content_type: Optional[str] = None
    uploaded_by: Optional[int] = None
    tags: List[str] = Field(default_factory=list)
    is_starred: bool
    is_archived: bool
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class NotesUpdate(BaseModel):
    notes: Optional[str] = Field(default=None, max_length=5000)


class TagsUpdate(BaseModel):
    tags: List[str] = Field(..., max_length=50)


class FileIdsRequest(BaseModel):
    """Body of the zip download and bulk delete endpoints."""

    file_ids: List[int] = Field(..., min_length=1, max_length=500)


class BulkDeleteResponse(BaseModel):
    message: str
    deleted_count: int
    errors: List[str] = Field(default_factory=list)
