"""
Pydantic schemas for the client registry.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class ClientBase(BaseModel):
    """Fields shared by create and response schemas."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    phone: str = Field(..., min_length=1, max_length=32)
    pan_number: Optional[str] = Field(
        default=None,
        pattern=r"^[A-Z]{5}[0-9]{4}[A-Z]$",
        description="Permanent Account Number, e.g. ABCDE1234F",
    )
    gst_number: Optional[str] = Field(
        default=None,
        min_length=15,
        max_length=15,
        description="GSTIN (15 characters)",
    )
    physical_file_number: Optional[str] = Field(default=None, max_length=50)
    rack_location: Optional[str] = Field(default=None, max_length=100)


class ClientCreate(ClientBase):
    """Schema for registering a client."""


class ClientUpdate(BaseModel):
    """Schema for editing a client. Only supplied fields change."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, min_length=1, max_length=32)
    pan_number: Optional[str] = Field(default=None, pattern=r"^[A-Z]{5}[0-9]{4}[A-Z]$")
    gst_number: Optional[str] = Field(default=None, min_length=15, max_length=15)
    physical_file_number: Optional[str] = Field(default=None, max_length=50)
    rack_location: Optional[str] = Field(default=None, max_length=100)


class ClientResponse(ClientBase):
    """Client as returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    created_at: datetime
    updated_at: datetime
