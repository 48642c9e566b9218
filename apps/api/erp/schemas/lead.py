"""Pydantic schemas for leads."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class LeadCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: str | None = Field(None, max_length=255)
    phone: str | None = Field(None, max_length=50)
    status: str | None = Field(None, max_length=50)
    notes: str | None = Field(None, max_length=10000)
    assigned_to: UUID | None = None


class LeadUpdate(BaseModel):
    """Partial update; only fields present in the request body are applied."""

    name: str | None = Field(None, min_length=1, max_length=255)
    email: str | None = Field(None, max_length=255)
    phone: str | None = Field(None, max_length=50)
    status: str | None = Field(None, max_length=50)
    notes: str | None = Field(None, max_length=10000)


class LeadAssign(BaseModel):
    assigned_to: UUID | None = None


class LeadConvert(BaseModel):
    """Optional details for the Client record created on conversion."""

    company: str | None = Field(None, max_length=255)
    address: str | None = Field(None, max_length=2000)


class LeadRead(BaseModel):
    id: UUID
    name: str
    email: str | None
    phone: str | None
    status: str
    assigned_to: UUID | None
    notes: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class LeadListResponse(BaseModel):
    items: list[LeadRead]
    total: int


class LeadConvertResponse(BaseModel):
    """Result of a conversion: the new Client record and its user."""

    client_id: UUID
    user_id: UUID
    company: str | None
    address: str | None
    phone: str | None
    created_at: datetime
