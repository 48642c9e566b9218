"""Pydantic schemas for claims."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from erp.db.enums import ClaimStatus


class ClaimCreate(BaseModel):
    """Request to open a claim. client_id is required for staff callers."""

    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1, max_length=10000)
    client_id: UUID | None = None


class ClaimStatusChange(BaseModel):
    status: str = Field(..., min_length=1, max_length=20)


class ClaimReply(BaseModel):
    reply: str = Field(..., min_length=1, max_length=10000)


class ClaimAssign(BaseModel):
    """Assign to a staff user, or unassign with null."""

    assigned_to: UUID | None = None


class ClaimRead(BaseModel):
    """Claim response."""

    id: UUID
    client_id: UUID | None
    title: str
    description: str
    status: ClaimStatus
    reply: str | None
    file_paths: list[str]
    assigned_to: UUID | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ClaimListResponse(BaseModel):
    items: list[ClaimRead]
    total: int
