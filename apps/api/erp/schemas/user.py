"""User-related Pydantic schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from erp.db.enums import Role


class UserRead(BaseModel):
    """Response schema for reading a user."""

    id: UUID
    email: str
    full_name: str | None
    display_name: str
    role: Role
    supervisor_id: UUID | None
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class UserCreate(BaseModel):
    """Request schema for creating an account (admin only)."""

    email: str = Field(..., min_length=3, max_length=255)
    password: str | None = Field(None, max_length=255)
    role: Role
    full_name: str | None = Field(None, max_length=255)
    supervisor_id: UUID | None = None


class UserUpdate(BaseModel):
    """Request schema for updating an account. Omitted fields are left alone."""

    full_name: str | None = Field(None, max_length=255)
    role: Role | None = None
    supervisor_id: UUID | None = None
    is_active: bool | None = None
    password: str | None = Field(None, max_length=255)
