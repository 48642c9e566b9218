"""Pydantic schemas for claim comments."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from erp.db.enums import Role


class CommentCreate(BaseModel):
    """Request to add a comment. visible_to_client is ignored for client authors."""

    content: str = Field(..., min_length=1, max_length=4000)
    visible_to_client: bool = False


class CommentRead(BaseModel):
    """Comment response."""

    id: UUID
    claim_id: UUID
    author_id: UUID | None
    author_name: str | None = None
    role: Role
    content: str
    visible_to_client: bool
    created_at: datetime

    model_config = {"from_attributes": True}
