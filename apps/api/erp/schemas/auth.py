"""Authentication-related Pydantic schemas."""

from uuid import UUID

from pydantic import BaseModel, Field

from erp.db.enums import Role


class UserSession(BaseModel):
    """
    Resolved caller identity for authenticated requests.

    Returned by the get_current_session dependency and passed explicitly into
    every engine operation. Role is always read from the user row, never
    trusted from the token.
    """
    user_id: UUID
    role: Role  # Validated enum
    email: str
    display_name: str
    active: bool = True


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=1, max_length=255)


class MeResponse(BaseModel):
    """Response schema for GET /auth/me endpoint."""
    user_id: UUID
    email: str
    display_name: str
    role: Role
    supervisor_id: UUID | None = None
    capabilities: list[str] = []
