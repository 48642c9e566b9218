"""Pydantic schemas for API request/response models."""

from erp.schemas.auth import LoginRequest, MeResponse, UserSession
from erp.schemas.user import UserCreate, UserRead, UserUpdate
from erp.schemas.claim import (
    ClaimAssign,
    ClaimCreate,
    ClaimListResponse,
    ClaimRead,
    ClaimReply,
    ClaimStatusChange,
)
from erp.schemas.comment import CommentCreate, CommentRead
from erp.schemas.lead import (
    LeadAssign,
    LeadConvert,
    LeadConvertResponse,
    LeadCreate,
    LeadListResponse,
    LeadRead,
    LeadUpdate,
)

__all__ = [
    # Auth
    "UserSession",
    "LoginRequest",
    "MeResponse",
    # Users
    "UserCreate",
    "UserRead",
    "UserUpdate",
    # Claims
    "ClaimAssign",
    "ClaimCreate",
    "ClaimListResponse",
    "ClaimRead",
    "ClaimReply",
    "ClaimStatusChange",
    # Comments
    "CommentCreate",
    "CommentRead",
    # Leads
    "LeadAssign",
    "LeadConvert",
    "LeadConvertResponse",
    "LeadCreate",
    "LeadListResponse",
    "LeadRead",
    "LeadUpdate",
]
