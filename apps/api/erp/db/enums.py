"""Enum definitions for application constants."""

from enum import Enum


class Role(str, Enum):
    """
    User roles, from most to least privileged.

    - ADMIN: Full oversight (all records, user administration)
    - SUPERVISOR: Triages unassigned work and oversees a team of operators
    - OPERATOR: Handles claims and leads assigned to them
    - CLIENT: Submits and follows their own claims
    """
    ADMIN = "admin"
    SUPERVISOR = "supervisor"
    OPERATOR = "operator"
    CLIENT = "client"

    @classmethod
    def has_value(cls, value: str) -> bool:
        """Check if value is a valid role."""
        return value in cls._value2member_map_


class ClaimStatus(str, Enum):
    """
    Claim status workflow.

        submitted → in_review → resolved | rejected

    resolved and rejected are terminal.
    """
    SUBMITTED = "submitted"
    IN_REVIEW = "in_review"
    RESOLVED = "resolved"
    REJECTED = "rejected"

    @classmethod
    def has_value(cls, value: str) -> bool:
        """Check if value is a valid claim status."""
        return value in cls._value2member_map_


class ClaimEvent(str, Enum):
    """Broadcast event names published after successful mutations."""
    CLAIM_CREATED = "claim_created"
    CLAIM_STATUS_CHANGED = "claim_status_changed"
    CLAIM_REPLY_ADDED = "claim_reply_added"
    CLAIM_ASSIGNED = "claim_assigned"
    CLAIM_COMMENT_ADDED = "claim_comment_added"
    LEAD_ASSIGNED = "lead_assigned"
    LEAD_CONVERTED = "lead_converted"


# Roles that may hold assignments (claims and leads)
STAFF_ROLES = frozenset({Role.ADMIN, Role.SUPERVISOR, Role.OPERATOR})

DEFAULT_CLAIM_STATUS = ClaimStatus.SUBMITTED
DEFAULT_LEAD_STATUS = "new"
