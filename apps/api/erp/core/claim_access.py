"""Claim access control - centralized single-record permission checks.

Single-record reads are NOT scoped by assignment the way listings are:
- Client: only claims they own
- Admin / supervisor / operator: any claim

Commenting is narrower:
- Client: only claims they own
- Operator: only claims currently assigned to them
- Admin / supervisor: any claim
"""

from uuid import UUID

from erp.core.exceptions import ForbiddenError
from erp.db.enums import Role
from erp.db.models import Claim


def _normalize_role(user_role: Role | str) -> Role:
    return user_role if isinstance(user_role, Role) else Role(user_role)


def check_claim_read_access(claim: Claim, user_role: Role | str, user_id: UUID) -> None:
    """
    Check if the caller may read this claim (detail, comments).

    Raises:
        ForbiddenError: client reading someone else's claim
    """
    role = _normalize_role(user_role)

    if role == Role.CLIENT:
        if claim.client_id != user_id:
            raise ForbiddenError("You don't have access to this claim")
        return

    if role in (Role.ADMIN, Role.SUPERVISOR, Role.OPERATOR):
        return

    raise ForbiddenError("You don't have access to this claim")


def check_claim_comment_access(claim: Claim, user_role: Role | str, user_id: UUID) -> None:
    """
    Check if the caller may add a comment to this claim.

    Raises:
        ForbiddenError: not the owning client / not the assigned operator
    """
    role = _normalize_role(user_role)

    if role in (Role.ADMIN, Role.SUPERVISOR):
        return

    if role == Role.OPERATOR:
        if claim.assigned_to != user_id:
            raise ForbiddenError("Operators can only comment on claims assigned to them")
        return

    if role == Role.CLIENT:
        if claim.client_id != user_id:
            raise ForbiddenError("You can only comment on your own claims")
        return

    raise ForbiddenError("You don't have access to this claim")

