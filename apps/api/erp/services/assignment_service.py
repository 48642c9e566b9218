"""Assignment router for claims and leads.

Both entities share one validation routine:

1. caller role must be allowed to assign (admin, supervisor)
2. target row is loaded FOR UPDATE
3. a non-null assignee must be an active admin/supervisor/operator
4. supervisors may only route work currently in their scope, and only to
   operators they supervise
5. assigned_to is persisted, updated_at bumped, and an event published
"""

import logging
from uuid import UUID

from sqlalchemy.orm import Session

from erp.core.exceptions import (
    AssigneeNotFoundError,
    ForbiddenError,
    InvalidAssigneeRoleError,
    NotFoundError,
)
from erp.core.permissions import require_capability
from erp.db.enums import STAFF_ROLES, ClaimEvent, Role
from erp.db.models import Claim, Lead, User, utcnow
from erp.schemas.auth import UserSession
from erp.services import event_service, identity_service

logger = logging.getLogger(__name__)


def resolve_assignee(db: Session, assignee_id: UUID) -> User:
    """
    Load an assignee and check eligibility.

    Raises:
        AssigneeNotFoundError: unknown or inactive user
        InvalidAssigneeRoleError: user is not staff
    """
    assignee = identity_service.get_user(db, assignee_id)
    if not assignee or not assignee.is_active:
        raise AssigneeNotFoundError()
    if not Role.has_value(assignee.role) or Role(assignee.role) not in STAFF_ROLES:
        raise InvalidAssigneeRoleError()
    return assignee


def check_supervisor_ownership(
    db: Session,
    caller: UserSession,
    current_assignee_id: UUID | None,
    assignee: User | None,
) -> None:
    """
    Supervisors route only their own team's work, and only to their own operators.

    No-op for other roles.

    Raises:
        ForbiddenError: target held outside the supervisor's team, or assignee
            is not one of their operators
    """
    if caller.role != Role.SUPERVISOR:
        return

    if current_assignee_id is not None and current_assignee_id not in identity_service.operators_of(
        db, caller.user_id
    ):
        raise ForbiddenError("This item is assigned outside your team")

    if assignee is None:
        return

    if assignee.role != Role.OPERATOR.value or assignee.supervisor_id != caller.user_id:
        raise ForbiddenError("Supervisors can only assign to operators they supervise")


def validate_assignment(
    db: Session,
    capability: str,
    current_assignee_id: UUID | None,
    assignee_id: UUID | None,
    caller: UserSession,
) -> User | None:
    """Run steps 1, 3 and 4 of the routing rules; returns the resolved assignee."""
    require_capability(caller.role, capability)
    assignee = resolve_assignee(db, assignee_id) if assignee_id is not None else None
    check_supervisor_ownership(db, caller, current_assignee_id, assignee)
    return assignee


def assign_claim(
    db: Session,
    claim_id: UUID,
    assignee_id: UUID | None,
    caller: UserSession,
) -> Claim:
    """
    Assign (or unassign, with None) a claim.

    Raises:
        ForbiddenError, NotFoundError, AssigneeNotFoundError, InvalidAssigneeRoleError
    """
    require_capability(caller.role, "claims.assign")

    claim = db.query(Claim).filter(Claim.id == claim_id).with_for_update().first()
    if not claim:
        raise NotFoundError("Claim not found")

    validate_assignment(db, "claims.assign", claim.assigned_to, assignee_id, caller)

    claim.assigned_to = assignee_id
    claim.updated_at = utcnow()
    db.commit()
    db.refresh(claim)

    logger.info("Claim %s assigned to %s by %s", claim.id, assignee_id, caller.user_id)
    event_service.publish(
        ClaimEvent.CLAIM_ASSIGNED,
        {"claim_id": claim.id, "assigned_to": claim.assigned_to},
    )
    return claim


def assign_lead(
    db: Session,
    lead_id: UUID,
    assignee_id: UUID | None,
    caller: UserSession,
) -> Lead:
    """
    Assign (or unassign, with None) a lead. Same rules as assign_claim.

    Raises:
        ForbiddenError, NotFoundError, AssigneeNotFoundError, InvalidAssigneeRoleError
    """
    require_capability(caller.role, "leads.assign")

    lead = db.query(Lead).filter(Lead.id == lead_id).with_for_update().first()
    if not lead:
        raise NotFoundError("Lead not found")

    validate_assignment(db, "leads.assign", lead.assigned_to, assignee_id, caller)

    lead.assigned_to = assignee_id
    lead.updated_at = utcnow()
    db.commit()
    db.refresh(lead)

    logger.info("Lead %s assigned to %s by %s", lead.id, assignee_id, caller.user_id)
    event_service.publish(
        ClaimEvent.LEAD_ASSIGNED,
        {"lead_id": lead.id, "assigned_to": lead.assigned_to},
    )
    return lead
