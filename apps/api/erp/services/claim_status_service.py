"""Claim status workflow.

    submitted → in_review → resolved | rejected

resolved and rejected are terminal. Re-applying the current status is an
idempotent no-op: it succeeds without touching updated_at or emitting an event.
"""

import logging
from uuid import UUID

from sqlalchemy.orm import Session

from erp.core.exceptions import InvalidTransitionError, NotFoundError, ValidationError
from erp.core.permissions import require_capability
from erp.db.enums import ClaimEvent, ClaimStatus
from erp.db.models import Claim, utcnow
from erp.schemas.auth import UserSession
from erp.services import event_service

logger = logging.getLogger(__name__)


ALLOWED_TRANSITIONS: dict[ClaimStatus, frozenset[ClaimStatus]] = {
    ClaimStatus.SUBMITTED: frozenset({ClaimStatus.IN_REVIEW}),
    ClaimStatus.IN_REVIEW: frozenset({ClaimStatus.RESOLVED, ClaimStatus.REJECTED}),
    ClaimStatus.RESOLVED: frozenset(),
    ClaimStatus.REJECTED: frozenset(),
}


def parse_status(value: str) -> ClaimStatus:
    """Parse a status string, raising ValidationError for unknown values."""
    if not ClaimStatus.has_value(value):
        allowed = ", ".join(s.value for s in ClaimStatus)
        raise ValidationError(f"Unknown status '{value}'. Allowed: {allowed}")
    return ClaimStatus(value)


def can_transition(current: ClaimStatus | str, target: ClaimStatus | str) -> bool:
    """True if target is adjacent to current in the workflow."""
    return ClaimStatus(target) in ALLOWED_TRANSITIONS[ClaimStatus(current)]


def is_terminal(status: ClaimStatus | str) -> bool:
    return not ALLOWED_TRANSITIONS[ClaimStatus(status)]


def validate_transition(current: ClaimStatus | str, target: ClaimStatus | str) -> None:
    """
    Raises:
        InvalidTransitionError: target not reachable from current
    """
    if not can_transition(current, target):
        current_value = ClaimStatus(current).value
        allowed = sorted(s.value for s in ALLOWED_TRANSITIONS[ClaimStatus(current)])
        hint = f"allowed: {', '.join(allowed)}" if allowed else f"'{current_value}' is terminal"
        raise InvalidTransitionError(
            f"Cannot move claim from '{current_value}' to '{ClaimStatus(target).value}' ({hint})"
        )


def change_status(
    db: Session,
    claim_id: UUID,
    target_status: str,
    caller: UserSession,
) -> Claim:
    """
    Apply a status transition to a claim.

    The claim row is locked for the duration of validate-then-write.

    Raises:
        ForbiddenError: caller role may not change status (clients)
        ValidationError: unknown target status
        NotFoundError: claim does not exist
        InvalidTransitionError: target not adjacent to the current status
    """
    require_capability(caller.role, "claims.change_status")
    target = parse_status(target_status)

    claim = db.query(Claim).filter(Claim.id == claim_id).with_for_update().first()
    if not claim:
        raise NotFoundError("Claim not found")

    if claim.status == target.value:
        # Nothing to write; end the transaction to release the row lock
        db.commit()
        return claim

    validate_transition(claim.status, target)

    old_status = claim.status
    claim.status = target.value
    claim.updated_at = utcnow()
    db.commit()
    db.refresh(claim)

    logger.info(
        "Claim %s status %s -> %s by %s", claim.id, old_status, claim.status, caller.user_id
    )
    event_service.publish(
        ClaimEvent.CLAIM_STATUS_CHANGED,
        {"claim_id": claim.id, "status": claim.status},
    )
    return claim
