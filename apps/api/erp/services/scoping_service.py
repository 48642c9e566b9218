"""Visibility scoping for claim and lead listings.

Given the caller, build the row predicate restricting which claims/leads are
listed:

    admin       all rows
    supervisor  assigned to one of their active operators, or unassigned
    operator    assigned to the caller
    client      claims they own (leads: not applicable)

A supervisor with no operators still sees every unassigned row, so unclaimed
work is never invisible to all supervisors. The ``is_*_in_scope`` helpers
apply the same rules to a single loaded row.
"""

from uuid import UUID

from sqlalchemy import ColumnElement, or_, true
from sqlalchemy.orm import InstrumentedAttribute, Session

from erp.core.exceptions import ForbiddenError
from erp.db.enums import Role
from erp.db.models import Claim, Lead
from erp.schemas.auth import UserSession
from erp.services import identity_service


def _assignment_scope(
    db: Session,
    column: InstrumentedAttribute,
    caller: UserSession,
) -> ColumnElement[bool]:
    """Predicate over an ``assigned_to`` column for a staff caller."""
    if caller.role == Role.ADMIN:
        return true()
    if caller.role == Role.SUPERVISOR:
        return or_(column.in_(list(identity_service.operators_of(db, caller.user_id))), column.is_(None))
    if caller.role == Role.OPERATOR:
        return column == caller.user_id
    raise ValueError(f"No assignment scope for role '{caller.role.value}'")


def claim_scope(db: Session, caller: UserSession) -> ColumnElement[bool]:
    """Row filter for listing claims."""
    if caller.role == Role.CLIENT:
        return Claim.client_id == caller.user_id
    if caller.role in (Role.ADMIN, Role.SUPERVISOR, Role.OPERATOR):
        return _assignment_scope(db, Claim.assigned_to, caller)
    raise ValueError(f"Unhandled role '{caller.role}'")


def lead_scope(db: Session, caller: UserSession) -> ColumnElement[bool]:
    """Row filter for listing leads. Leads have no client owner."""
    if caller.role == Role.CLIENT:
        raise ForbiddenError("Clients cannot access leads")
    if caller.role in (Role.ADMIN, Role.SUPERVISOR, Role.OPERATOR):
        return _assignment_scope(db, Lead.assigned_to, caller)
    raise ValueError(f"Unhandled role '{caller.role}'")


def _assignee_in_scope(db: Session, assigned_to: UUID | None, caller: UserSession) -> bool:
    if caller.role == Role.ADMIN:
        return True
    if caller.role == Role.SUPERVISOR:
        return assigned_to is None or assigned_to in identity_service.operators_of(db, caller.user_id)
    if caller.role == Role.OPERATOR:
        return assigned_to == caller.user_id
    return False


def is_claim_in_scope(db: Session, claim: Claim, caller: UserSession) -> bool:
    """Whether the claim would appear in the caller's claim listing."""
    if caller.role == Role.CLIENT:
        return claim.client_id == caller.user_id
    return _assignee_in_scope(db, claim.assigned_to, caller)


def is_lead_in_scope(db: Session, lead: Lead, caller: UserSession) -> bool:
    """Whether the lead would appear in the caller's lead listing."""
    if caller.role == Role.CLIENT:
        return False
    return _assignee_in_scope(db, lead.assigned_to, caller)
