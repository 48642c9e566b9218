"""Lead service: CRUD over sales prospects and conversion into clients."""

import logging
from uuid import UUID

from sqlalchemy.orm import Session

from erp.core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from erp.core.permissions import require_capability
from erp.db.enums import DEFAULT_LEAD_STATUS, ClaimEvent, Role
from erp.db.models import Client, Lead, User, utcnow
from erp.schemas.auth import UserSession
from erp.services import event_service, identity_service, scoping_service
from erp.services.assignment_service import validate_assignment

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 200

UPDATABLE_FIELDS = ("name", "email", "phone", "status", "notes")


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def create_lead(
    db: Session,
    caller: UserSession,
    name: str,
    email: str | None = None,
    phone: str | None = None,
    status: str | None = None,
    notes: str | None = None,
    assigned_to: UUID | None = None,
) -> Lead:
    """
    Create a lead.

    Operators always own the leads they create. Admins and supervisors may
    route the new lead immediately; the usual assignment rules apply.

    Raises:
        ForbiddenError: client caller, or operator naming another assignee
        ValidationError: missing name
        AssigneeNotFoundError, InvalidAssigneeRoleError: bad initial assignee
    """
    require_capability(caller.role, "leads.create")

    clean_name = _clean(name)
    if not clean_name:
        raise ValidationError("name is required")

    if caller.role == Role.OPERATOR:
        if assigned_to is not None and assigned_to != caller.user_id:
            raise ForbiddenError("Operators can only create leads for themselves")
        assigned_to = caller.user_id
    elif assigned_to is not None:
        validate_assignment(db, "leads.assign", None, assigned_to, caller)

    lead = Lead(
        name=clean_name,
        email=identity_service.normalize_email(email) if _clean(email) else None,
        phone=_clean(phone),
        status=_clean(status) or DEFAULT_LEAD_STATUS,
        notes=_clean(notes),
        assigned_to=assigned_to,
    )
    db.add(lead)
    db.commit()
    db.refresh(lead)

    logger.info("Lead %s created by %s (assigned_to=%s)", lead.id, caller.user_id, assigned_to)
    if assigned_to is not None:
        event_service.publish(
            ClaimEvent.LEAD_ASSIGNED,
            {"lead_id": lead.id, "assigned_to": lead.assigned_to},
        )
    return lead


def _get_scoped_lead(
    db: Session,
    lead_id: UUID,
    caller: UserSession,
    *,
    lock: bool = False,
) -> Lead:
    query = db.query(Lead).filter(Lead.id == lead_id)
    if lock:
        query = query.with_for_update()
    lead = query.first()
    if not lead:
        raise NotFoundError("Lead not found")
    if not scoping_service.is_lead_in_scope(db, lead, caller):
        raise ForbiddenError("This lead is outside your scope")
    return lead


def get_lead_for_caller(db: Session, lead_id: UUID, caller: UserSession) -> Lead:
    """
    Raises:
        ForbiddenError: client caller, or lead outside the caller's scope
        NotFoundError: lead does not exist
    """
    require_capability(caller.role, "leads.read")
    return _get_scoped_lead(db, lead_id, caller)


def list_leads(
    db: Session,
    caller: UserSession,
    status: str | None = None,
    limit: int = DEFAULT_PAGE_SIZE,
    offset: int = 0,
) -> tuple[list[Lead], int]:
    """List leads visible to the caller, newest first. Returns (items, total)."""
    require_capability(caller.role, "leads.list")

    query = db.query(Lead).filter(scoping_service.lead_scope(db, caller))
    if status:
        query = query.filter(Lead.status == status)

    total = query.count()
    limit = max(1, min(limit, MAX_PAGE_SIZE))
    items = (
        query.order_by(Lead.created_at.desc(), Lead.id)
        .offset(max(offset, 0))
        .limit(limit)
        .all()
    )
    return items, total


def update_lead(db: Session, lead_id: UUID, caller: UserSession, **changes) -> Lead:
    """
    Update prospect details. Only keys in UPDATABLE_FIELDS are accepted;
    assignment goes through assignment_service.assign_lead.

    Raises:
        ForbiddenError, NotFoundError, ValidationError
    """
    require_capability(caller.role, "leads.update")

    unknown = set(changes) - set(UPDATABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Cannot update field(s): {', '.join(sorted(unknown))}")

    lead = _get_scoped_lead(db, lead_id, caller, lock=True)

    if "name" in changes:
        name = _clean(changes["name"])
        if not name:
            raise ValidationError("name cannot be empty")
        lead.name = name
    if "email" in changes:
        lead.email = identity_service.normalize_email(changes["email"]) if _clean(changes["email"]) else None
    if "phone" in changes:
        lead.phone = _clean(changes["phone"])
    if "status" in changes:
        lead.status = _clean(changes["status"]) or DEFAULT_LEAD_STATUS
    if "notes" in changes:
        lead.notes = _clean(changes["notes"])

    lead.updated_at = utcnow()
    db.commit()
    db.refresh(lead)
    logger.info("Lead %s updated by %s (%s)", lead.id, caller.user_id, ", ".join(sorted(changes)))
    return lead


def delete_lead(db: Session, lead_id: UUID, caller: UserSession) -> None:
    """
    Raises:
        ForbiddenError: operator/client caller, or lead outside scope
        NotFoundError: lead does not exist
    """
    require_capability(caller.role, "leads.delete")
    lead = _get_scoped_lead(db, lead_id, caller, lock=True)
    db.delete(lead)
    db.commit()
    logger.info("Lead %s deleted by %s", lead_id, caller.user_id)


def convert_lead(
    db: Session,
    lead_id: UUID,
    caller: UserSession,
    company: str | None = None,
    address: str | None = None,
) -> Client:
    """
    Turn a lead into a client account.

    The client-role user (new, or an existing client user without a Client
    record), the Client record and the lead deletion are committed together.
    Converted users have no password until an admin sets one.

    Raises:
        ForbiddenError: client caller, or lead outside scope
        NotFoundError: lead does not exist
        ValidationError: lead has no email
        ConflictError: email belongs to staff or to an existing client record
    """
    require_capability(caller.role, "leads.convert")
    lead = _get_scoped_lead(db, lead_id, caller, lock=True)

    if not lead.email:
        raise ValidationError("Lead needs an email before it can be converted")

    user = identity_service.get_user_by_email(db, lead.email)
    if user is not None:
        if user.role != Role.CLIENT.value:
            raise ConflictError("Email already belongs to a staff account")
        if user.client_profile is not None:
            raise ConflictError("A client with this email already exists")
    else:
        user = User(
            email=identity_service.normalize_email(lead.email),
            full_name=lead.name,
            role=Role.CLIENT.value,
            password_hash=None,
        )
        db.add(user)
        db.flush()

    client = Client(
        user_id=user.id,
        company=_clean(company),
        address=_clean(address),
        phone=lead.phone,
    )
    db.add(client)
    db.delete(lead)
    db.commit()
    db.refresh(client)

    logger.info("Lead %s converted to client %s (user %s) by %s", lead_id, client.id, user.id, caller.user_id)
    event_service.publish(
        ClaimEvent.LEAD_CONVERTED,
        {"lead_id": lead_id, "user_id": user.id, "client_id": client.id},
    )
    return client
