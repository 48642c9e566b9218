"""Claim service: creation, reads, scoped listing and replies."""

import logging
from uuid import UUID

from sqlalchemy.orm import Session

from erp.core.claim_access import check_claim_read_access
from erp.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from erp.core.permissions import require_capability
from erp.db.enums import ClaimEvent, ClaimStatus, Role
from erp.db.models import Claim, utcnow
from erp.schemas.auth import UserSession
from erp.services import event_service, identity_service, scoping_service
from erp.services.claim_status_service import parse_status

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 200


def _require_text(value: str | None, field: str) -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise ValidationError(f"{field} is required")
    return cleaned


def _resolve_claim_owner(db: Session, caller: UserSession, client_id: UUID | None) -> UUID:
    """Clients file for themselves; admin/supervisor file on behalf of a named client."""
    if caller.role == Role.CLIENT:
        if client_id is not None and client_id != caller.user_id:
            raise ForbiddenError("Clients can only create claims for themselves")
        return caller.user_id

    if client_id is None:
        raise ValidationError("client_id is required when creating a claim on behalf of a client")

    client = identity_service.get_user(db, client_id)
    if not client or not client.is_active:
        raise NotFoundError("Client not found")
    if client.role != Role.CLIENT.value:
        raise ValidationError("client_id must reference a client account")
    return client.id


def create_claim(
    db: Session,
    caller: UserSession,
    title: str,
    description: str,
    client_id: UUID | None = None,
) -> Claim:
    """
    Create a claim in status 'submitted', unassigned.

    Attachments are added afterwards (attachment_service.attach_files) so a
    failed insert never leaves orphaned files.

    Raises:
        ForbiddenError: operator caller, or client filing for someone else
        ValidationError: missing title/description/client_id
        NotFoundError: named client does not exist
    """
    require_capability(caller.role, "claims.create")
    clean_title = _require_text(title, "title")
    clean_description = _require_text(description, "description")
    owner_id = _resolve_claim_owner(db, caller, client_id)

    claim = Claim(
        client_id=owner_id,
        title=clean_title,
        description=clean_description,
        status=ClaimStatus.SUBMITTED.value,
        file_paths=[],
        assigned_to=None,
    )
    db.add(claim)
    db.commit()
    db.refresh(claim)

    logger.info("Claim %s created for client %s by %s", claim.id, owner_id, caller.user_id)
    event_service.publish(
        ClaimEvent.CLAIM_CREATED,
        {"claim_id": claim.id, "status": claim.status, "assigned_to": None},
    )
    return claim


def get_claim(db: Session, claim_id: UUID) -> Claim | None:
    """Get a claim by ID (no access check)."""
    return db.get(Claim, claim_id)


def get_claim_for_caller(db: Session, claim_id: UUID, caller: UserSession) -> Claim:
    """
    Single-record read.

    Raises:
        NotFoundError: claim does not exist
        ForbiddenError: client reading another client's claim
    """
    require_capability(caller.role, "claims.read")
    claim = get_claim(db, claim_id)
    if not claim:
        raise NotFoundError("Claim not found")
    check_claim_read_access(claim, caller.role, caller.user_id)
    return claim


def list_claims(
    db: Session,
    caller: UserSession,
    status: str | None = None,
    limit: int = DEFAULT_PAGE_SIZE,
    offset: int = 0,
) -> tuple[list[Claim], int]:
    """List claims visible to the caller, newest first. Returns (items, total)."""
    require_capability(caller.role, "claims.list")

    query = db.query(Claim).filter(scoping_service.claim_scope(db, caller))
    if status:
        query = query.filter(Claim.status == parse_status(status).value)

    total = query.count()
    limit = max(1, min(limit, MAX_PAGE_SIZE))
    items = (
        query.order_by(Claim.created_at.desc(), Claim.id)
        .offset(max(offset, 0))
        .limit(limit)
        .all()
    )
    return items, total


def set_reply(
    db: Session,
    claim_id: UUID,
    reply: str,
    caller: UserSession,
) -> Claim:
    """
    Set the staff reply on a claim.

    Raises:
        ForbiddenError: client caller
        ValidationError: empty reply
        NotFoundError: claim does not exist
    """
    require_capability(caller.role, "claims.reply")
    clean_reply = _require_text(reply, "reply")

    claim = db.query(Claim).filter(Claim.id == claim_id).with_for_update().first()
    if not claim:
        raise NotFoundError("Claim not found")

    claim.reply = clean_reply
    claim.updated_at = utcnow()
    db.commit()
    db.refresh(claim)

    logger.info("Reply set on claim %s by %s", claim.id, caller.user_id)
    event_service.publish(
        ClaimEvent.CLAIM_REPLY_ADDED,
        {"claim_id": claim.id, "status": claim.status},
    )
    return claim
