"""Claim comments with client-visibility filtering.

Write: client-authored comments are always stored with visible_to_client=False;
the flag only exists for staff to surface an internal note to the client.
Read: clients only get comments flagged visible_to_client; staff get all.
Comments are append-only.
"""

import logging
from uuid import UUID

import nh3
from sqlalchemy.orm import Session, joinedload

from erp.core.claim_access import check_claim_comment_access, check_claim_read_access
from erp.core.exceptions import NotFoundError, ValidationError
from erp.core.permissions import require_capability
from erp.db.enums import ClaimEvent, Role
from erp.db.models import Claim, ClaimComment
from erp.schemas.auth import UserSession
from erp.schemas.comment import CommentRead
from erp.services import event_service

logger = logging.getLogger(__name__)

# Allowed HTML tags for rich text comments
ALLOWED_TAGS = {"p", "br", "strong", "em", "ul", "ol", "li", "a", "blockquote", "code", "pre"}
ALLOWED_ATTRIBUTES = {"a": {"href", "target"}}


def sanitize_html(html: str) -> str:
    """Sanitize HTML to prevent XSS, allowing only safe rich text tags."""
    return nh3.clean(html, tags=ALLOWED_TAGS, attributes=ALLOWED_ATTRIBUTES)


def _get_claim(db: Session, claim_id: UUID, *, lock: bool = False) -> Claim:
    query = db.query(Claim).filter(Claim.id == claim_id)
    if lock:
        query = query.with_for_update()
    claim = query.first()
    if not claim:
        raise NotFoundError("Claim not found")
    return claim


def resolve_visibility(author_role: Role, requested_visible: bool) -> bool:
    """Stored visible_to_client value for a new comment."""
    if author_role == Role.CLIENT:
        return False
    return bool(requested_visible)


def add_comment(
    db: Session,
    claim_id: UUID,
    author: UserSession,
    content: str,
    visible_to_client: bool = False,
) -> ClaimComment:
    """
    Append a comment to a claim.

    Raises:
        NotFoundError: claim does not exist
        ForbiddenError: author may not comment on this claim
        ValidationError: empty content after sanitizing
    """
    require_capability(author.role, "claims.comment")
    claim = _get_claim(db, claim_id, lock=True)
    check_claim_comment_access(claim, author.role, author.user_id)

    clean_content = sanitize_html(content or "").strip()
    if not clean_content:
        raise ValidationError("Comment content is required")

    comment = ClaimComment(
        claim_id=claim.id,
        author_id=author.user_id,
        role=author.role.value,
        content=clean_content,
        visible_to_client=resolve_visibility(author.role, visible_to_client),
    )
    db.add(comment)
    db.commit()
    db.refresh(comment)

    logger.info(
        "Comment %s added to claim %s by %s (visible_to_client=%s)",
        comment.id, claim.id, author.user_id, comment.visible_to_client,
    )
    event_service.publish(
        ClaimEvent.CLAIM_COMMENT_ADDED,
        {"claim_id": claim.id, "comment_id": comment.id},
    )
    return comment


def list_comments(
    db: Session,
    claim_id: UUID,
    caller: UserSession,
) -> list[ClaimComment]:
    """
    List comments on a claim, newest first.

    Raises:
        NotFoundError: claim does not exist
        ForbiddenError: caller may not read this claim
    """
    claim = _get_claim(db, claim_id)
    check_claim_read_access(claim, caller.role, caller.user_id)

    query = db.query(ClaimComment).options(joinedload(ClaimComment.author)).filter(
        ClaimComment.claim_id == claim.id,
    )
    if caller.role == Role.CLIENT:
        query = query.filter(ClaimComment.visible_to_client.is_(True))

    return query.order_by(ClaimComment.created_at.desc()).all()


def to_comment_read(comment: ClaimComment) -> CommentRead:
    """Convert ClaimComment model to read schema."""
    return CommentRead(
        id=comment.id,
        claim_id=comment.claim_id,
        author_id=comment.author_id,
        author_name=comment.author.display_name if comment.author else None,
        role=comment.role,
        content=comment.content,
        visible_to_client=comment.visible_to_client,
        created_at=comment.created_at,
    )
