"""Claims router: listing, lifecycle, assignment, attachments, comments."""

from uuid import UUID

from fastapi import APIRouter, Depends, File, Query, UploadFile
from sqlalchemy.orm import Session

from erp.core.deps import get_current_session, get_db, require_csrf_header, require_roles
from erp.db.enums import Role
from erp.schemas.auth import UserSession
from erp.schemas.claim import (
    ClaimAssign,
    ClaimCreate,
    ClaimListResponse,
    ClaimRead,
    ClaimReply,
    ClaimStatusChange,
)
from erp.schemas.comment import CommentCreate, CommentRead
from erp.services import (
    assignment_service,
    attachment_service,
    claim_service,
    claim_status_service,
    comment_service,
)

router = APIRouter()

STAFF = [Role.ADMIN, Role.SUPERVISOR, Role.OPERATOR]


@router.get("", response_model=ClaimListResponse)
def list_claims(
    status: str | None = Query(None),
    limit: int = Query(claim_service.DEFAULT_PAGE_SIZE, ge=1, le=claim_service.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """List claims visible to the caller, newest first."""
    items, total = claim_service.list_claims(db, session, status=status, limit=limit, offset=offset)
    return ClaimListResponse(
        items=[ClaimRead.model_validate(c) for c in items],
        total=total,
    )


@router.post(
    "",
    response_model=ClaimRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def create_claim(
    data: ClaimCreate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Open a claim. Clients file for themselves; admin/supervisor pass client_id."""
    return claim_service.create_claim(
        db,
        session,
        title=data.title,
        description=data.description,
        client_id=data.client_id,
    )


@router.get("/{claim_id}", response_model=ClaimRead)
def get_claim(
    claim_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return claim_service.get_claim_for_caller(db, claim_id, session)


@router.patch(
    "/{claim_id}/status",
    response_model=ClaimRead,
    dependencies=[Depends(require_csrf_header)],
)
def change_status(
    claim_id: UUID,
    data: ClaimStatusChange,
    session: UserSession = Depends(require_roles(STAFF)),
    db: Session = Depends(get_db),
):
    """Move a claim along submitted -> in_review -> resolved | rejected."""
    return claim_status_service.change_status(db, claim_id, data.status, session)


@router.patch(
    "/{claim_id}/reply",
    response_model=ClaimRead,
    dependencies=[Depends(require_csrf_header)],
)
def set_reply(
    claim_id: UUID,
    data: ClaimReply,
    session: UserSession = Depends(require_roles(STAFF)),
    db: Session = Depends(get_db),
):
    return claim_service.set_reply(db, claim_id, data.reply, session)


@router.patch(
    "/{claim_id}/assign",
    response_model=ClaimRead,
    dependencies=[Depends(require_csrf_header)],
)
def assign_claim(
    claim_id: UUID,
    data: ClaimAssign,
    session: UserSession = Depends(require_roles([Role.ADMIN, Role.SUPERVISOR])),
    db: Session = Depends(get_db),
):
    """Assign to a staff user, or unassign with assigned_to=null."""
    return assignment_service.assign_claim(db, claim_id, data.assigned_to, session)


# =============================================================================
# Attachments
# =============================================================================

def _to_incoming(upload: UploadFile) -> attachment_service.IncomingFile:
    size = upload.size
    if size is None:
        upload.file.seek(0, 2)
        size = upload.file.tell()
        upload.file.seek(0)
    return attachment_service.IncomingFile(
        filename=upload.filename or "",
        content_type=upload.content_type or "application/octet-stream",
        file=upload.file,
        size=size,
    )


@router.post(
    "/{claim_id}/attachments",
    response_model=ClaimRead,
    dependencies=[Depends(require_csrf_header)],
)
def upload_attachments(
    claim_id: UUID,
    files: list[UploadFile] = File(...),
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """
    Attach PDF/JPEG/PNG files to an existing claim.

    Files are stored first and the claim row updated after; a failed update
    removes the stored files again.
    """
    return attachment_service.attach_files(
        db, claim_id, [_to_incoming(f) for f in files], session
    )


# =============================================================================
# Comments
# =============================================================================

@router.get("/{claim_id}/comments", response_model=list[CommentRead])
def list_comments(
    claim_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Comments newest first. Clients only see comments shared with them."""
    comments = comment_service.list_comments(db, claim_id, session)
    return [comment_service.to_comment_read(c) for c in comments]


@router.post(
    "/{claim_id}/comments",
    response_model=CommentRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def add_comment(
    claim_id: UUID,
    data: CommentCreate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    comment = comment_service.add_comment(
        db,
        claim_id,
        session,
        content=data.content,
        visible_to_client=data.visible_to_client,
    )
    return comment_service.to_comment_read(comment)
