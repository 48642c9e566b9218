"""Leads router: prospect CRUD, assignment and conversion."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from erp.core.deps import get_db, require_csrf_header, require_roles
from erp.db.enums import Role
from erp.schemas.auth import UserSession
from erp.schemas.lead import (
    LeadAssign,
    LeadConvert,
    LeadConvertResponse,
    LeadCreate,
    LeadListResponse,
    LeadRead,
    LeadUpdate,
)
from erp.services import assignment_service, lead_service

STAFF = [Role.ADMIN, Role.SUPERVISOR, Role.OPERATOR]
MANAGERS = [Role.ADMIN, Role.SUPERVISOR]

router = APIRouter(dependencies=[Depends(require_roles(STAFF))])


@router.get("", response_model=LeadListResponse)
def list_leads(
    status: str | None = Query(None),
    limit: int = Query(lead_service.DEFAULT_PAGE_SIZE, ge=1, le=lead_service.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    session: UserSession = Depends(require_roles(STAFF)),
    db: Session = Depends(get_db),
):
    items, total = lead_service.list_leads(db, session, status=status, limit=limit, offset=offset)
    return LeadListResponse(
        items=[LeadRead.model_validate(lead) for lead in items],
        total=total,
    )


@router.post(
    "",
    response_model=LeadRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def create_lead(
    data: LeadCreate,
    session: UserSession = Depends(require_roles(STAFF)),
    db: Session = Depends(get_db),
):
    """Operators' leads are always assigned to themselves."""
    return lead_service.create_lead(db, session, **data.model_dump())


@router.get("/{lead_id}", response_model=LeadRead)
def get_lead(
    lead_id: UUID,
    session: UserSession = Depends(require_roles(STAFF)),
    db: Session = Depends(get_db),
):
    return lead_service.get_lead_for_caller(db, lead_id, session)


@router.patch(
    "/{lead_id}",
    response_model=LeadRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_lead(
    lead_id: UUID,
    data: LeadUpdate,
    session: UserSession = Depends(require_roles(STAFF)),
    db: Session = Depends(get_db),
):
    return lead_service.update_lead(db, lead_id, session, **data.model_dump(exclude_unset=True))


@router.delete(
    "/{lead_id}",
    status_code=204,
    dependencies=[Depends(require_csrf_header)],
)
def delete_lead(
    lead_id: UUID,
    session: UserSession = Depends(require_roles(MANAGERS)),
    db: Session = Depends(get_db),
):
    lead_service.delete_lead(db, lead_id, session)


@router.patch(
    "/{lead_id}/assign",
    response_model=LeadRead,
    dependencies=[Depends(require_csrf_header)],
)
def assign_lead(
    lead_id: UUID,
    data: LeadAssign,
    session: UserSession = Depends(require_roles(MANAGERS)),
    db: Session = Depends(get_db),
):
    return assignment_service.assign_lead(db, lead_id, data.assigned_to, session)


@router.post(
    "/{lead_id}/convert",
    response_model=LeadConvertResponse,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def convert_lead(
    lead_id: UUID,
    data: LeadConvert | None = None,
    session: UserSession = Depends(require_roles(STAFF)),
    db: Session = Depends(get_db),
):
    """Create (or reuse) a client user and Client record; the lead is removed."""
    data = data or LeadConvert()
    client = lead_service.convert_lead(
        db, lead_id, session, company=data.company, address=data.address
    )
    return LeadConvertResponse(
        client_id=client.id,
        user_id=client.user_id,
        company=client.company,
        address=client.address,
        phone=client.phone,
        created_at=client.created_at,
    )
