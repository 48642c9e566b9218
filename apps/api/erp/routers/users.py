"""Users router: account administration."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from erp.core.deps import get_db, require_csrf_header, require_roles
from erp.db.enums import Role
from erp.schemas.auth import UserSession
from erp.schemas.user import UserCreate, UserRead, UserUpdate
from erp.services import user_service

router = APIRouter()


@router.get("", response_model=list[UserRead])
def list_users(
    role: Role | None = Query(None),
    session: UserSession = Depends(require_roles([Role.ADMIN, Role.SUPERVISOR])),
    db: Session = Depends(get_db),
):
    """Admins see every account; supervisors see their operators."""
    return user_service.list_users(db, session, role=role.value if role else None)


@router.get("/{user_id}", response_model=UserRead)
def get_user(
    user_id: UUID,
    session: UserSession = Depends(require_roles([Role.ADMIN, Role.SUPERVISOR])),
    db: Session = Depends(get_db),
):
    user = user_service.get_user_or_404(db, user_id)
    user_service.ensure_can_view(session, user)
    return user


@router.post(
    "",
    response_model=UserRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def create_user(
    data: UserCreate,
    session: UserSession = Depends(require_roles([Role.ADMIN])),
    db: Session = Depends(get_db),
):
    return user_service.create_user(
        db,
        session,
        email=data.email,
        password=data.password,
        role=data.role,
        full_name=data.full_name,
        supervisor_id=data.supervisor_id,
    )


@router.patch(
    "/{user_id}",
    response_model=UserRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_user(
    user_id: UUID,
    data: UserUpdate,
    session: UserSession = Depends(require_roles([Role.ADMIN])),
    db: Session = Depends(get_db),
):
    """Partial update; an explicit null supervisor_id clears the link."""
    return user_service.update_user(db, user_id, session, **data.model_dump(exclude_unset=True))


@router.delete(
    "/{user_id}",
    status_code=204,
    dependencies=[Depends(require_csrf_header)],
)
def delete_user(
    user_id: UUID,
    session: UserSession = Depends(require_roles([Role.ADMIN])),
    db: Session = Depends(get_db),
):
    user_service.delete_user(db, user_id, session)
