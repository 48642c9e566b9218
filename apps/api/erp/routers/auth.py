"""Authentication router: password login, logout, current user."""

import logging

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session

from erp.core.config import settings
from erp.core.deps import COOKIE_NAME, get_current_session, get_db, require_csrf_header
from erp.core.permissions import capability_matrix
from erp.core.rate_limit import AUTH_LIMIT, limiter
from erp.core.security import create_session_token
from erp.schemas.auth import LoginRequest, MeResponse, UserSession
from erp.services import identity_service

logger = logging.getLogger(__name__)

router = APIRouter()


def _me_response(user) -> MeResponse:
    return MeResponse(
        user_id=user.id,
        email=user.email,
        display_name=user.display_name,
        role=user.role,
        supervisor_id=user.supervisor_id,
        capabilities=sorted(
            key for key, roles in capability_matrix().items() if user.role in roles
        ),
    )


@router.post("/login", response_model=MeResponse)
@limiter.limit(AUTH_LIMIT)
def login(
    request: Request,
    response: Response,
    data: LoginRequest,
    db: Session = Depends(get_db),
):
    """
    Exchange email + password for a session cookie.

    Unknown email, wrong password and inactive account all return the same
    401 so account existence does not leak.
    """
    user = identity_service.authenticate(db, data.email, data.password)
    token = create_session_token(user.id, user.role, user.token_version)

    response.set_cookie(
        key=COOKIE_NAME,
        value=token,
        max_age=settings.JWT_EXPIRES_HOURS * 3600,
        httponly=True,
        samesite="lax",
        secure=settings.cookie_secure,
        path="/",
    )
    logger.info("User %s logged in", user.id)
    return _me_response(user)


@router.post("/logout", dependencies=[Depends(require_csrf_header)])
def logout(
    response: Response,
    session: UserSession = Depends(get_current_session),
):
    """
    Clear session cookie.

    Requires X-Requested-With header for CSRF protection.
    """
    response.delete_cookie(COOKIE_NAME, path="/")
    logger.info("User %s logged out", session.user_id)
    return {"status": "logged_out"}


@router.get("/me", response_model=MeResponse)
def get_me(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Current user profile, role and the actions that role may attempt."""
    user = identity_service.get_user(db, session.user_id)
    return _me_response(user)
