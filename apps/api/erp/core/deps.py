"""FastAPI dependencies for authentication, authorization, and database access."""

from typing import Generator

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from erp.core.exceptions import ForbiddenError
from erp.db.session import SessionLocal
from erp.schemas.auth import UserSession


# Cookie and header names
COOKIE_NAME = "erp_session"
CSRF_HEADER = "X-Requested-With"
CSRF_HEADER_VALUE = "XMLHttpRequest"


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.

    Yields one session per request; anything left uncommitted when the
    request ends is rolled back on close.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_session_token(request: Request) -> str | None:
    """Session token from the cookie, or an Authorization: Bearer header."""
    token = request.cookies.get(COOKIE_NAME)
    if token:
        return token
    auth_header = request.headers.get("Authorization", "")
    if auth_header.lower().startswith("bearer "):
        return auth_header[7:].strip() or None
    return None


def get_current_session(
    request: Request,
    db: Session = Depends(get_db),
) -> UserSession:
    """
    Resolve the caller identity (user_id, role).

    This is the PRIMARY auth dependency for every engine endpoint.

    Raises:
        UnauthenticatedError: 401 for missing/invalid/revoked/inactive
    """
    from erp.services import identity_service

    session = identity_service.resolve_caller(db, get_session_token(request))
    request.state.user_id = str(session.user_id)
    request.state.role = session.role.value
    return session


def require_roles(allowed_roles: list):
    """
    Dependency factory for role-based authorization.

    Uses enum values (not strings) to prevent drift.

    Usage:
        @router.post("/users", dependencies=[Depends(require_roles([Role.ADMIN]))])
    """
    def dependency(session: UserSession = Depends(get_current_session)) -> UserSession:
        if session.role not in allowed_roles:
            raise ForbiddenError(f"Role '{session.role.value}' not authorized for this action")
        return session
    return dependency


def require_csrf_header(request: Request) -> None:
    """
    Verify CSRF header on mutations.

    Apply to state-changing endpoints (POST, PATCH, DELETE).

    Raises:
        ForbiddenError: Missing or invalid CSRF header
    """
    if request.headers.get(CSRF_HEADER) != CSRF_HEADER_VALUE:
        raise ForbiddenError(
            f"Missing CSRF header. Include '{CSRF_HEADER}: {CSRF_HEADER_VALUE}'"
        )
