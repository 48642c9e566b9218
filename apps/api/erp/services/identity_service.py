"""Identity and role model: caller resolution and the supervisor → operator tree."""

import logging
from uuid import UUID

import jwt
from sqlalchemy import select
from sqlalchemy.orm import Session

from erp.core.exceptions import InactiveAccountError, UnauthenticatedError
from erp.core.security import decode_session_token, verify_password
from erp.db.enums import Role
from erp.db.models import User
from erp.schemas.auth import UserSession

logger = logging.getLogger(__name__)


def get_user(db: Session, user_id: UUID) -> User | None:
    """Get a user by ID (active or not)."""
    return db.get(User, user_id)


def get_user_by_email(db: Session, email: str) -> User | None:
    """Get a user by email (case-insensitive; emails are stored lower-cased)."""
    return db.execute(
        select(User).where(User.email == normalize_email(email))
    ).scalar_one_or_none()


def normalize_email(email: str) -> str:
    return email.strip().lower()


def to_session(user: User) -> UserSession:
    """Build the caller identity passed into engine operations."""
    return UserSession(
        user_id=user.id,
        role=Role(user.role),
        email=user.email,
        display_name=user.display_name,
        active=user.is_active,
    )


def resolve_caller(db: Session, token: str | None) -> UserSession:
    """
    Resolve a raw session token to the caller identity.

    Missing/invalid tokens, unknown users, revoked sessions and inactive
    accounts all surface with the same message so account existence does not
    leak.

    Raises:
        UnauthenticatedError: credential missing, invalid or revoked
        InactiveAccountError: account resolved but disabled
    """
    if not token:
        raise UnauthenticatedError()

    try:
        payload = decode_session_token(token)
        user_id = UUID(payload["sub"])
    except (jwt.InvalidTokenError, KeyError, ValueError):
        raise UnauthenticatedError()

    user = get_user(db, user_id)
    if not user:
        raise UnauthenticatedError()

    if not user.is_active:
        logger.info("Rejected session for inactive user %s", user.id)
        raise InactiveAccountError()

    # Token version check (revocation support)
    if user.token_version != payload.get("token_version"):
        raise UnauthenticatedError()

    if not Role.has_value(user.role):
        logger.error("User %s has unknown role %r", user.id, user.role)
        raise UnauthenticatedError()

    return to_session(user)


def authenticate(db: Session, email: str, password: str) -> User:
    """
    Check credentials for login.

    Raises:
        UnauthenticatedError: unknown email, wrong password, or inactive account
    """
    user = get_user_by_email(db, email)
    if not user or not verify_password(password, user.password_hash):
        raise UnauthenticatedError("Invalid email or password")
    if not user.is_active:
        raise InactiveAccountError("Invalid email or password")
    return user


def operators_of(db: Session, supervisor_id: UUID) -> set[UUID]:
    """IDs of active operators whose supervisor is the given user."""
    rows = db.execute(
        select(User.id).where(
            User.supervisor_id == supervisor_id,
            User.role == Role.OPERATOR.value,
            User.is_active.is_(True),
        )
    ).scalars()
    return set(rows)


def supervisor_chain(db: Session, user_id: UUID, limit: int = 64) -> list[UUID]:
    """
    Walk supervisor_id upward from a user, returning the IDs visited.

    Stops at a root, at a repeated ID (existing cycle), or after ``limit`` hops.
    """
    chain: list[UUID] = []
    seen: set[UUID] = set()
    current: UUID | None = user_id
    while current is not None and current not in seen and len(chain) < limit:
        seen.add(current)
        chain.append(current)
        current = db.execute(
            select(User.supervisor_id).where(User.id == current)
        ).scalar_one_or_none()
    return chain
