"""User administration: accounts, roles, supervisor links, deactivation."""

import logging
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from erp.core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from erp.core.permissions import require_capability
from erp.core.security import hash_password
from erp.db.enums import STAFF_ROLES, Role
from erp.db.models import Claim, Lead, User, utcnow
from erp.schemas.auth import UserSession
from erp.services import identity_service

logger = logging.getLogger(__name__)

SUPERVISOR_ROLES = {Role.ADMIN.value, Role.SUPERVISOR.value}
UPDATABLE_FIELDS = ("full_name", "role", "supervisor_id", "is_active", "password")
MIN_PASSWORD_LENGTH = 8
# bcrypt only hashes the first 72 bytes and rejects longer input
MAX_PASSWORD_BYTES = 72


def _parse_role(role: Role | str) -> Role:
    if isinstance(role, Role):
        return role
    if not Role.has_value(role):
        raise ValidationError(f"Unknown role '{role}'")
    return Role(role)


def _validate_password(password: str) -> str:
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    return password


def active_admin_count(db: Session) -> int:
    return db.execute(
        select(func.count(User.id)).where(
            User.role == Role.ADMIN.value,
            User.is_active.is_(True),
        )
    ).scalar_one()


def _is_last_active_admin(db: Session, user: User) -> bool:
    return (
        user.role == Role.ADMIN.value
        and user.is_active
        and active_admin_count(db) <= 1
    )


def validate_supervisor(db: Session, user_id: UUID | None, supervisor_id: UUID | None) -> None:
    """
    Check a supervisor link before writing it.

    The supervisor must be an active admin or supervisor, and walking upward
    from the supervisor must never reach the user being written.

    Raises:
        ValidationError: unknown/ineligible supervisor, or the link would form a cycle
    """
    if supervisor_id is None:
        return

    supervisor = identity_service.get_user(db, supervisor_id)
    if not supervisor or not supervisor.is_active:
        raise ValidationError("Supervisor not found")
    if supervisor.role not in SUPERVISOR_ROLES:
        raise ValidationError("supervisor_id must reference a supervisor or admin")

    if user_id is not None and user_id in identity_service.supervisor_chain(db, supervisor_id):
        raise ValidationError("Supervisor link would create a cycle")


def release_assignments(db: Session, user_id: UUID) -> int:
    """
    Return every claim and lead held by the user to the unassigned pool.

    Runs inside the caller's transaction; does not commit.
    """
    now = utcnow()
    released = 0
    for model in (Claim, Lead):
        result = db.execute(
            update(model)
            .where(model.assigned_to == user_id)
            .values(assigned_to=None, updated_at=now)
        )
        released += result.rowcount or 0
    return released


def get_user_or_404(db: Session, user_id: UUID) -> User:
    user = identity_service.get_user(db, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


def create_user(
    db: Session,
    caller: UserSession,
    email: str,
    password: str | None,
    role: Role | str,
    full_name: str | None = None,
    supervisor_id: UUID | None = None,
) -> User:
    """
    Create an account.

    Client accounts may be created without a password (they cannot log in
    until one is set); staff accounts always need one.

    Raises:
        ForbiddenError: caller is not admin
        ConflictError: email already registered
        ValidationError: bad role, password or supervisor
    """
    require_capability(caller.role, "users.manage")

    clean_email = identity_service.normalize_email(email or "")
    if "@" not in clean_email:
        raise ValidationError("A valid email is required")
    if identity_service.get_user_by_email(db, clean_email):
        raise ConflictError("Email already registered")

    parsed_role = _parse_role(role)
    if password is None and parsed_role != Role.CLIENT:
        raise ValidationError("Password is required for staff accounts")
    validate_supervisor(db, None, supervisor_id)

    user = User(
        email=clean_email,
        full_name=(full_name or "").strip() or None,
        role=parsed_role.value,
        supervisor_id=supervisor_id,
        password_hash=hash_password(_validate_password(password)) if password is not None else None,
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    logger.info("User %s (%s) created by %s", user.id, user.role, caller.user_id)
    return user


def list_users(db: Session, caller: UserSession, role: str | None = None) -> list[User]:
    """Admins see every account; supervisors see the operators they supervise."""
    require_capability(caller.role, "users.list")

    query = db.query(User)
    if caller.role == Role.SUPERVISOR:
        query = query.filter(
            User.supervisor_id == caller.user_id,
            User.role == Role.OPERATOR.value,
        )
    if role:
        query = query.filter(User.role == _parse_role(role).value)

    return query.order_by(User.created_at, User.email).all()


def update_user(db: Session, user_id: UUID, caller: UserSession, **changes) -> User:
    """
    Update an account. Only keys in UPDATABLE_FIELDS are accepted.

    Role changes, deactivation and password changes bump token_version,
    revoking live sessions. Deactivated users and users moved to the client
    role lose their claim and lead assignments in the same transaction.

    Raises:
        ForbiddenError: caller is not admin
        NotFoundError: user does not exist
        ValidationError: bad field value, or supervisor cycle
        ConflictError: would demote or deactivate the last active admin
    """
    require_capability(caller.role, "users.manage")

    unknown = set(changes) - set(UPDATABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Cannot update field(s): {', '.join(sorted(unknown))}")

    user = db.query(User).filter(User.id == user_id).with_for_update().first()
    if not user:
        raise NotFoundError("User not found")

    new_role = _parse_role(changes["role"]).value if changes.get("role") is not None else user.role
    deactivating = changes.get("is_active") is False and user.is_active
    if (new_role != Role.ADMIN.value or deactivating) and _is_last_active_admin(db, user):
        raise ConflictError("Cannot demote or deactivate the last active admin")

    revoke = False
    if "full_name" in changes:
        user.full_name = (changes["full_name"] or "").strip() or None
    if "supervisor_id" in changes:
        validate_supervisor(db, user.id, changes["supervisor_id"])
        user.supervisor_id = changes["supervisor_id"]
    if new_role != user.role:
        user.role = new_role
        revoke = True
    if changes.get("is_active") is not None and changes["is_active"] != user.is_active:
        user.is_active = bool(changes["is_active"])
        revoke = revoke or not user.is_active
    if changes.get("password") is not None:
        user.password_hash = hash_password(_validate_password(changes["password"]))
        revoke = True

    released = 0
    if not user.is_active or Role(user.role) not in STAFF_ROLES:
        released = release_assignments(db, user.id)

    if revoke:
        user.token_version += 1
    user.updated_at = utcnow()
    db.commit()
    if released:
        logger.info("Released %d assignment(s) held by user %s", released, user.id)
    db.refresh(user)

    logger.info("User %s updated by %s (%s)", user.id, caller.user_id, ", ".join(sorted(changes)))
    return user


def delete_user(db: Session, user_id: UUID, caller: UserSession) -> None:
    """
    Hard-delete an account. Assignments and supervisor links pointing at it
    are cleared by the foreign keys.

    Raises:
        ForbiddenError: caller is not admin
        NotFoundError: user does not exist
        ConflictError: self-deletion, or the last active admin
    """
    require_capability(caller.role, "users.manage")

    user = db.query(User).filter(User.id == user_id).with_for_update().first()
    if not user:
        raise NotFoundError("User not found")
    if user.id == caller.user_id:
        raise ConflictError("You cannot delete your own account")
    if _is_last_active_admin(db, user):
        raise ConflictError("Cannot delete the last active admin")

    db.delete(user)
    db.commit()
    logger.info("User %s deleted by %s", user_id, caller.user_id)


def revoke_sessions(db: Session, user_id: UUID) -> User:
    """Invalidate all outstanding session tokens for a user."""
    user = get_user_or_404(db, user_id)
    user.token_version += 1
    db.commit()
    db.refresh(user)
    return user


def ensure_can_view(caller: UserSession, user: User) -> None:
    """Supervisors may only look at their own operators."""
    if caller.role == Role.ADMIN:
        return
    if caller.role == Role.SUPERVISOR and user.supervisor_id == caller.user_id:
        return
    raise ForbiddenError("Not authorized to view this user")
