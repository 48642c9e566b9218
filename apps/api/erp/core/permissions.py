"""Role capability matrix.

Every action the engine performs is listed here with the roles allowed to
perform it. Ownership rules (own claim, own queue, own team) are layered on
top by the services; this table only answers "may this role attempt it".
"""

from dataclasses import dataclass

from erp.core.exceptions import ForbiddenError
from erp.db.enums import Role


@dataclass(frozen=True)
class Capability:
    """Capability definition with metadata."""
    key: str
    label: str
    roles: frozenset[Role]


def _cap(key: str, label: str, *roles: Role) -> Capability:
    return Capability(key=key, label=label, roles=frozenset(roles))


ALL_ROLES = (Role.ADMIN, Role.SUPERVISOR, Role.OPERATOR, Role.CLIENT)
STAFF = (Role.ADMIN, Role.SUPERVISOR, Role.OPERATOR)
MANAGERS = (Role.ADMIN, Role.SUPERVISOR)


# =============================================================================
# Capability Registry
# =============================================================================

CAPABILITIES: dict[str, Capability] = {
    cap.key: cap
    for cap in (
        # Claims
        _cap("claims.list", "List claims", *ALL_ROLES),
        _cap("claims.read", "Read a claim", *ALL_ROLES),
        _cap("claims.create", "Create claims", Role.CLIENT, *MANAGERS),
        _cap("claims.change_status", "Change claim status", *STAFF),
        _cap("claims.reply", "Reply to claims", *STAFF),
        _cap("claims.assign", "Assign claims", *MANAGERS),
        _cap("claims.comment", "Comment on claims", *ALL_ROLES),
        _cap("claims.attach", "Attach files to claims", *ALL_ROLES),
        # Leads
        _cap("leads.list", "List leads", *STAFF),
        _cap("leads.read", "Read a lead", *STAFF),
        _cap("leads.create", "Create leads", *STAFF),
        _cap("leads.update", "Edit leads", *STAFF),
        _cap("leads.assign", "Assign leads", *MANAGERS),
        _cap("leads.delete", "Delete leads", *MANAGERS),
        _cap("leads.convert", "Convert leads to clients", *STAFF),
        # Users
        _cap("users.list", "List users", *MANAGERS),
        _cap("users.manage", "Create, edit and delete users", Role.ADMIN),
    )
}


def has_capability(role: Role | str, action: str) -> bool:
    """Return True if the role may attempt the action."""
    if action not in CAPABILITIES:
        raise KeyError(f"Unknown capability '{action}'")
    if not isinstance(role, Role):
        if not Role.has_value(role):
            return False
        role = Role(role)
    return role in CAPABILITIES[action].roles


def require_capability(role: Role | str, action: str) -> None:
    """Raise ForbiddenError unless the role may attempt the action."""
    if not has_capability(role, action):
        role_str = role.value if isinstance(role, Role) else role
        raise ForbiddenError(
            f"Role '{role_str}' not authorized to {CAPABILITIES[action].label.lower()}"
        )


def capability_matrix() -> dict[str, list[str]]:
    """Action → sorted role values, for introspection and the /auth/me payload."""
    return {
        key: sorted(role.value for role in cap.roles)
        for key, cap in CAPABILITIES.items()
    }
