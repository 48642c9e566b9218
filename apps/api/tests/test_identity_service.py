import pytest

from erp.core.exceptions import InactiveAccountError, UnauthenticatedError
from erp.core.security import create_session_token
from erp.db.enums import Role
from erp.services import identity_service

ADMIN_PASSWORD = "correct-horse-battery"  # set by the admin fixture


def _token(user):
    return create_session_token(user.id, user.role, user.token_version)


def test_resolve_caller_reads_role_from_the_row(db, operator):
    # Token claims admin; the row says operator
    token = create_session_token(operator.id, "admin", operator.token_version)

    session = identity_service.resolve_caller(db, token)

    assert session.user_id == operator.id
    assert session.role == Role.OPERATOR


@pytest.mark.parametrize("token", [None, "", "not-a-jwt"])
def test_missing_or_garbage_token(db, token):
    with pytest.raises(UnauthenticatedError):
        identity_service.resolve_caller(db, token)


def test_revoked_token(db, operator):
    token = _token(operator)
    operator.token_version += 1
    db.commit()

    with pytest.raises(UnauthenticatedError):
        identity_service.resolve_caller(db, token)


def test_inactive_user_is_unauthenticated(db, make_user):
    user = make_user(Role.OPERATOR, is_active=False)

    with pytest.raises(InactiveAccountError) as exc_info:
        identity_service.resolve_caller(db, _token(user))

    # Same wire identity as any other authentication failure
    assert isinstance(exc_info.value, UnauthenticatedError)
    assert exc_info.value.kind == UnauthenticatedError.kind
    assert exc_info.value.message == UnauthenticatedError().message


def test_authenticate(db, admin):
    assert identity_service.authenticate(db, "ADMIN@test.com", ADMIN_PASSWORD).id == admin.id

    with pytest.raises(UnauthenticatedError):
        identity_service.authenticate(db, "admin@test.com", "wrong-password")
    with pytest.raises(UnauthenticatedError):
        identity_service.authenticate(db, "nobody@test.com", ADMIN_PASSWORD)


def test_passwordless_accounts_cannot_log_in(db, client_user):
    with pytest.raises(UnauthenticatedError):
        identity_service.authenticate(db, client_user.email, "")


def test_operators_of_skips_inactive_and_other_roles(db, supervisor, operator, make_user):
    make_user(Role.OPERATOR, supervisor=supervisor, is_active=False)
    make_user(Role.CLIENT, supervisor=supervisor)

    assert identity_service.operators_of(db, supervisor.id) == {operator.id}


def test_supervisor_chain_walks_upward(db, make_user):
    top = make_user(Role.ADMIN)
    middle = make_user(Role.SUPERVISOR, supervisor=top)
    leaf = make_user(Role.OPERATOR, supervisor=middle)

    assert identity_service.supervisor_chain(db, leaf.id) == [leaf.id, middle.id, top.id]


def test_supervisor_chain_stops_on_existing_cycle(db, make_user):
    a = make_user(Role.SUPERVISOR)
    b = make_user(Role.SUPERVISOR, supervisor=a)
    a.supervisor_id = b.id
    db.commit()

    assert identity_service.supervisor_chain(db, a.id) == [a.id, b.id]
