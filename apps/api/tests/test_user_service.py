import pytest

from erp.core.exceptions import ConflictError, ForbiddenError, UnauthenticatedError, ValidationError
from erp.core.security import create_session_token, verify_password
from erp.db.enums import Role
from erp.db.models import Claim, Lead, User
from erp.services import identity_service, user_service


def test_admin_creates_staff_with_hashed_password(db, admin, supervisor, caller_for):
    user = user_service.create_user(
        db,
        caller_for(admin),
        email="New.Op@Test.com",
        password="s3cret-pass",
        role=Role.OPERATOR,
        supervisor_id=supervisor.id,
    )

    assert user.email == "new.op@test.com"
    assert user.supervisor_id == supervisor.id
    assert user.password_hash != "s3cret-pass"
    assert verify_password("s3cret-pass", user.password_hash)


def test_duplicate_email_conflicts(db, admin, operator, caller_for):
    with pytest.raises(ConflictError):
        user_service.create_user(
            db, caller_for(admin), email=operator.email.upper(), password="s3cret-pass", role="operator"
        )


def test_only_admin_manages_users(db, supervisor, caller_for):
    with pytest.raises(ForbiddenError):
        user_service.create_user(
            db, caller_for(supervisor), email="x@test.com", password="s3cret-pass", role="operator"
        )


def test_staff_need_a_password_clients_do_not(db, admin, caller_for):
    with pytest.raises(ValidationError):
        user_service.create_user(db, caller_for(admin), email="op@test.com", password=None, role="operator")

    client = user_service.create_user(db, caller_for(admin), email="c@test.com", password=None, role="client")
    assert client.password_hash is None


def test_short_password_rejected(db, admin, caller_for):
    with pytest.raises(ValidationError):
        user_service.create_user(db, caller_for(admin), email="op@test.com", password="short", role="operator")


def test_password_longer_than_bcrypt_limit_rejected(db, admin, operator, caller_for):
    with pytest.raises(ValidationError):
        user_service.create_user(db, caller_for(admin), email="op@test.com", password="a" * 80, role="operator")

    with pytest.raises(ValidationError):
        user_service.update_user(db, operator.id, caller_for(admin), password="\u00e9" * 40)


def test_supervisor_must_be_supervisor_or_admin(db, admin, operator, caller_for):
    with pytest.raises(ValidationError):
        user_service.create_user(
            db,
            caller_for(admin),
            email="op2@test.com",
            password="s3cret-pass",
            role="operator",
            supervisor_id=operator.id,
        )


def test_supervisor_cycle_is_rejected(db, admin, make_user, caller_for):
    top = make_user(Role.SUPERVISOR)
    middle = make_user(Role.SUPERVISOR, supervisor=top)

    with pytest.raises(ValidationError, match="cycle"):
        user_service.update_user(db, top.id, caller_for(admin), supervisor_id=middle.id)

    with pytest.raises(ValidationError, match="cycle"):
        user_service.update_user(db, top.id, caller_for(admin), supervisor_id=top.id)


def test_supervisors_list_only_their_operators(db, admin, supervisor, operator, make_user, caller_for):
    make_user(Role.OPERATOR, supervisor=make_user(Role.SUPERVISOR))
    make_user(Role.CLIENT, supervisor=supervisor)

    listed = user_service.list_users(db, caller_for(supervisor))
    assert [u.id for u in listed] == [operator.id]

    assert len(user_service.list_users(db, caller_for(admin))) == 6


def test_operators_cannot_list_users(db, operator, caller_for):
    with pytest.raises(ForbiddenError):
        user_service.list_users(db, caller_for(operator))


def test_deactivation_revokes_sessions(db, admin, operator, caller_for):
    token = create_session_token(operator.id, operator.role, operator.token_version)

    user_service.update_user(db, operator.id, caller_for(admin), is_active=False)

    with pytest.raises(UnauthenticatedError):
        identity_service.resolve_caller(db, token)

    user_service.update_user(db, operator.id, caller_for(admin), is_active=True)
    with pytest.raises(UnauthenticatedError):
        identity_service.resolve_caller(db, token)


def test_last_admin_cannot_be_demoted_or_deactivated(db, admin, caller_for):
    with pytest.raises(ConflictError):
        user_service.update_user(db, admin.id, caller_for(admin), role=Role.SUPERVISOR)
    with pytest.raises(ConflictError):
        user_service.update_user(db, admin.id, caller_for(admin), is_active=False)

    db.refresh(admin)
    assert admin.role == Role.ADMIN.value
    assert admin.is_active


def test_second_admin_can_be_demoted(db, admin, make_user, caller_for):
    other = make_user(Role.ADMIN)

    updated = user_service.update_user(db, other.id, caller_for(admin), role="supervisor")

    assert updated.role == Role.SUPERVISOR.value


def test_self_delete_rejected(db, admin, caller_for):
    with pytest.raises(ConflictError):
        user_service.delete_user(db, admin.id, caller_for(admin))


def test_last_active_admin_cannot_be_deleted(db, admin, make_user, caller_for):
    # Caller identity of a disabled admin, as a direct service call
    retired = make_user(Role.ADMIN, is_active=False)

    with pytest.raises(ConflictError, match="last active admin"):
        user_service.delete_user(db, admin.id, caller_for(retired))


def test_delete_clears_assignments(db, admin, operator, client_user, make_claim, caller_for):
    claim_id = make_claim(client_user, assigned_to=operator).id
    operator_id = operator.id

    user_service.delete_user(db, operator_id, caller_for(admin))

    assert db.get(User, operator_id) is None
    assert db.get(Claim, claim_id).assigned_to is None


def test_unknown_update_field_rejected(db, admin, operator, caller_for):
    with pytest.raises(ValidationError):
        user_service.update_user(db, operator.id, caller_for(admin), email="new@test.com")


def test_deactivation_returns_work_to_unassigned_pool(
    db, admin, supervisor, operator, client_user, make_claim, make_lead, caller_for
):
    claim_id = make_claim(client_user, assigned_to=operator).id
    lead_id = make_lead(assigned_to=operator).id

    user_service.update_user(db, operator.id, caller_for(admin), is_active=False)

    assert db.get(Claim, claim_id).assigned_to is None
    assert db.get(Lead, lead_id).assigned_to is None


def test_demotion_to_client_releases_assignments(db, admin, operator, client_user, make_claim, caller_for):
    claim_id = make_claim(client_user, assigned_to=operator).id

    user_service.update_user(db, operator.id, caller_for(admin), role="client")

    assert db.get(Claim, claim_id).assigned_to is None


def test_staff_role_change_keeps_assignments(db, admin, operator, client_user, make_claim, caller_for):
    claim_id = make_claim(client_user, assigned_to=operator).id

    user_service.update_user(db, operator.id, caller_for(admin), role="supervisor", supervisor_id=None)

    assert db.get(Claim, claim_id).assigned_to == operator.id
