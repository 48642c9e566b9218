"""Visibility scoping: listing predicates and single-row checks agree."""

import pytest

from erp.core.exceptions import ForbiddenError
from erp.db.enums import Role
from erp.db.models import Claim, Lead
from erp.services import scoping_service, user_service


@pytest.fixture
def org(make_user, make_claim):
    """Two supervisor teams, an admin, two clients and a claim in every bucket."""
    admin = make_user(Role.ADMIN)
    sup_a = make_user(Role.SUPERVISOR)
    sup_b = make_user(Role.SUPERVISOR)
    op_a1 = make_user(Role.OPERATOR, supervisor=sup_a)
    op_a2 = make_user(Role.OPERATOR, supervisor=sup_a)
    op_b = make_user(Role.OPERATOR, supervisor=sup_b)
    client_1 = make_user(Role.CLIENT)
    client_2 = make_user(Role.CLIENT)

    claims = {
        "unassigned": make_claim(client_1),
        "op_a1": make_claim(client_1, assigned_to=op_a1),
        "op_a2": make_claim(client_2, assigned_to=op_a2),
        "op_b": make_claim(client_2, assigned_to=op_b),
        "sup_a": make_claim(client_1, assigned_to=sup_a),
        "admin": make_claim(client_2, assigned_to=admin),
    }
    return {
        "admin": admin,
        "sup_a": sup_a,
        "sup_b": sup_b,
        "op_a1": op_a1,
        "op_a2": op_a2,
        "op_b": op_b,
        "client_1": client_1,
        "client_2": client_2,
        "claims": claims,
    }


def _visible_claim_ids(db, caller):
    rows = db.query(Claim).filter(scoping_service.claim_scope(db, caller)).all()
    return {c.id for c in rows}


def _ids(org, *keys):
    return {org["claims"][k].id for k in keys}


def test_admin_sees_everything(db, org, caller_for):
    assert _visible_claim_ids(db, caller_for(org["admin"])) == _ids(org, *org["claims"])


def test_supervisor_sees_team_and_unassigned(db, org, caller_for):
    visible = _visible_claim_ids(db, caller_for(org["sup_a"]))
    assert visible == _ids(org, "unassigned", "op_a1", "op_a2")


def test_supervisor_does_not_see_work_assigned_to_themselves(db, org, caller_for):
    visible = _visible_claim_ids(db, caller_for(org["sup_a"]))
    assert org["claims"]["sup_a"].id not in visible
    assert org["claims"]["sup_a"].id in _visible_claim_ids(db, caller_for(org["admin"]))


def test_supervisor_does_not_see_other_teams(db, org, caller_for):
    visible = _visible_claim_ids(db, caller_for(org["sup_b"]))
    assert visible == _ids(org, "unassigned", "op_b")


def test_supervisor_without_operators_still_sees_unassigned(db, org, make_user, caller_for):
    lonely = make_user(Role.SUPERVISOR)
    assert _visible_claim_ids(db, caller_for(lonely)) == _ids(org, "unassigned")


def test_operator_sees_only_own_assignments(db, org, caller_for):
    assert _visible_claim_ids(db, caller_for(org["op_a1"])) == _ids(org, "op_a1")
    assert _visible_claim_ids(db, caller_for(org["op_b"])) == _ids(org, "op_b")


def test_operator_never_sees_unassigned(db, org, make_user, caller_for):
    idle = make_user(Role.OPERATOR, supervisor=org["sup_a"])
    assert _visible_claim_ids(db, caller_for(idle)) == set()


def test_client_sees_own_claims_regardless_of_assignment(db, org, caller_for):
    assert _visible_claim_ids(db, caller_for(org["client_1"])) == _ids(
        org, "unassigned", "op_a1", "sup_a"
    )


def test_operator_scopes_are_disjoint(db, org, caller_for):
    a1 = _visible_claim_ids(db, caller_for(org["op_a1"]))
    a2 = _visible_claim_ids(db, caller_for(org["op_a2"]))
    b = _visible_claim_ids(db, caller_for(org["op_b"]))
    assert not (a1 & a2) and not (a1 & b) and not (a2 & b)


def test_single_row_check_matches_listing(db, org, caller_for):
    callers = [org[k] for k in ("admin", "sup_a", "sup_b", "op_a1", "op_b", "client_1")]
    for user in callers:
        caller = caller_for(user)
        listed = _visible_claim_ids(db, caller)
        for claim in org["claims"].values():
            assert scoping_service.is_claim_in_scope(db, claim, caller) == (claim.id in listed)


def test_deactivated_operator_work_returns_to_every_supervisor(db, org, caller_for):
    claim_id = org["claims"]["op_a2"].id
    user_service.update_user(db, org["op_a2"].id, caller_for(org["admin"]), is_active=False)

    assert claim_id in _visible_claim_ids(db, caller_for(org["sup_a"]))
    assert claim_id in _visible_claim_ids(db, caller_for(org["sup_b"]))
    assert claim_id not in _visible_claim_ids(db, caller_for(org["op_a2"]))


def test_lead_scope_follows_assignment(db, org, make_lead, caller_for):
    unassigned = make_lead()
    mine = make_lead(assigned_to=org["op_a1"])
    theirs = make_lead(assigned_to=org["op_b"])

    def visible(user):
        caller = caller_for(user)
        return {lead.id for lead in db.query(Lead).filter(scoping_service.lead_scope(db, caller))}

    assert visible(org["admin"]) == {unassigned.id, mine.id, theirs.id}
    assert visible(org["sup_a"]) == {unassigned.id, mine.id}
    assert visible(org["op_a1"]) == {mine.id}


def test_clients_have_no_lead_scope(db, org, caller_for):
    with pytest.raises(ForbiddenError):
        scoping_service.lead_scope(db, caller_for(org["client_1"]))
