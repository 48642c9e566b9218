import pytest

from erp.core.deps import COOKIE_NAME
from erp.db.enums import Role

ADMIN_PASSWORD = "correct-horse-battery"  # set by the admin fixture


@pytest.mark.asyncio
async def test_login_sets_session_cookie(client, admin):
    res = await client.post(
        "/auth/login",
        json={"email": "Admin@Test.com", "password": ADMIN_PASSWORD},
    )

    assert res.status_code == 200
    assert COOKIE_NAME in res.cookies
    body = res.json()
    assert body["user_id"] == str(admin.id)
    assert body["role"] == "admin"
    assert "users.manage" in body["capabilities"]


@pytest.mark.asyncio
async def test_login_failure_does_not_reveal_account_state(client, admin, make_user):
    make_user(Role.OPERATOR, email="gone@test.com", password=ADMIN_PASSWORD, is_active=False)

    wrong = await client.post("/auth/login", json={"email": "admin@test.com", "password": "nope"})
    inactive = await client.post("/auth/login", json={"email": "gone@test.com", "password": ADMIN_PASSWORD})
    unknown = await client.post("/auth/login", json={"email": "who@test.com", "password": "nope"})

    for res in (wrong, inactive, unknown):
        assert res.status_code == 401
        assert res.json() == {"error": "unauthenticated", "detail": "Invalid email or password"}


@pytest.mark.asyncio
async def test_me_requires_authentication(client):
    res = await client.get("/auth/me")

    assert res.status_code == 401
    assert res.json()["error"] == "unauthenticated"


@pytest.mark.asyncio
async def test_me_with_cookie(authed_client, admin):
    res = await authed_client.get("/auth/me")

    assert res.status_code == 200
    assert res.json()["email"] == "admin@test.com"


@pytest.mark.asyncio
async def test_me_for_operator_shows_supervisor_and_capabilities(client, operator, supervisor, headers_for):
    res = await client.get("/auth/me", headers=headers_for(operator))

    body = res.json()
    assert body["supervisor_id"] == str(supervisor.id)
    assert "claims.assign" not in body["capabilities"]
    assert "claims.change_status" in body["capabilities"]


@pytest.mark.asyncio
async def test_logout_requires_csrf_header(client, admin, headers_for):
    headers = headers_for(admin)
    headers.pop("X-Requested-With")

    res = await client.post("/auth/logout", headers=headers)

    assert res.status_code == 403
    assert res.json()["error"] == "forbidden"


@pytest.mark.asyncio
async def test_logout(client, admin, headers_for):
    res = await client.post("/auth/logout", headers=headers_for(admin))

    assert res.status_code == 200
    assert res.json() == {"status": "logged_out"}


@pytest.mark.asyncio
async def test_requests_get_a_request_id(client):
    res = await client.get("/health", headers={"X-Request-ID": "abc123"})

    assert res.status_code == 200
    assert res.json()["status"] == "ok"
    assert res.headers["X-Request-ID"] == "abc123"
