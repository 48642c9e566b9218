"""
Test configuration and fixtures.

Provides:
- In-memory SQLite database, schema created fresh for each test
- User factories for every role and caller sessions for service calls
- Event recorder replacing the notifier
- HTTPX AsyncClient with session cookie and CSRF header
"""
import os
import uuid
from typing import AsyncGenerator, Callable, Generator

# Must be set before erp modules read settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["TESTING"] = "1"
os.environ["JWT_SECRET"] = "test-secret-for-session-tokens-0123456789"
os.environ["REDIS_URL"] = ""

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.orm import Session

from erp.main import app
from erp.core.deps import COOKIE_NAME, get_db
from erp.core.security import create_session_token, hash_password
from erp.db.base import Base
from erp.db.enums import ClaimStatus, Role
from erp.db.models import Claim, Lead, User
from erp.db.session import engine, SessionLocal
from erp.schemas.auth import UserSession
from erp.services import event_service, identity_service

CSRF_HEADERS = {"X-Requested-With": "XMLHttpRequest"}
TEST_PASSWORD = "correct-horse-battery"


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    Fresh schema per test.

    The in-memory database lives on a single shared connection, so the
    session handed to the app through get_db sees the same data.
    """
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    yield session
    session.close()
    Base.metadata.drop_all(bind=engine)


# =============================================================================
# Factories
# =============================================================================

@pytest.fixture
def make_user(db: Session) -> Callable[..., User]:
    def _make_user(
        role: Role,
        *,
        supervisor: User | None = None,
        is_active: bool = True,
        email: str | None = None,
        password: str | None = None,
        full_name: str | None = None,
    ) -> User:
        user = User(
            id=uuid.uuid4(),
            email=email or f"{role.value}-{uuid.uuid4().hex[:8]}@test.com",
            full_name=full_name or f"Test {role.value.title()}",
            role=role.value,
            supervisor_id=supervisor.id if supervisor else None,
            is_active=is_active,
            password_hash=hash_password(password) if password else None,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def make_claim(db: Session) -> Callable[..., Claim]:
    def _make_claim(
        client: User,
        *,
        assigned_to: User | None = None,
        status: ClaimStatus = ClaimStatus.SUBMITTED,
        title: str = "Broken delivery",
    ) -> Claim:
        claim = Claim(
            client_id=client.id,
            title=title,
            description="The parcel arrived damaged.",
            status=status.value,
            file_paths=[],
            assigned_to=assigned_to.id if assigned_to else None,
        )
        db.add(claim)
        db.commit()
        db.refresh(claim)
        return claim

    return _make_claim


@pytest.fixture
def make_lead(db: Session) -> Callable[..., Lead]:
    def _make_lead(
        *,
        assigned_to: User | None = None,
        name: str = "Prospect Co",
        email: str | None = None,
        phone: str | None = "+1 555 0100",
    ) -> Lead:
        lead = Lead(
            name=name,
            email=email,
            phone=phone,
            assigned_to=assigned_to.id if assigned_to else None,
        )
        db.add(lead)
        db.commit()
        db.refresh(lead)
        return lead

    return _make_lead


@pytest.fixture
def admin(make_user) -> User:
    return make_user(Role.ADMIN, password=TEST_PASSWORD, email="admin@test.com")


@pytest.fixture
def supervisor(make_user) -> User:
    return make_user(Role.SUPERVISOR)


@pytest.fixture
def operator(make_user, supervisor) -> User:
    """Operator reporting to the `supervisor` fixture."""
    return make_user(Role.OPERATOR, supervisor=supervisor)


@pytest.fixture
def client_user(make_user) -> User:
    return make_user(Role.CLIENT)


@pytest.fixture
def caller_for() -> Callable[[User], UserSession]:
    """Caller identity for direct service calls."""
    return identity_service.to_session


# =============================================================================
# Events
# =============================================================================

class EventRecorder:
    def __init__(self):
        self.events: list[tuple[str, dict]] = []

    def __call__(self, event, payload):
        name = event.value if hasattr(event, "value") else event
        self.events.append((name, dict(payload)))

    def names(self) -> list[str]:
        return [name for name, _ in self.events]


@pytest.fixture
def events(monkeypatch) -> EventRecorder:
    """Capture published events instead of broadcasting them."""
    recorder = EventRecorder()
    monkeypatch.setattr(event_service, "publish", recorder)
    return recorder


# =============================================================================
# Client Fixtures
# =============================================================================

def auth_headers(user: User) -> dict[str, str]:
    token = create_session_token(user.id, user.role, user.token_version)
    return {"Authorization": f"Bearer {token}", **CSRF_HEADERS}


@pytest.fixture
def headers_for() -> Callable[[User], dict[str, str]]:
    """Bearer token plus CSRF header for a user."""
    return auth_headers


@pytest.fixture(scope="function")
async def client(db: Session) -> AsyncGenerator[AsyncClient, None]:
    """
    Unauthenticated AsyncClient; pass headers_for(user) per request.
    """
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def authed_client(db: Session, admin: User) -> AsyncGenerator[AsyncClient, None]:
    """
    AsyncClient authenticated as the admin via session cookie and CSRF header.
    """
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    token = create_session_token(admin.id, admin.role, admin.token_version)
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        cookies={COOKIE_NAME: token},
        headers=CSRF_HEADERS,
    ) as c:
        yield c

    app.dependency_overrides.clear()
