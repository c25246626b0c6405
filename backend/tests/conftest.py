"""
Pytest configuration and fixtures for backend tests.
"""

import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Add backend directory to path for imports
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

# Set test environment variables before importing config
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["AUTO_CREATE_DB"] = "false"
os.environ["LOCKOUT_COMPACTION_ENABLED"] = "false"

from helpers.password_hashing import get_password_hash  # noqa: E402
from models.security_policy import SecurityPolicy  # noqa: E402
from repositories.database import Base, get_db  # noqa: E402
import repositories.db_models as db_models  # noqa: E402

# Test database engine (in-memory SQLite)
TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# bcrypt cost 4 keeps hashing fast in tests
TEST_BCRYPT_ROUNDS = 4


class FrozenClock:
    """Controllable UTC clock. Call it to read the time, advance() to move it."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> datetime:
        self.now = self.now + timedelta(**delta)
        return self.now


@pytest.fixture(scope="function")
def db_session():
    """Create a fresh in-memory database session for each test."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db(db_session):
    """Alias for db_session."""
    return db_session


@pytest.fixture
def clock() -> FrozenClock:
    """Clock frozen at a fixed instant."""
    return FrozenClock(datetime(2026, 3, 2, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def policy() -> SecurityPolicy:
    """Default thresholds with fast hashing."""
    return SecurityPolicy(bcrypt_rounds=TEST_BCRYPT_ROUNDS)


@pytest.fixture
def guard(db_session, policy, clock):
    """Account security guard on the test session, policy and clock."""
    from services.account_security_service import AccountSecurityGuard

    return AccountSecurityGuard(db_session, policy=policy, clock=clock)


@pytest.fixture
def make_user(db_session):
    """Factory creating users with a known password."""

    def _make_user(
        username: str = "alice",
        password: str = "OldPassw0rd!",
        email: str | None = None,
    ) -> db_models.User:
        user = db_models.User(
            username=username,
            email=email or f"{username}@parques.example",
            hashed_password=get_password_hash(password, rounds=TEST_BCRYPT_ROUNDS),
            is_active=True,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def test_user(make_user) -> db_models.User:
    """User 'alice' with password 'OldPassw0rd!'."""
    return make_user()


@pytest.fixture
def login_attempts(db_session):
    """Lookup of recorded login attempts for a username, oldest first."""

    def _login_attempts(username: str) -> list[db_models.LoginAttempt]:
        return (
            db_session.query(db_models.LoginAttempt)
            .filter(db_models.LoginAttempt.username == username)
            .order_by(db_models.LoginAttempt.id.asc())
            .all()
        )

    return _login_attempts


@pytest.fixture
def lockouts(db_session):
    """Lookup of every lockout row for a username, oldest first."""

    def _lockouts(username: str) -> list[db_models.AccountLockout]:
        return (
            db_session.query(db_models.AccountLockout)
            .filter(db_models.AccountLockout.username == username)
            .order_by(db_models.AccountLockout.id.asc())
            .all()
        )

    return _lockouts


@pytest.fixture
def activity_entries(db_session):
    """Lookup of user activity entries by action tag, oldest first."""

    def _activity_entries(
        action: str, user_id: int | None = None
    ) -> list[db_models.UserActivityLog]:
        query = db_session.query(db_models.UserActivityLog).filter(
            db_models.UserActivityLog.action == action
        )
        if user_id is not None:
            query = query.filter(db_models.UserActivityLog.user_id == user_id)
        return query.order_by(db_models.UserActivityLog.id.asc()).all()

    return _activity_entries


@pytest.fixture
def row_count(db_session):
    """Count all rows of a model."""

    def _row_count(model: type[Base]) -> int:
        return db_session.query(model).count()

    return _row_count


@pytest.fixture(scope="function")
def client(db_session, policy, clock):
    """Create a test client with overridden database and guard dependencies."""
    from main import create_app
    from routers.security_router import get_security_guard
    from services.account_security_service import AccountSecurityGuard

    app = create_app()

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    def override_get_security_guard():
        return AccountSecurityGuard(db_session, policy=policy, clock=clock)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_security_guard] = override_get_security_guard
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
