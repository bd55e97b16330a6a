"""Pytest configuration and fixtures"""
import os

# Settings are read at import time, so the test environment goes in first
os.environ["DATABASE_URL"] = "sqlite:///./test.db"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"

from typing import Callable, Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from membership.database import Base, get_db
from membership.main import app
from membership.models.admin_action_log import AdminActionLog
from membership.models.user import User
from membership.utils.auth import hash_password
from membership.utils.jwt_utils import create_access_token
from membership.utils.permissions import AccountStatus, Role

TEST_DATABASE_URL = "sqlite:///./test.db"
DEFAULT_PASSWORD = "password123"

engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Create a fresh database for each test"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db: Session) -> Generator[TestClient, None, None]:
    """Create test client with database session override"""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db: Session) -> Callable[..., User]:
    """Factory that inserts an account directly, bypassing the API"""
    counter = {"n": 0}

    def _make(
        role: str = Role.USER.value,
        status: str = AccountStatus.APPROVED.value,
        email: str = None,
        password: str = DEFAULT_PASSWORD,
        **fields,
    ) -> User:
        counter["n"] += 1
        user = User(
            email=email or f"user{counter['n']}@example.org",
            password_hash=hash_password(password),
            first_name=fields.pop("first_name", "Test"),
            last_name=fields.pop("last_name", f"User{counter['n']}"),
            status=status,
            **fields,
        )
        user.assign_role(role)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


def token_headers(user: User, **token_kwargs) -> dict:
    """Bearer headers carrying a freshly signed token for ``user``"""
    token_type = "admin" if user.is_admin else "user"
    token = create_access_token(user.id, token_type, {"email": user.email}, **token_kwargs)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def super_admin(make_user) -> User:
    return make_user(role=Role.SUPER_ADMIN.value, email="root@example.org")


@pytest.fixture
def member_admin(make_user) -> User:
    return make_user(role=Role.MEMBER_ADMIN.value, email="members@example.org")


@pytest.fixture
def content_admin(make_user) -> User:
    return make_user(role=Role.CONTENT_ADMIN.value, email="content@example.org")


@pytest.fixture
def pending_user(make_user) -> User:
    return make_user(status=AccountStatus.PENDING.value, email="pending@example.org")


@pytest.fixture
def member(make_user) -> User:
    return make_user(email="member@example.org")


@pytest.fixture
def audit_entries(db: Session) -> Callable[..., list]:
    """Query helper for the admin action log"""

    def _entries(action: str = None) -> list:
        query = db.query(AdminActionLog)
        if action:
            query = query.filter(AdminActionLog.action == action)
        return query.order_by(AdminActionLog.id).all()

    return _entries
