import os
from datetime import datetime, timezone

# configuration is read once at import time, before any app module loads
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["REDIS_ENABLED"] = "false"
os.environ["JWT_SECRET_KEY"] = "test-secret"
os.environ["JWT_ALGORITHM"] = "HS256"
os.environ["SUPER_ADMIN_EMAIL"] = "root@company.com"
os.environ["SUPER_ADMIN_PASSWORD"] = "root-password"
os.environ["MAIL_SUPPRESS_SEND"] = "true"
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import text

import model.leave_model  # noqa: F401
from db.database import Base, SessionLocal, engine
from model.usermodels import User
from service.leave_service import LeaveService
from service.user_service import UserService
from utils.clock import Clock, get_clock


class FixedClock(Clock):
    def __init__(self, year=2026, month=3, day=1):
        self.set(year, month, day)

    def set(self, year, month=1, day=1):
        self.current = datetime(year, month, day, 9, 0, tzinfo=timezone.utc)

    def now(self):
        return self.current


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def users(db, clock):
    return UserService(db, clock)


@pytest.fixture
def leaves(db, users, clock):
    return LeaveService(db, users, clock)


@pytest.fixture
def make_user(users):
    def _make_user(email, role="STAFF", password="password123", **fields):
        user = users.create_user(
            full_name=email.split("@")[0].title(),
            email=email,
            password=password,
            role=role,
        )
        if fields:
            for name, value in fields.items():
                setattr(user, name, value)
            users.db.commit()
            users.db.refresh(user)
        return user
    return _make_user


@pytest.fixture
def client(db, clock):
    from main import app

    app.dependency_overrides[get_clock] = lambda: clock
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def login(client):
    def _login(email, password="password123"):
        response = client.post("/auth/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['access_token']}"}
    return _login


@pytest.fixture
def reload(db):
    def _reload(user: User) -> User:
        db.expire_all()
        return db.get(User, user.id)
    return _reload


@pytest.fixture
def competing_write():
    """Make ``session`` lose a race: before each of its next ``times`` UPDATE
    statements, ``sql`` is run and committed from a second session."""
    def _install(session, sql, times=1, **params):
        execute = session.execute
        remaining = [times]

        def execute_after_competing_write(statement, *args, **kwargs):
            if remaining[0] and getattr(statement, "is_dml", False):
                remaining[0] -= 1
                other = SessionLocal()
                try:
                    other.execute(text(sql), params)
                    other.commit()
                finally:
                    other.close()
            return execute(statement, *args, **kwargs)

        session.execute = execute_after_competing_write
        return session
    return _install
