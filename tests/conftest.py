"""
Shared fixtures: a scripted stand-in for the psycopg connection and a
TestClient with the database and login dependencies overridden.
"""
import uuid
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient


class FakeCursor:
    def __init__(self, conn):
        self.conn = conn
        self.rowcount = 1

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    async def execute(self, sql, params=None):
        self.conn.executed.append((" ".join(sql.split()), params))

    async def fetchone(self):
        return self.conn.results.pop(0) if self.conn.results else None

    async def fetchall(self):
        return self.conn.results.pop(0) if self.conn.results else []


class _Transaction:
    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


class FakeConnection:
    """
    Every fetchone()/fetchall() pops the next queued result, in order.
    Executed statements are recorded with whitespace collapsed.
    """

    def __init__(self, results=None):
        self.results = list(results or [])
        self.executed = []
        self.commits = 0

    def cursor(self):
        return FakeCursor(self)

    def transaction(self):
        return _Transaction()

    async def commit(self):
        self.commits += 1

    def statements(self):
        return [sql for sql, _ in self.executed]

    def find(self, fragment):
        """(sql, params) of the first statement containing fragment."""
        for sql, params in self.executed:
            if fragment in sql:
                return sql, params
        raise AssertionError(f"no statement containing {fragment!r}")


def make_user(role="worker", **overrides):
    user = {
        "id": uuid.uuid4(),
        "full_name": "Test User",
        "phone_number": "+919876543210",
        "email": "test@example.com",
        "role": role,
        "profile_completed": True,
        "trust_score": 50,
        "trust_level": "basic",
        "is_verified": False,
        "created_at": datetime(2026, 1, 1, tzinfo=timezone.utc),
    }
    user.update(overrides)
    return user


@pytest.fixture
def conn():
    return FakeConnection()


@pytest.fixture
def worker():
    return make_user("worker")


@pytest.fixture
def admin():
    return make_user("admin", full_name="Admin")


@pytest.fixture
def app():
    from main import app as fastapi_app

    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def client_for(app, conn):
    """client_for(user) -> TestClient logged in as user, talking to the fake connection."""
    from db import getDB
    from routes.auth import get_current_user

    async def _fake_db():
        yield conn

    def _make(user):
        app.dependency_overrides[getDB] = _fake_db
        app.dependency_overrides[get_current_user] = lambda: user
        return TestClient(app)

    return _make
