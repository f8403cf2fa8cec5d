import os
import tempfile
from pathlib import Path

# configure the app before it is imported anywhere
_DB_DIR = Path(tempfile.mkdtemp(prefix="campus-tests-"))
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_DIR / 'test.db'}"
os.environ["ENV"] = "test"
os.environ["JWT_SECRET"] = "test-secret-key-that-is-long-enough-for-hs256"
os.environ["THROTTLE_LIMIT"] = "100000"
os.environ["AUTH_RATE_LIMIT_PER_MIN"] = "100000"

import pytest
from fastapi.testclient import TestClient
from sqlmodel import SQLModel, Session

from campus import models
from campus.database import engine
from campus.main import app
from campus.routes import auth as auth_routes
from campus.services import PWD_CTX

PASSWORD = "Passw0rd!"


@pytest.fixture(autouse=True)
def reset_db():
    """Give every test an empty schema and fresh limiter state."""
    SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)
    auth_routes._auth_rate_limiter.reset()
    yield


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def session():
    with Session(engine) as s:
        yield s


@pytest.fixture
def make_user(session):
    counter = {"n": 0}

    def _make(role=models.Role.STUDENT, email=None, password=PASSWORD, **fields):
        counter["n"] += 1
        n = counter["n"]
        user = models.User(
            email=email or f"{role.value}{n}@example.com",
            username=fields.pop("username", f"{role.value}_{n}"),
            password_hash=PWD_CTX.hash(password),
            role=role,
            first_name=fields.pop("first_name", role.value.title()),
            last_name=fields.pop("last_name", str(n)),
            **fields,
        )
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    return _make


@pytest.fixture
def login(client):
    def _login(email, password=PASSWORD):
        r = client.post("/api/auth/login", json={"email": email, "password": password})
        assert r.status_code == 200, r.text
        return {"Authorization": f"Bearer {r.json()['data']['access_token']}"}

    return _login


@pytest.fixture
def admin(make_user):
    return make_user(models.Role.ADMIN, email="admin@example.com")


@pytest.fixture
def admin_headers(admin, login):
    return login(admin.email)


@pytest.fixture
def teacher(make_user):
    return make_user(models.Role.TEACHER, email="teacher@example.com")


@pytest.fixture
def teacher_headers(teacher, login):
    return login(teacher.email)
