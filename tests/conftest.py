"""
Shared fixtures for the blog API tests.

Configuration is read from the environment at import time, so the test
database, upload directory and token secret are set before any app module
is imported.
"""
import os
import tempfile
import time

TEST_DIR = tempfile.mkdtemp(prefix="blog-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(TEST_DIR, 'blog.db')}"
os.environ["UPLOAD_DIR"] = os.path.join(TEST_DIR, "uploads")
os.environ["AUTH_JWT_SECRET"] = "test-secret"
os.environ["ENVIRONMENT"] = "test"
os.environ.pop("AUTH_SECRET_KEY", None)

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from apps.shared.database import Base, SessionLocal, engine
from apps.blog.main import app
from apps.blog.models import User


def make_token(sub: str, name: str = "Test User", email: str = None, expires_in: int = 3600) -> str:
    claims = {
        "sub": sub,
        "name": name,
        "email": email or f"{sub}@example.com",
        "exp": int(time.time()) + expires_in,
    }
    return jwt.encode(claims, "test-secret", algorithm="HS256")


def auth_headers(sub: str = "user_author", **kwargs) -> dict:
    return {"Authorization": f"Bearer {make_token(sub, **kwargs)}"}


@pytest.fixture(autouse=True)
def fresh_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def author_headers():
    return auth_headers("user_author", name="Ada Author")


@pytest.fixture
def other_headers():
    return auth_headers("user_other", name="Olly Other")


@pytest.fixture
def admin_headers(client, db):
    headers = auth_headers("user_admin", name="Alex Admin")
    client.get("/api/auth/me", headers=headers)
    db.query(User).filter(User.provider_id == "user_admin").update({"role": "admin"})
    db.commit()
    return headers


@pytest.fixture
def category(client, author_headers):
    response = client.post(
        "/api/categories",
        json={"name": "Technology", "description": "Tech posts", "color": "#336699"},
        headers=author_headers,
    )
    assert response.status_code == 201
    return response.json()["data"]


@pytest.fixture
def make_post(client, author_headers, category):
    def _make_post(title="Hello World Post", headers=None, **fields):
        body = {
            "title": title,
            "content": "Some sufficiently long content.",
            "category": category["_id"],
            **fields,
        }
        response = client.post("/api/posts", json=body, headers=headers or author_headers)
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return _make_post
