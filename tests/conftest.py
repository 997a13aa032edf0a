import os

import pytest
from fastapi.testclient import TestClient

# Memory backend and a cheap bcrypt cost for the whole test session
os.environ.setdefault("PERSISTENCE_BACKEND", "memory")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

from processcraft.main import app  # noqa: E402
from processcraft.repositories import InMemoryRepository, get_repository  # noqa: E402


@pytest.fixture
def repo():
    return InMemoryRepository()


@pytest.fixture
def client(repo):
    app.dependency_overrides[get_repository] = lambda: repo
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def make_user(repo):
    """Create a user straight in the repository and return its id."""

    def _make(email="owner@example.com", name="Owner"):
        return repo.create_user(email, name, "not-a-real-hash")["id"]

    return _make


@pytest.fixture
def login(client):
    """Register through the API and return bearer headers for the new account."""

    def _login(email="alice@example.com", password="s3cret-pass", name="Alice"):
        res = client.post("/api/v1/auth/register", json={"name": name, "email": email, "password": password})
        assert res.status_code == 201, res.text
        res = client.post("/api/v1/auth/login", json={"email": email, "password": password})
        assert res.status_code == 200, res.text
        return {"Authorization": f"Bearer {res.json()['access_token']}"}

    return _login
