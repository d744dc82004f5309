"""Shared fixtures: a fresh app, store and admin token per test."""

import pytest
from fastapi.testclient import TestClient

from catalog import CatalogStore
from config import Settings
from main import create_app

GITHUB_REPOS_URL = "https://api.github.com/users/octo/repos"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        admin_username="admin",
        admin_password="password",
        jwt_secret="test-secret",
        github_username="octo",
        github_import_on_startup=False,
    )


@pytest.fixture
def store() -> CatalogStore:
    return CatalogStore()


@pytest.fixture
def app(settings, store):
    return create_app(settings=settings, store=store)


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def token(client) -> str:
    resp = client.post("/api/auth/login", json={"username": "admin", "password": "password"})
    assert resp.status_code == 200
    return resp.json()["token"]


@pytest.fixture
def auth_headers(token) -> dict:
    return {"Authorization": f"Bearer {token}"}


def repo(name: str, language=None, description=None) -> dict:
    return {
        "name": name,
        "description": description,
        "language": language,
        "html_url": f"https://github.com/octo/{name}",
    }
