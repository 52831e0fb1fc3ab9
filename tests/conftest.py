import pytest
from fastapi.testclient import TestClient

from blogapi.config import Settings
from blogapi.main import create_app


@pytest.fixture
def settings():
    return Settings(
        ENVIRONMENT="test",
        SECRET_KEY="test-secret",
        DATABASE_URL="sqlite://",
        BCRYPT_ROUNDS=4,
        LOG_LEVEL="WARNING",
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client


@pytest.fixture
def register(client):
    def _register(username="alice", email=None, password="secret1"):
        return client.post(
            "/api/users",
            json={"username": username, "email": email or f"{username}@x.com", "password": password},
        )

    return _register


@pytest.fixture
def login(client, register):
    def _login(username="alice", password="secret1"):
        register(username=username, password=password)
        response = client.post("/api/users/login", json={"username": username, "password": password})
        return {"Authorization": f"Bearer {response.json()['token']}"}

    return _login
