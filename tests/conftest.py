"""Pytest configuration and fixtures."""

import pytest
from fastapi.testclient import TestClient

from src.core.books.store import reset_book_store
from src.core.users import reset_user_store
from src.main import app


@pytest.fixture(autouse=True)
def fresh_stores():
    """Give every test empty in-memory stores."""
    reset_book_store()
    reset_user_store()
    yield
    reset_book_store()
    reset_user_store()


@pytest.fixture
def client():
    """Create a test client for the FastAPI app."""
    with TestClient(app) as test_client:
        yield test_client


def signup(client: TestClient, username: str, password: str = "secret-pw") -> dict:
    """Sign a user up and return the Authorization header for them."""
    response = client.post("/auth/signup", json={"username": username, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest.fixture
def alice(client):
    """Auth headers for user alice."""
    return signup(client, "alice")


@pytest.fixture
def bob(client):
    """Auth headers for user bob."""
    return signup(client, "bob")


@pytest.fixture
def dune():
    """Sample book payload."""
    return {
        "title": "Dune",
        "author": "Herbert",
        "genre": "SciFi",
        "yearOfPublishing": 1965,
        "isbn": "111",
    }
