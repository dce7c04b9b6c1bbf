"""Tests for health check endpoints."""

import pytest

from src.core.books.store import InMemoryBookStore, get_book_store
from src.main import app


class UnreachableStore(InMemoryBookStore):
    async def ping(self) -> bool:
        return False


@pytest.fixture
def unreachable_store():
    app.dependency_overrides[get_book_store] = UnreachableStore
    yield
    app.dependency_overrides.pop(get_book_store, None)


def test_health_check(client):
    """Test basic health endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_liveness_check(client):
    """Test liveness endpoint."""
    response = client.get("/health/live")
    assert response.status_code == 200
    assert response.json()["status"] == "alive"


def test_readiness_check(client):
    """Test readiness endpoint."""
    response = client.get("/health/ready")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ready"
    assert data["store_backend"] == "memory"


def test_root_endpoint_needs_no_token(client):
    """Root health check is public."""
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert "message" in data
    assert "version" in data
    assert "docs" in data


def test_readiness_fails_when_store_is_unreachable(client, unreachable_store):
    """Readiness reports 503 when the book store does not answer a ping."""
    response = client.get("/health/ready")
    assert response.status_code == 503
    assert response.json() == {"status": "unavailable", "store_backend": "memory"}


def test_liveness_ignores_store(client, unreachable_store):
    assert client.get("/health/live").status_code == 200
