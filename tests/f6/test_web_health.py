"""Tests for health endpoint (F6)."""

import pytest
from fastapi.testclient import TestClient

from tutorial.web.api import create_app


@pytest.fixture
def client(sample_book):
    """Create test client."""
    app = create_app(book_dir=sample_book)
    return TestClient(app)


class TestHealthEndpoint:
    """Tests for GET /health."""

    def test_health_returns_ok(self, client):
        """Health endpoint returns status ok."""
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_health_returns_version(self, client):
        """Health endpoint returns version."""
        data = client.get("/health").json()
        assert data["version"] == "0.1.0"

    def test_health_returns_timestamp(self, client):
        """Health endpoint returns timestamp."""
        data = client.get("/health").json()
        # ISO format check
        assert "T" in data["timestamp"]
