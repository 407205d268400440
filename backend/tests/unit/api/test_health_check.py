"""Unit tests for the health check endpoints."""

from fastapi.testclient import TestClient

from clubhost.main import app


def test_health_check():
    """Test the health check endpoint returns status as healthy."""
    client = TestClient(app)

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}
    assert response.headers["X-Request-ID"]


async def test_readiness_check(api_client):
    """The readiness check runs a query against the database."""
    response = await api_client.get("/health/ready")

    assert response.status_code == 200
    assert response.json() == {"status": "ready"}
