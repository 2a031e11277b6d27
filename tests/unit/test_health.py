"""Unit tests for health endpoints."""

from fastapi.testclient import TestClient


def test_health_check(client: TestClient) -> None:
    """Test basic health check returns healthy status."""
    response = client.get("/api/v1/health")
    assert response.status_code == 200

    data = response.json()
    assert data["status"] == "healthy"
    assert data["environment"] == "test"
    assert "version" in data
    assert "timestamp" in data


def test_liveness_check(client: TestClient) -> None:
    """Test liveness check returns alive status."""
    response = client.get("/api/v1/health/live")
    assert response.status_code == 200

    data = response.json()
    assert data["status"] == "alive"


def test_readiness_check(client: TestClient) -> None:
    """Postgres answers, Redis is unreachable: not ready."""
    response = client.get("/api/v1/health/ready")
    assert response.status_code == 200

    data = response.json()
    assert data["checks"] == {"postgres": True, "redis": False}
    assert data["ready"] is False


def test_readiness_check_storage_down(client: TestClient, repository) -> None:
    repository.failing.add("ping")

    response = client.get("/api/v1/health/ready")
    assert response.status_code == 200
    assert response.json()["checks"]["postgres"] is False
