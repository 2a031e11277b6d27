"""Unit tests for the request context middleware."""

from fastapi.testclient import TestClient


def test_request_id_passed_through(client: TestClient) -> None:
    response = client.get("/api/v1/health/live", headers={"X-Request-ID": "req-42"})
    assert response.headers["X-Request-ID"] == "req-42"


def test_request_id_generated(client: TestClient) -> None:
    response = client.get("/api/v1/health/live")

    request_id = response.headers["X-Request-ID"]
    assert len(request_id) == 32
    int(request_id, 16)


def test_response_time_header(client: TestClient) -> None:
    response = client.get("/api/v1/health")
    assert float(response.headers["X-Response-Time-Ms"]) >= 0
