"""Tests for the health endpoint."""


def test_health_returns_ok(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["app"] == "Heritage Admin Console"


def test_protected_route_requires_token(client):
    response = client.get("/api/users/")
    assert response.status_code == 401
    assert response.json()["detail"] == "Authentication required"


def test_invalid_token_rejected(client):
    response = client.get("/api/users/", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid token"
