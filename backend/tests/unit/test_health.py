from __future__ import annotations


def test_health_returns_status_and_services(client):
    response = client.get("/api/v1/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] in ("healthy", "degraded")
    assert "version" in data
    assert "services" in data
    assert "storage" in data["services"]


def test_health_is_healthy_after_startup(client):
    data = client.get("/api/v1/health").json()
    assert data["status"] == "healthy"
    assert data["services"]["storage"] == "ok"


def test_readiness_probe(client):
    response = client.get("/api/v1/health/ready")
    assert response.status_code == 200
    data = response.json()
    assert data["ready"] is True


def test_health_protected_requires_auth(client):
    response = client.get("/api/v1/health/protected")
    assert response.status_code == 401


def test_health_protected_with_user_header(client):
    response = client.get("/api/v1/health/protected", headers={"X-User-Id": "user-9", "X-User-Name": "Nine"})
    assert response.status_code == 200
    data = response.json()
    assert data["user"]["id"] == "user-9"
    assert data["user"]["name"] == "Nine"


def test_health_protected_with_auth(authenticated_client):
    response = authenticated_client.get("/api/v1/health/protected")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert "user" in data
