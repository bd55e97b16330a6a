"""Tests for health and root endpoints"""


def test_health(client):
    """Test the basic health check"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_readiness(client):
    """Test readiness reports the database check"""
    response = client.get("/health/ready")
    assert response.status_code == 200
    assert response.json()["checks"]["database"] is True


def test_liveness(client):
    """Test the liveness probe"""
    response = client.get("/health/live")
    assert response.status_code == 200
    assert response.json()["status"] == "alive"


def test_root(client):
    """Test the service banner"""
    data = client.get("/").json()
    assert data["service"] == "Alumni Membership"
    assert data["status"] == "operational"
