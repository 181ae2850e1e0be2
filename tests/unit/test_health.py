"""Health and app wiring tests."""


def test_health_endpoint(client):
    """Test health check returns healthy status."""
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert "version" in data


def test_root_endpoint(client):
    """Test root endpoint points at the report API."""
    data = client.get("/").json()
    assert data["name"] == "Support Chat Analytics"
    assert data["reports"] == "/api/reports"


def test_cors_allows_configured_origin(client):
    response = client.options(
        "/api/reports/daily",
        headers={"Origin": "http://localhost:3000", "Access-Control-Request-Method": "GET"},
    )
    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "http://localhost:3000"
