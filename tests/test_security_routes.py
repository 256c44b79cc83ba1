"""Tests for the health and link security endpoints."""

import pytest
from fastapi.testclient import TestClient

from linkshield.core.url_reputation import ThreatListChecker
from main import app


@pytest.fixture
def client(make_orchestrator):
    app.state.orchestrator = make_orchestrator(threat_checker=ThreatListChecker(providers=[]))
    yield TestClient(app)
    app.state.orchestrator = None


# ==========================================
#  HEALTH & STATUS
# ==========================================


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.headers["X-Content-Type-Options"] == "nosniff"


def test_status_reports_pipeline(client):
    response = client.get("/api/status")
    assert response.status_code == 200
    body = response.json()
    assert body["verifier_ready"]
    assert body["threat_providers"] == []
    assert body["cache"]["keys"] == 0


# ==========================================
#  VERIFY
# ==========================================


def test_verify_requires_url(client):
    response = client.get("/api/security/verify")
    assert response.status_code == 400
    assert response.json()["detail"] == "URL parameter is required"


def test_verify_rejects_non_http_url(client):
    response = client.get("/api/security/verify", params={"url": "javascript:alert(1)"})
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid URL format"


def test_verify_safe_url(client):
    response = client.get("/api/security/verify", params={"url": "https://example.com"})
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["verification"]["overall_risk"] == "safe"
    assert body["verification"]["url"] == "https://example.com"
    assert body["verification"]["checks"]["dns_check"]["a_records"] == ["93.184.216.34"]


def test_verify_critical_url_is_rejected(client):
    response = client.get("/api/security/verify", params={"url": "http://192.168.1.1/admin"})
    assert response.status_code == 403
    detail = response.json()["detail"]
    assert detail["message"] == "URL rejected: critical security risk"
    assert detail["risk_score"] >= 80
    assert "URL format is invalid" in detail["critical_issues"]


def test_verify_high_risk_url_is_rejected(client):
    response = client.get("/api/security/verify", params={"url": "http://paypa1-secure-login.tk/account/verify"})
    assert response.status_code == 403
    detail = response.json()["detail"]
    assert detail["message"] == "URL rejected: high security risk"
    assert detail["risk_level"] == "high"
    assert detail["risk_score"] == 64
    assert "Potential phishing detected (95% confidence)" in detail["critical_issues"]


def test_verify_without_pipeline_is_unavailable(client):
    app.state.orchestrator = None
    response = client.get("/api/security/verify", params={"url": "https://example.com"})
    assert response.status_code == 503


# ==========================================
#  CACHE
# ==========================================


def test_cache_stats_and_clear(client):
    client.get("/api/security/verify", params={"url": "https://example.com"})
    stats = client.get("/api/security/cache/stats").json()
    assert stats["keys"] == 1
    assert stats["ttl_seconds"] == 3600

    response = client.delete("/api/security/cache")
    assert response.status_code == 200
    assert response.json()["success"] is True
    assert client.get("/api/security/cache/stats").json()["keys"] == 0
