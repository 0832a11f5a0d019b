"""
tests/test_health.py -- Integration tests for GET /api/health.
"""

from __future__ import annotations

from api.main import __version__


def test_health_returns_200(api_client):
    resp = api_client.client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "healthy", "version": __version__}


def test_unknown_host_rejected(api_client):
    resp = api_client.client.get("/api/health", headers={"Host": "evil.example"})
    assert resp.status_code == 400
