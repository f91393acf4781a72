"""Tests for health endpoints."""

import json
import logging
from unittest.mock import patch

from fastapi.testclient import TestClient

from casevault_api.main import LOG_FORMATS, app

client = TestClient(app)


def test_health_check():
    """Test health endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["service"] == "casevault-api"


def test_readiness_reports_failed_checks(storage):
    """Readiness is 503 until migrations are applied and storage is reachable."""
    storage.bucket_ready.return_value = False
    with patch("casevault_api.main._migrations_at_head", return_value=False):
        response = client.get("/ready")
    assert response.status_code == 503
    data = response.json()
    assert data["status"] == "not_ready"
    assert data["checks"]["database"] is True
    assert data["checks"]["migrations"] is False
    assert data["checks"]["object_storage"] is False


def test_readiness_when_dependencies_up(storage):
    storage.bucket_ready.return_value = True
    with patch("casevault_api.main._migrations_at_head", return_value=True):
        response = client.get("/ready")
    assert response.status_code == 200
    assert response.json()["status"] == "ready"


def test_root():
    """Test root endpoint."""
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert data["service"] == "CaseVault API"


def test_metrics_exposed():
    response = client.get("/metrics/")
    assert response.status_code == 200
    assert "casevault_ledger_appends_total" in response.text


def test_routes_registered_once():
    paths = [route.path for route in app.routes if hasattr(route, "path") and hasattr(route, "methods")]
    seen = set()
    for route in app.routes:
        if hasattr(route, "methods"):
            for method in route.methods:
                key = (method, route.path)
                assert key not in seen, key
                seen.add(key)
    assert "/v1/cases/{case_id}/audit-log/verify" in paths
    assert "/v1/cases/{case_id}/chain-of-custody" in paths


def test_json_log_format_renders_json():
    record = logging.LogRecord("casevault_api.test", logging.INFO, __file__, 1, "Case created", None, None)
    line = logging.Formatter(LOG_FORMATS["json"]).format(record)
    assert json.loads(line)["message"] == "Case created"
    assert "Case created" in logging.Formatter(LOG_FORMATS["text"]).format(record)
