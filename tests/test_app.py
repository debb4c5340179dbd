"""Tests for the application shell: request guards, error handlers, health checks,
request timing, rate-limit keys and log formatting."""

import json
import logging

from flask import g

from app.middleware.logging_config import JSONFormatter, ReadableFormatter, record_extras
from app.middleware.rate_limiter import tenant_rate_limit_key


# ── Request guards ──────────────────────────────────────────────────────


class TestRequestGuards:
    """Content-Type and size checks on mutating /api/ requests."""

    def test_non_json_body_rejected(self, client):
        res = client.post("/api/v1/tenants", data="name=Acme", content_type="text/plain")
        assert res.status_code == 415
        assert res.get_json()["code"] == "ERR_UNSUPPORTED_MEDIA"

    def test_oversized_body_rejected(self, client):
        payload = {"name": "Acme", "description": "x" * (2 * 1024 * 1024)}
        res = client.post("/api/v1/tenants", json=payload)
        assert res.status_code == 413
        assert res.get_json()["code"] == "ERR_TOO_LARGE"

    def test_bodyless_post_allowed(self, client, scan_url):
        """AI triggers without a body are not Content-Type checked."""
        res = client.post(f"{scan_url}/company-research")
        assert res.status_code == 200


# ── Error handlers ──────────────────────────────────────────────────────


class TestErrorHandlers:

    def test_unknown_path(self, client):
        res = client.get("/api/v1/nothing-here")
        body = res.get_json()
        assert res.status_code == 404
        assert body["code"] == "ERR_NOT_FOUND"
        assert body["details"] == {"path": "/api/v1/nothing-here"}

    def test_method_not_allowed(self, client):
        res = client.delete("/api/v1/tenants")
        assert res.status_code == 405
        assert res.get_json()["code"] == "ERR_VALIDATION_INVALID"


# ── Health Endpoints ────────────────────────────────────────────────────


class TestHealthEndpoints:
    """Health check endpoint tests."""

    def test_health_ready(self, client):
        res = client.get("/api/v1/health/ready")
        assert res.status_code == 200
        assert res.get_json() == {"status": "ok"}

    def test_health_live(self, client):
        res = client.get("/api/v1/health/live")
        assert res.status_code == 200
        data = res.get_json()
        assert data["status"] == "healthy"
        assert data["checks"]["database"]["status"] == "ok"
        assert "latency_ms" in data["checks"]["database"]
        assert data["checks"]["llm"]["providers"] == ["local"]
        assert data["checks"]["app"]["testing"] is True

    def test_health_live_reports_installed_gateway(self, client, fake_gateway):
        data = client.get("/api/v1/health/live").get_json()
        assert data["checks"]["llm"]["providers"] == ["fake"]


# ── Request Timing ──────────────────────────────────────────────────────


class TestRequestTiming:
    """Request timing middleware tests."""

    def test_duration_header_present(self, client):
        res = client.get("/api/v1/health/ready")
        assert "X-Request-Duration-Ms" in res.headers
        assert float(res.headers["X-Request-Duration-Ms"]) >= 0

    def test_request_id_generated(self, client):
        res = client.get("/api/v1/tenants")
        assert len(res.headers["X-Request-ID"]) == 12

    def test_request_id_echoed(self, client):
        res = client.get("/api/v1/tenants", headers={"X-Request-ID": "trace-123"})
        assert res.headers["X-Request-ID"] == "trace-123"


# ── Tenant context & rate-limit key ─────────────────────────────────────


class TestTenantRateLimitKey:

    def test_falls_back_to_remote_addr(self, app):
        with app.test_request_context("/api/v1/tenants", environ_base={"REMOTE_ADDR": "10.0.0.7"}):
            g.tenant_id = None
            assert tenant_rate_limit_key() == "10.0.0.7"

    def test_uses_resolved_tenant(self, app, tenant):
        with app.test_request_context(f"/api/v1/tenants/{tenant['slug']}/workspaces"):
            app.preprocess_request()
            assert g.tenant_id == tenant["id"]
            assert tenant_rate_limit_key() == f"tenant:{tenant['id']}"

    def test_unknown_slug_leaves_context_empty(self, app):
        with app.test_request_context("/api/v1/tenants/ghost/workspaces"):
            app.preprocess_request()
            assert g.tenant is None


# ── Log formatting ──────────────────────────────────────────────────────


def _record(**extra):
    record = logging.LogRecord(
        "app.services.scan_service", logging.INFO, __file__, 10, "Scan created: %s", ("Acme",), None,
    )
    record.__dict__.update(extra)
    return record


class TestLogFormatting:

    def test_extras_only(self):
        extras = record_extras(_record(scan_id="s-1", lifecycle_id=None))
        assert extras == {"scan_id": "s-1"}

    def test_json_includes_extras(self):
        line = JSONFormatter().format(_record(scan_id="s-1", tenant_id="t-1"))
        entry = json.loads(line)
        assert entry["message"] == "Scan created: Acme"
        assert entry["level"] == "INFO"
        assert entry["scan_id"] == "s-1"
        assert entry["tenant_id"] == "t-1"

    def test_readable_shows_scope(self):
        line = ReadableFormatter().format(_record(scan_id="s-1", duration_ms=12.4))
        assert "Scan created: Acme" in line
        assert "[12ms]" in line
        assert "(scan_id=s-1)" in line
