"""
Shared pytest fixtures for the Process Scan Platform test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - tenant / workspace / scan / lifecycle: entities created through the API
    - scan_url / lifecycle_url: URL prefixes for scan-scoped endpoints
    - fake_gateway: scripted LLM gateway installed on the app
"""

import pytest

from app import create_app
from app.ai.gateway import LocalStubProvider
from app.models import db as _db


# ── Scripted gateway ─────────────────────────────────────────────────────


class FakeGateway:
    """Stands in for LLMGateway: queued chat replies, deterministic embeddings.

    ``queue()`` adds chat replies in call order; an Exception instance in
    the queue is raised instead of returned. With an empty queue chat
    returns ``default``.
    """

    def __init__(self):
        self.replies = []
        self.calls = []
        self.default = "{}"
        self._stub = LocalStubProvider()

    def queue(self, *replies):
        self.replies.extend(replies)
        return self

    def chat(self, messages, model=None, **kwargs):
        self.calls.append({"messages": messages, **kwargs})
        reply = self.replies.pop(0) if self.replies else self.default
        if isinstance(reply, Exception):
            raise reply
        return {"content": reply, "prompt_tokens": 0, "completion_tokens": 0}

    def embed(self, texts, model=None, **kwargs):
        return [self._stub.embed([t])[0] if t and t.strip() else [] for t in texts]

    def embed_one(self, text, **kwargs):
        vectors = self.embed([text or ""])
        return vectors[0] if vectors else []

    def available_providers(self):
        return {"fake"}

    @property
    def purposes(self):
        return [c.get("purpose") for c in self.calls]


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture()
def fake_gateway(app):
    """Install a FakeGateway for one test; the real gateway is restored afterwards."""
    previous = getattr(app, "_ai_gateway", None)
    gateway = FakeGateway()
    app._ai_gateway = gateway
    yield gateway
    if previous is None:
        del app._ai_gateway
    else:
        app._ai_gateway = previous


# ── Convenience fixtures ─────────────────────────────────────────────────


@pytest.fixture()
def tenant(client):
    """Create and return a test Tenant via the API."""
    res = client.post("/api/v1/tenants", json={"name": "Acme Corp", "region": "EU"})
    assert res.status_code == 201
    return res.get_json()


@pytest.fixture()
def workspace(client, tenant):
    res = client.post(
        f"/api/v1/tenants/{tenant['slug']}/workspaces",
        json={"name": "Operations Review", "description": "2024 programme"},
    )
    assert res.status_code == 201
    return res.get_json()


@pytest.fixture()
def scan(client, tenant, workspace):
    """Create a scan; comes with 7 placeholder documents and a company info record."""
    res = client.post(
        f"/api/v1/tenants/{tenant['slug']}/workspaces/{workspace['id']}/scans",
        json={"name": "Acme Scan", "industry": "Manufacturing", "country": "Netherlands"},
    )
    assert res.status_code == 201
    return res.get_json()


@pytest.fixture()
def scan_url(tenant, workspace, scan):
    return f"/api/v1/tenants/{tenant['slug']}/workspaces/{workspace['id']}/scans/{scan['id']}"


@pytest.fixture()
def lifecycle(client, scan_url):
    res = client.post(
        f"{scan_url}/lifecycles",
        json={"name": "Order to Cash", "description": "From order capture to collection."},
    )
    assert res.status_code == 201
    return res.get_json()


@pytest.fixture()
def lifecycle_url(scan_url, lifecycle):
    return f"{scan_url}/lifecycles/{lifecycle['id']}"


@pytest.fixture()
def scope(tenant, workspace, scan):
    """(tenant_slug, workspace_id, scan_id) for calling services directly."""
    return tenant["slug"], workspace["id"], scan["id"]


@pytest.fixture()
def processes():
    """Process tree with two categories of two groups, all scored 0."""
    return {
        "process_categories": [
            {
                "name": "Order Management",
                "description": "Capture and confirm orders.",
                "score": 0,
                "process_groups": [
                    {"name": "Order Entry", "description": "Key in orders.", "score": 0},
                    {"name": "Credit Check", "description": "Check customer credit.", "score": 0},
                ],
            },
            {
                "name": "Billing",
                "description": "Invoice and collect.",
                "score": 0,
                "process_groups": [
                    {"name": "Invoicing", "description": "Create invoices.", "score": 0},
                    {"name": "Collections", "description": "Chase payments.", "score": 0},
                ],
            },
        ]
    }
