"""
Process Scan Platform
Tests — tenants, tenant users, workspaces, scans and scenario planning.
"""

import pytest
from sqlalchemy import func, select

from app.models import db as _db
from app.models.lifecycle import Lifecycle, Transcription
from app.models.scan import CompanyInfo, Document, Scan


def _count(model, **filters):
    stmt = select(func.count()).select_from(model)
    for key, value in filters.items():
        stmt = stmt.where(getattr(model, key) == value)
    return _db.session.execute(stmt).scalar()


# ═════════════════════════════════════════════════════════════════════════════
# 1. TENANTS
# ═════════════════════════════════════════════════════════════════════════════

class TestTenantAPI:

    def test_create_tenant_slugifies_name(self, tenant):
        assert tenant["slug"] == "acme-corp"
        assert tenant["region"] == "EU"

    def test_duplicate_slug_conflicts(self, client, tenant):
        res = client.post("/api/v1/tenants", json={"name": "ACME  corp"})
        assert res.status_code == 409
        assert res.get_json()["code"] == "ERR_CONFLICT_DUPLICATE"

    def test_name_required(self, client):
        res = client.post("/api/v1/tenants", json={"description": "no name"})
        assert res.status_code == 400
        body = res.get_json()
        assert body["code"] == "ERR_VALIDATION_REQUIRED"
        assert body["details"] == {"name": "required"}

    @pytest.mark.parametrize("payload, field", [
        ({"name": 5}, "name"),
        ({"name": ["Acme"]}, "name"),
        ({"name": "Acme", "description": {"text": "x"}}, "description"),
    ])
    def test_non_string_fields_rejected(self, client, payload, field):
        res = client.post("/api/v1/tenants", json=payload)
        body = res.get_json()
        assert res.status_code == 400
        assert body["code"] == "ERR_VALIDATION_INVALID"
        assert body["details"] == {field: "invalid"}

    def test_patch_non_string_name_rejected(self, client, tenant):
        res = client.patch("/api/v1/tenants/acme-corp", json={"name": 42})
        assert res.status_code == 400
        assert res.get_json()["details"] == {"name": "invalid"}

    def test_get_tenant_case_insensitive(self, client, tenant):
        res = client.get("/api/v1/tenants/ACME-Corp")
        assert res.status_code == 200
        assert res.get_json()["id"] == tenant["id"]

    def test_unknown_tenant_404(self, client):
        res = client.get("/api/v1/tenants/nobody")
        assert res.status_code == 404
        assert res.get_json()["code"] == "ERR_NOT_FOUND"

    def test_patch_only_changes_given_fields(self, client, tenant):
        res = client.patch("/api/v1/tenants/acme-corp", json={"description": "Updated"})
        body = res.get_json()
        assert res.status_code == 200
        assert body["description"] == "Updated"
        assert body["name"] == "Acme Corp"
        assert body["region"] == "EU"

    def test_list_tenants(self, client, tenant):
        client.post("/api/v1/tenants", json={"name": "Beta Ltd"})
        body = client.get("/api/v1/tenants").get_json()
        assert body["total"] == 2
        assert [t["name"] for t in body["items"]] == ["Acme Corp", "Beta Ltd"]


class TestTenantUsers:

    def test_add_user_normalises_email(self, client, tenant):
        res = client.post(
            "/api/v1/tenants/acme-corp/users",
            json={"email": "  Jane.Doe@Example.COM ", "permission": "Write"},
        )
        assert res.status_code == 201
        body = res.get_json()
        assert body["email"] == "jane.doe@example.com"
        assert body["permission"] == "Write"

    def test_default_permission_is_read(self, client, tenant):
        res = client.post("/api/v1/tenants/acme-corp/users", json={"email": "a@example.com"})
        assert res.get_json()["permission"] == "Read"

    def test_invalid_email(self, client, tenant):
        res = client.post("/api/v1/tenants/acme-corp/users", json={"email": "not-an-email"})
        assert res.status_code == 400
        assert res.get_json()["details"] == {"email": "invalid"}

    def test_invalid_permission(self, client, tenant):
        res = client.post(
            "/api/v1/tenants/acme-corp/users",
            json={"email": "a@example.com", "permission": "Admin"},
        )
        assert res.status_code == 400

    def test_duplicate_email_conflicts(self, client, tenant):
        client.post("/api/v1/tenants/acme-corp/users", json={"email": "a@example.com"})
        res = client.post("/api/v1/tenants/acme-corp/users", json={"email": "A@example.com"})
        assert res.status_code == 409

    def test_update_and_remove_user(self, client, tenant):
        user = client.post(
            "/api/v1/tenants/acme-corp/users", json={"email": "a@example.com"},
        ).get_json()

        res = client.patch(f"/api/v1/tenants/acme-corp/users/{user['id']}", json={"permission": "Write"})
        assert res.get_json()["permission"] == "Write"

        res = client.delete(f"/api/v1/tenants/acme-corp/users/{user['id']}")
        assert res.status_code == 200
        assert client.get("/api/v1/tenants/acme-corp/users").get_json()["total"] == 0

    def test_user_of_other_tenant_is_404(self, client, tenant):
        client.post("/api/v1/tenants", json={"name": "Beta Ltd"})
        user = client.post("/api/v1/tenants/beta-ltd/users", json={"email": "b@example.com"}).get_json()
        res = client.patch(f"/api/v1/tenants/acme-corp/users/{user['id']}", json={"permission": "Write"})
        assert res.status_code == 404


# ═════════════════════════════════════════════════════════════════════════════
# 2. WORKSPACES
# ═════════════════════════════════════════════════════════════════════════════

class TestWorkspaceAPI:

    def test_create_workspace(self, workspace, tenant):
        assert workspace["tenant_id"] == tenant["id"]
        assert workspace["tenant_slug"] == "acme-corp"

    def test_duplicate_name_case_insensitive(self, client, workspace):
        res = client.post("/api/v1/tenants/acme-corp/workspaces", json={"name": "operations review"})
        assert res.status_code == 409

    def test_rename_to_own_name_is_allowed(self, client, workspace):
        res = client.patch(
            f"/api/v1/tenants/acme-corp/workspaces/{workspace['id']}",
            json={"name": "Operations Review", "description": "same name"},
        )
        assert res.status_code == 200
        assert res.get_json()["description"] == "same name"

    def test_update_requires_name(self, client, workspace):
        res = client.patch(f"/api/v1/tenants/acme-corp/workspaces/{workspace['id']}", json={})
        assert res.status_code == 400

    @pytest.mark.parametrize("name", [7, ["Ops"], {"name": "Ops"}])
    def test_non_string_name_rejected(self, client, tenant, name):
        res = client.post("/api/v1/tenants/acme-corp/workspaces", json={"name": name})
        assert res.status_code == 400
        assert res.get_json()["details"] == {"name": "invalid"}

    def test_workspace_is_tenant_scoped(self, client, workspace):
        client.post("/api/v1/tenants", json={"name": "Beta Ltd"})
        res = client.get(f"/api/v1/tenants/beta-ltd/workspaces/{workspace['id']}")
        assert res.status_code == 404

    def test_delete_workspace_removes_scans(self, client, workspace, scan, lifecycle):
        res = client.delete(f"/api/v1/tenants/acme-corp/workspaces/{workspace['id']}")
        assert res.status_code == 200
        assert res.get_json() == {"deleted": workspace["id"], "scans_deleted": 1}

        _db.session.expire_all()
        assert _count(Scan, workspace_id=workspace["id"]) == 0
        assert _count(Document, scan_id=scan["id"]) == 0
        assert _count(Lifecycle, scan_id=scan["id"]) == 0


# ═════════════════════════════════════════════════════════════════════════════
# 3. SCANS
# ═════════════════════════════════════════════════════════════════════════════

class TestScanAPI:

    def test_create_scan_seeds_documents_and_company(self, scan):
        assert scan["status"] == "pending"
        assert scan["placeholder_documents"] == 7
        assert _count(Document, scan_id=scan["id"], status="placeholder") == 7

        company = _db.session.execute(
            select(CompanyInfo).where(CompanyInfo.scan_id == scan["id"])
        ).scalar_one()
        assert company.name == "Acme Scan"
        assert company.industry == "Manufacturing"
        assert company.strategic_objectives == []

    def test_invalid_status(self, client, workspace):
        res = client.post(
            f"/api/v1/tenants/acme-corp/workspaces/{workspace['id']}/scans",
            json={"name": "Scan 2", "status": "exploded"},
        )
        assert res.status_code == 400
        assert res.get_json()["code"] == "ERR_VALIDATION_INVALID"

    @pytest.mark.parametrize("payload, field", [
        ({"name": 5}, "name"),
        ({"name": ["Scan 2"]}, "name"),
        ({"name": "Scan 2", "industry": 3}, "industry"),
    ])
    def test_non_string_fields_rejected(self, client, workspace, payload, field):
        res = client.post(f"/api/v1/tenants/acme-corp/workspaces/{workspace['id']}/scans", json=payload)
        body = res.get_json()
        assert res.status_code == 400
        assert body["code"] == "ERR_VALIDATION_INVALID"
        assert body["details"] == {field: "invalid"}
        assert _count(Scan, workspace_id=workspace["id"]) == 0

    def test_duplicate_scan_name(self, client, workspace, scan):
        res = client.post(
            f"/api/v1/tenants/acme-corp/workspaces/{workspace['id']}/scans",
            json={"name": "ACME SCAN"},
        )
        assert res.status_code == 409

    def test_list_newest_first(self, client, workspace, scan):
        client.post(
            f"/api/v1/tenants/acme-corp/workspaces/{workspace['id']}/scans",
            json={"name": "Second Scan"},
        )
        body = client.get(f"/api/v1/tenants/acme-corp/workspaces/{workspace['id']}/scans").get_json()
        assert body["total"] == 2
        assert body["items"][0]["name"] == "Second Scan"

    def test_update_scan(self, client, workspace, scan):
        res = client.patch(
            f"/api/v1/tenants/acme-corp/workspaces/{workspace['id']}/scans/{scan['id']}",
            json={"name": "Acme Scan", "status": "in_progress", "website": "https://acme.test"},
        )
        body = res.get_json()
        assert body["status"] == "in_progress"
        assert body["website"] == "https://acme.test"
        assert body["industry"] == "Manufacturing"

    def test_scan_in_other_workspace_is_404(self, client, workspace, scan):
        other = client.post("/api/v1/tenants/acme-corp/workspaces", json={"name": "Other"}).get_json()
        res = client.get(f"/api/v1/tenants/acme-corp/workspaces/{other['id']}/scans/{scan['id']}")
        assert res.status_code == 404

    def test_delete_scan_removes_scan_records(self, client, scan_url, scan, lifecycle_url):
        client.post(f"{lifecycle_url}/transcriptions", json={"transcription": "A: hi"})
        res = client.delete(scan_url)
        assert res.status_code == 200

        _db.session.expire_all()
        assert _count(Scan, id=scan["id"]) == 0
        assert _count(Document, scan_id=scan["id"]) == 0
        assert _count(CompanyInfo, scan_id=scan["id"]) == 0
        assert _count(Transcription, scan_id=scan["id"]) == 0


class TestScenarioPlanning:

    def test_get_before_save(self, client, scan_url):
        body = client.get(f"{scan_url}/scenario-planning").get_json()
        assert body["scenarioPlanning"] is None
        assert body["companyInfo"]["name"] == "Acme Scan"
        assert body["scan"]["name"] == "Acme Scan"

    def test_upsert(self, client, scan_url):
        url = f"{scan_url}/scenario-planning"
        first = client.put(url, json={"scenarios": [{"name": "Base"}], "notes": "draft"}).get_json()
        second = client.put(url, json={"scenarios": [{"name": "Base"}, {"name": "Stretch"}]}).get_json()
        assert first["id"] == second["id"]
        assert len(second["scenarios"]) == 2
        assert second["notes"] == "draft"

    @pytest.mark.parametrize("payload", [{}, {"scenarios": "many"}])
    def test_scenarios_must_be_list(self, client, scan_url, payload):
        res = client.put(f"{scan_url}/scenario-planning", json=payload)
        assert res.status_code == 400
