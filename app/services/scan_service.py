"""
Scan Service.

Functions:
    - create_scan:              Create a scan with its placeholder documents and company info
    - list_scans:               Scans of a workspace, newest first
    - get_scan:                 Single scan (workspace-scoped)
    - update_scan:              Update name / description / status / company fields
    - delete_scan:              Delete a scan and every scan-scoped record
    - purge_scan_records:       Bulk delete of scan-scoped rows (shared with workspace delete)
    - get_scenario_planning:    Scan + scenario planning + company info bundle
    - save_scenario_planning:   Upsert the scenario planning worksheet
"""

import logging

from sqlalchemy import delete, func, select

from app.core.exceptions import ConflictError, ValidationError
from app.models import db
from app.models.lifecycle import Lifecycle, PainPointSummary, Transcription
from app.models.scan import (
    DEFAULT_RESEARCH,
    PLACEHOLDER_SUMMARIZATION,
    SCAN_STATUSES,
    CompanyInfo,
    Document,
    DocumentChunk,
    Scan,
    ScenarioPlanning,
)
from app.services.document_catalog import (
    DOCUMENT_AGENT_ROLES,
    DOCUMENT_DESCRIPTIONS,
    REQUIRED_DOCUMENT_TYPES,
    default_prompt,
)
from app.services.helpers.scoped_queries import resolve_scan, resolve_workspace
from app.utils.helpers import text_value

logger = logging.getLogger(__name__)

# Child tables first
_SCAN_SCOPED_MODELS = (
    DocumentChunk,
    Document,
    Transcription,
    PainPointSummary,
    Lifecycle,
    CompanyInfo,
    ScenarioPlanning,
)

_COMPANY_FIELDS = ("website", "country", "industry")



def _check_unique_name(workspace_id: str, name: str, exclude_id: str | None = None) -> None:
    stmt = select(Scan.id).where(
        Scan.workspace_id == workspace_id,
        func.lower(Scan.name) == name.lower(),
    )
    if exclude_id:
        stmt = stmt.where(Scan.id != exclude_id)
    if db.session.execute(stmt).first():
        raise ConflictError(resource="Scan", field="name", value=name)


def _status(value) -> str:
    if not isinstance(value, str) or value not in SCAN_STATUSES:
        raise ValidationError(
            f"Invalid status: {value}",
            details={"status": sorted(SCAN_STATUSES)},
        )
    return value


# ── CRUD ─────────────────────────────────────────────────────────────────────

def create_scan(tenant_slug: str, workspace_id: str, data: dict) -> dict:
    """
    Create a scan.

    Also creates one placeholder document per required document type and a
    default company info record named after the scan.
    """
    workspace = resolve_workspace(tenant_slug, workspace_id)
    name = text_value(data, "name")
    if not name:
        raise ValidationError("Scan name is required", details={"name": "required"})
    _check_unique_name(workspace.id, name)

    scan = Scan(
        tenant_id=workspace.tenant_id,
        workspace_id=workspace.id,
        name=name,
        description=text_value(data, "description"),
        status=_status(data.get("status") or "pending"),
        **{f: text_value(data, f) for f in _COMPANY_FIELDS},
    )
    db.session.add(scan)
    db.session.flush()

    scope = {"tenant_id": scan.tenant_id, "workspace_id": scan.workspace_id, "scan_id": scan.id}
    for document_type in REQUIRED_DOCUMENT_TYPES:
        db.session.add(Document(
            document_type=document_type,
            description=DOCUMENT_DESCRIPTIONS.get(document_type, ""),
            status="placeholder",
            summarization_prompt=default_prompt(document_type),
            document_agent_role=DOCUMENT_AGENT_ROLES.get(document_type, ""),
            summarization=PLACEHOLDER_SUMMARIZATION,
            employees=[],
            **scope,
        ))

    db.session.add(CompanyInfo(
        name=name,
        description=scan.description,
        research=DEFAULT_RESEARCH,
        strategic_objectives=[],
        **{f: getattr(scan, f) for f in _COMPANY_FIELDS},
        **scope,
    ))
    db.session.commit()

    logger.info(
        "Scan created",
        extra={"tenant_id": scan.tenant_id, "workspace_id": scan.workspace_id, "scan_id": scan.id},
    )
    result = scan.to_dict()
    result["placeholder_documents"] = len(REQUIRED_DOCUMENT_TYPES)
    return result


def list_scans(tenant_slug: str, workspace_id: str) -> list[dict]:
    workspace = resolve_workspace(tenant_slug, workspace_id)
    scans = db.session.execute(
        select(Scan).where(Scan.workspace_id == workspace.id).order_by(Scan.created_at.desc())
    ).scalars().all()
    return [s.to_dict() for s in scans]


def get_scan(tenant_slug: str, workspace_id: str, scan_id: str) -> dict:
    return resolve_scan(tenant_slug, workspace_id, scan_id).to_dict()


def update_scan(tenant_slug: str, workspace_id: str, scan_id: str, data: dict) -> dict:
    scan = resolve_scan(tenant_slug, workspace_id, scan_id)
    name = text_value(data, "name")
    if not name:
        raise ValidationError("Scan name is required", details={"name": "required"})
    _check_unique_name(scan.workspace_id, name, exclude_id=scan.id)

    scan.name = name
    if "description" in data:
        scan.description = text_value(data, "description")
    if data.get("status"):
        scan.status = _status(data["status"])
    for field in _COMPANY_FIELDS:
        if field in data:
            setattr(scan, field, text_value(data, field))
    db.session.commit()

    logger.info("Scan updated", extra={"tenant_id": scan.tenant_id, "scan_id": scan.id})
    return scan.to_dict()


def purge_scan_records(scan_ids: list[str]) -> None:
    """Bulk delete every scan-scoped row of the given scans. Caller commits."""
    if not scan_ids:
        return
    for model in _SCAN_SCOPED_MODELS:
        db.session.execute(
            delete(model).where(model.scan_id.in_(scan_ids)).execution_options(synchronize_session=False)
        )


def delete_scan(tenant_slug: str, workspace_id: str, scan_id: str) -> dict:
    scan = resolve_scan(tenant_slug, workspace_id, scan_id)
    tenant_id = scan.tenant_id
    purge_scan_records([scan.id])
    db.session.delete(scan)
    db.session.commit()

    logger.info("Scan deleted", extra={"tenant_id": tenant_id, "scan_id": scan_id})
    return {"deleted": scan_id}


# ── Scenario planning ────────────────────────────────────────────────────────

def _scenario_planning(scan_id: str) -> ScenarioPlanning | None:
    return db.session.execute(
        select(ScenarioPlanning).where(ScenarioPlanning.scan_id == scan_id)
    ).scalar_one_or_none()


def get_scenario_planning(tenant_slug: str, workspace_id: str, scan_id: str) -> dict:
    scan = resolve_scan(tenant_slug, workspace_id, scan_id)
    planning = _scenario_planning(scan.id)
    company = db.session.execute(
        select(CompanyInfo).where(CompanyInfo.scan_id == scan.id)
    ).scalar_one_or_none()
    return {
        "scan": scan.to_dict(),
        "scenarioPlanning": planning.to_dict() if planning else None,
        "companyInfo": company.to_dict() if company else None,
    }


def save_scenario_planning(tenant_slug: str, workspace_id: str, scan_id: str, data: dict) -> dict:
    scan = resolve_scan(tenant_slug, workspace_id, scan_id)
    scenarios = data.get("scenarios")
    if not isinstance(scenarios, list):
        raise ValidationError("scenarios must be a list", details={"scenarios": "list required"})

    planning = _scenario_planning(scan.id)
    if planning is None:
        planning = ScenarioPlanning(
            tenant_id=scan.tenant_id,
            workspace_id=scan.workspace_id,
            scan_id=scan.id,
        )
        db.session.add(planning)
    planning.scenarios = scenarios
    if "notes" in data or not planning.notes:
        planning.notes = text_value(data, "notes")
    db.session.commit()

    logger.info("Scenario planning saved", extra={"scan_id": scan.id, "scenarios": len(scenarios)})
    return planning.to_dict()
