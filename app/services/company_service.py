"""
Company Information & Strategic Objectives Service.

Functions:
    - get_company_info:            Company info of a scan
    - create_company_info:         Create (one per scan)
    - update_company_info:         Update profile fields, research/objectives preserved
    - delete_company_info:         Delete
    - research_company:            LLM company profile stored in ``research``
    - get_objectives:              Strategic objectives ([] when none)
    - put_objectives:              Replace the objective list
    - generate_objectives:         LLM objectives from company info + lifecycles
    - generate_scoring_criteria:   LLM low / medium / high criteria for one objective
"""

import logging

from sqlalchemy import select

from app.ai import get_document_index, get_gateway, get_prompt_registry
from app.ai.assistants import StrategyAdvisor
from app.core.exceptions import AIResponseError, ConflictError, NotFoundError, ValidationError
from app.models import db
from app.models.lifecycle import Lifecycle
from app.models.scan import DEFAULT_RESEARCH, OBJECTIVE_STATUSES, CompanyInfo, Document
from app.services.document_catalog import STRATEGY_DOCUMENTS
from app.services.helpers.scoped_queries import resolve_scan
from app.utils.helpers import text_value

logger = logging.getLogger(__name__)

DEFAULT_OBJECTIVE_STATUS = "to be approved"
_PROFILE_FIELDS = ("website", "country", "industry", "description")


def _advisor() -> StrategyAdvisor:
    return StrategyAdvisor(
        gateway=get_gateway(),
        prompt_registry=get_prompt_registry(),
        index=get_document_index(),
    )


def _company_or_none(scan_id: str) -> CompanyInfo | None:
    return db.session.execute(
        select(CompanyInfo).where(CompanyInfo.scan_id == scan_id)
    ).scalar_one_or_none()


def _company(scan_id: str) -> CompanyInfo:
    company = _company_or_none(scan_id)
    if company is None:
        raise NotFoundError(resource="CompanyInfo", resource_id=scan_id)
    return company


def _lifecycle_dicts(scan_id: str) -> list[dict]:
    lifecycles = db.session.execute(
        select(Lifecycle)
        .where(Lifecycle.scan_id == scan_id)
        .order_by(Lifecycle.position.is_(None), Lifecycle.position, Lifecycle.created_at)
    ).scalars().all()
    return [{"name": lc.name, "description": lc.description or ""} for lc in lifecycles]


def _required_name(data: dict) -> str:
    name = text_value(data, "name")
    if not name:
        raise ValidationError("Company name is required", details={"name": "required"})
    return name


# ── Company info CRUD ────────────────────────────────────────────────────────

def get_company_info(tenant_slug, workspace_id, scan_id) -> dict:
    scan = resolve_scan(tenant_slug, workspace_id, scan_id)
    return _company(scan.id).to_dict()


def create_company_info(tenant_slug, workspace_id, scan_id, data: dict) -> dict:
    scan = resolve_scan(tenant_slug, workspace_id, scan_id)
    name = _required_name(data)
    if _company_or_none(scan.id) is not None:
        raise ConflictError(resource="CompanyInfo", field="scan_id", value=scan.id)

    company = CompanyInfo(
        tenant_id=scan.tenant_id,
        workspace_id=scan.workspace_id,
        scan_id=scan.id,
        name=name,
        research=DEFAULT_RESEARCH,
        strategic_objectives=[],
        **{f: text_value(data, f) for f in _PROFILE_FIELDS},
    )
    db.session.add(company)
    db.session.commit()

    logger.info("Company info created", extra={"scan_id": scan.id})
    return company.to_dict()


def update_company_info(tenant_slug, workspace_id, scan_id, data: dict) -> dict:
    scan = resolve_scan(tenant_slug, workspace_id, scan_id)
    company = _company(scan.id)
    company.name = _required_name(data)
    for field in _PROFILE_FIELDS:
        if field in data:
            setattr(company, field, text_value(data, field))
    db.session.commit()

    logger.info("Company info updated", extra={"scan_id": scan.id})
    return company.to_dict()


def delete_company_info(tenant_slug, workspace_id, scan_id) -> dict:
    scan = resolve_scan(tenant_slug, workspace_id, scan_id)
    company = _company(scan.id)
    company_id = company.id
    db.session.delete(company)
    db.session.commit()

    logger.info("Company info deleted", extra={"scan_id": scan.id})
    return {"deleted": company_id}


def research_company(tenant_slug, workspace_id, scan_id) -> dict:
    """Generate a markdown company profile and store it in ``research``."""
    scan = resolve_scan(tenant_slug, workspace_id, scan_id)
    company = _company(scan.id)

    result = _advisor().research_company(company.to_dict(), scan_id=scan.id)
    if result["error"]:
        db.session.commit()
        raise AIResponseError(result["error"])

    company.research = result["research"]
    db.session.commit()

    logger.info("Company research stored", extra={"scan_id": scan.id, "chars": len(company.research)})
    return company.to_dict()


# ── Strategic objectives ─────────────────────────────────────────────────────

def get_objectives(tenant_slug, workspace_id, scan_id) -> list[dict]:
    scan = resolve_scan(tenant_slug, workspace_id, scan_id)
    company = _company_or_none(scan.id)
    if company is None:
        return []
    return company.strategic_objectives or []


def _clean_objective(item, index: int) -> dict:
    if not isinstance(item, dict):
        raise ValidationError(f"Objective at index {index} must be an object")
    name = item.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ValidationError(
            f"Objective at index {index} is missing a name",
            details={"index": index, "name": "required"},
        )
    status = item.get("status") or DEFAULT_OBJECTIVE_STATUS
    if status not in OBJECTIVE_STATUSES:
        raise ValidationError(
            f"Invalid objective status: {status}",
            details={"index": index, "status": sorted(OBJECTIVE_STATUSES)},
        )

    objective = {
        "name": name.strip(),
        "description": str(item.get("description") or "").strip(),
        "status": status,
    }
    if isinstance(item.get("scoring_criteria"), dict):
        objective["scoring_criteria"] = item["scoring_criteria"]
    return objective


def put_objectives(tenant_slug, workspace_id, scan_id, data: dict) -> list[dict]:
    scan = resolve_scan(tenant_slug, workspace_id, scan_id)
    objectives = data.get("objectives")
    if not isinstance(objectives, list):
        raise ValidationError("objectives must be a list", details={"objectives": "list required"})

    cleaned = [_clean_objective(item, i) for i, item in enumerate(objectives)]
    company = _company(scan.id)
    company.strategic_objectives = cleaned
    db.session.commit()

    logger.info("Strategic objectives saved", extra={"scan_id": scan.id, "count": len(cleaned)})
    return cleaned


def generate_objectives(tenant_slug, workspace_id, scan_id) -> list[dict]:
    """LLM objectives from company info and lifecycles, saved over the current list."""
    scan = resolve_scan(tenant_slug, workspace_id, scan_id)
    company = _company(scan.id)

    result = _advisor().generate_objectives(
        company.to_dict(), _lifecycle_dicts(scan.id), scan_id=scan.id,
    )
    if result["error"]:
        db.session.commit()
        raise AIResponseError(result["error"], raw=result["raw"])

    company.strategic_objectives = result["objectives"]
    db.session.commit()

    logger.info(
        "Strategic objectives generated",
        extra={"scan_id": scan.id, "count": len(result["objectives"])},
    )
    return result["objectives"]


def generate_scoring_criteria(tenant_slug, workspace_id, scan_id, data: dict) -> dict:
    """Low / medium / high criteria (scores 1 / 2 / 3) for one objective. Not persisted."""
    scan = resolve_scan(tenant_slug, workspace_id, scan_id)
    name = data.get("objective_name")
    description = data.get("objective_description")
    missing = {
        key: "required"
        for key, value in (("objective_name", name), ("objective_description", description))
        if not isinstance(value, str) or not value.strip()
    }
    if missing:
        raise ValidationError("objective_name and objective_description are required", details=missing)

    company = _company_or_none(scan.id)
    strategy_documents = db.session.execute(
        select(Document).where(
            Document.scan_id == scan.id,
            Document.document_type == STRATEGY_DOCUMENTS,
            Document.summary.isnot(None),
            Document.summary != "",
        )
    ).scalars().all()

    result = _advisor().generate_scoring_criteria(
        name.strip(),
        description.strip(),
        company=company.to_dict() if company else None,
        lifecycles=_lifecycle_dicts(scan.id),
        strategy_documents=[
            {"file_name": doc.file_name, "summary": doc.summary} for doc in strategy_documents
        ],
        scan_id=scan.id,
    )
    db.session.commit()
    if result["error"]:
        raise AIResponseError(result["error"])

    logger.info("Scoring criteria generated", extra={"scan_id": scan.id})
    return {"scoring_criteria": result["scoring_criteria"]}
