"""
Lifecycle Service.

Lifecycles are the business operating cycles of a scan. Each carries a
process tree (categories → groups) edited by hand or generated by the LLM.

Functions:
    - list_lifecycles:          Ordered by position (positions repaired when missing)
    - get_lifecycle:            Single lifecycle (scan-scoped)
    - create_lifecycle:         Append a lifecycle at the end
    - update_lifecycle:         Rename / describe
    - reorder_lifecycles:       Bulk position update
    - delete_lifecycle:         Delete with dependants, close the position gap
    - apply_action:             Process tree editor actions
    - generate_lifecycles:      LLM lifecycles from document summaries (replaces existing)
    - generate_processes:       LLM process tree + stakeholder suggestions
    - list_process_groups:      Flattened process groups
    - get_lifecycle_costs:      Cost metrics per lifecycle
    - update_lifecycle_costs:   Cost to serve / industry benchmark
"""

import logging

from sqlalchemy import and_, delete, or_, select

from app.ai import get_document_index, get_gateway, get_prompt_registry
from app.ai.assistants import LifecycleArchitect
from app.core.exceptions import AIResponseError, NotFoundError, ValidationError
from app.models import db
from app.models.lifecycle import Lifecycle, PainPointSummary, Transcription
from app.models.scan import Document
from app.services import scoring
from app.services.document_catalog import HRIS_REPORTS
from app.services.document_service import brief_from_chunks, company_for_scan
from app.services.helpers.scoped_queries import get_scoped, resolve_lifecycle, resolve_scan
from app.services.pain_point_service import latest_summary
from app.utils.helpers import is_number, text_value

logger = logging.getLogger(__name__)


def _architect() -> LifecycleArchitect:
    return LifecycleArchitect(
        gateway=get_gateway(),
        prompt_registry=get_prompt_registry(),
        index=get_document_index(),
    )


def _sort_key(lifecycle: Lifecycle):
    return (lifecycle.position is None, lifecycle.position or 0)


def _scan_lifecycles(scan_id: str) -> list[Lifecycle]:
    lifecycles = db.session.execute(
        select(Lifecycle).where(Lifecycle.scan_id == scan_id).order_by(Lifecycle.created_at)
    ).scalars().all()
    return sorted(lifecycles, key=_sort_key)


def _delete_dependants(lifecycle_ids: list[str]) -> None:
    if not lifecycle_ids:
        return
    for model in (PainPointSummary, Transcription):
        db.session.execute(
            delete(model).where(model.lifecycle_id.in_(lifecycle_ids))
            .execution_options(synchronize_session=False)
        )


# ── CRUD ─────────────────────────────────────────────────────────────────────

def list_lifecycles(tenant_slug, workspace_id, scan_id) -> list[dict]:
    """Lifecycles by position. Any missing position renumbers all of them by creation order."""
    scan = resolve_scan(tenant_slug, workspace_id, scan_id)
    lifecycles = db.session.execute(
        select(Lifecycle).where(Lifecycle.scan_id == scan.id).order_by(Lifecycle.created_at)
    ).scalars().all()

    if any(lc.position is None for lc in lifecycles):
        for index, lifecycle in enumerate(lifecycles):
            lifecycle.position = index
        db.session.commit()
        logger.info("Lifecycle positions renumbered", extra={"scan_id": scan.id, "count": len(lifecycles)})

    return [lc.to_dict() for lc in sorted(lifecycles, key=_sort_key)]


def get_lifecycle(tenant_slug, workspace_id, scan_id, lifecycle_id) -> dict:
    return resolve_lifecycle(tenant_slug, workspace_id, scan_id, lifecycle_id).to_dict()


def create_lifecycle(tenant_slug, workspace_id, scan_id, data: dict) -> dict:
    scan = resolve_scan(tenant_slug, workspace_id, scan_id)
    name = text_value(data, "name")
    if not name:
        raise ValidationError("name is required", details={"name": "required"})

    count = len(_scan_lifecycles(scan.id))
    lifecycle = Lifecycle(
        tenant_id=scan.tenant_id,
        workspace_id=scan.workspace_id,
        scan_id=scan.id,
        name=name,
        description=text_value(data, "description"),
        position=count,
        processes={"process_categories": []},
        stakeholders=[],
    )
    db.session.add(lifecycle)
    db.session.commit()

    logger.info("Lifecycle created", extra={"scan_id": scan.id, "lifecycle_id": lifecycle.id})
    return lifecycle.to_dict()


def update_lifecycle(tenant_slug, workspace_id, scan_id, lifecycle_id, data: dict) -> dict:
    lifecycle = resolve_lifecycle(tenant_slug, workspace_id, scan_id, lifecycle_id)
    name = text_value(data, "name")
    if not name:
        raise ValidationError("name is required", details={"name": "required"})

    lifecycle.name = name
    if data.get("description") is not None:
        lifecycle.description = text_value(data, "description")
    db.session.commit()

    logger.info("Lifecycle updated", extra={"scan_id": lifecycle.scan_id, "lifecycle_id": lifecycle.id})
    return lifecycle.to_dict()


def reorder_lifecycles(tenant_slug, workspace_id, scan_id, items) -> dict:
    """
    Apply ``[{id, position}]``. Only lifecycles whose position changes are written.

    Returns:
        {"updated": [ids]}
    """
    scan = resolve_scan(tenant_slug, workspace_id, scan_id)
    if not isinstance(items, list) or not items:
        raise ValidationError("lifecycles must be a non-empty list")
    for i, item in enumerate(items):
        if (
            not isinstance(item, dict)
            or not isinstance(item.get("id"), str)
            or not item["id"]
            or not is_number(item.get("position"))
        ):
            raise ValidationError(
                f"Item at index {i} needs an id and a numeric position",
                details={"index": i},
            )

    lifecycles = [get_scoped(Lifecycle, item["id"], scan_id=scan.id) for item in items]
    updated = []
    for lifecycle, item in zip(lifecycles, items):
        position = int(item["position"])
        if lifecycle.position != position:
            lifecycle.position = position
            updated.append(lifecycle.id)
    if updated:
        db.session.commit()

    logger.info("Lifecycles reordered", extra={"scan_id": scan.id, "updated": len(updated)})
    return {"updated": updated}


def delete_lifecycle(tenant_slug, workspace_id, scan_id, lifecycle_id) -> dict:
    lifecycle = resolve_lifecycle(tenant_slug, workspace_id, scan_id, lifecycle_id)
    scan_id = lifecycle.scan_id
    position = lifecycle.position

    _delete_dependants([lifecycle.id])
    db.session.delete(lifecycle)
    db.session.flush()

    if position is not None:
        later = db.session.execute(
            select(Lifecycle).where(Lifecycle.scan_id == scan_id, Lifecycle.position > position)
        ).scalars().all()
        for other in later:
            other.position -= 1
    db.session.commit()

    logger.info("Lifecycle deleted", extra={"scan_id": scan_id, "lifecycle_id": lifecycle_id})
    return {"deleted": lifecycle_id}


# ── Process tree ─────────────────────────────────────────────────────────────

def apply_action(tenant_slug, workspace_id, scan_id, lifecycle_id, data: dict) -> dict:
    lifecycle = resolve_lifecycle(tenant_slug, workspace_id, scan_id, lifecycle_id)
    action = data.get("action")
    if not action:
        raise ValidationError("action is required", details={"action": "required"})

    lifecycle.processes = scoring.apply_process_action(lifecycle.processes, action, data)
    db.session.commit()

    logger.info(
        "Process tree action applied",
        extra={"scan_id": lifecycle.scan_id, "lifecycle_id": lifecycle.id, "action": action},
    )
    return lifecycle.to_dict()


def list_process_groups(tenant_slug, workspace_id, scan_id, lifecycle_id) -> dict:
    lifecycle = resolve_lifecycle(tenant_slug, workspace_id, scan_id, lifecycle_id)
    groups = scoring.list_process_groups(lifecycle.processes)
    return {"processGroups": groups, "count": len(groups)}


# ── Generation ───────────────────────────────────────────────────────────────

def _document_summaries(scan_id: str) -> list[str]:
    documents = db.session.execute(
        select(Document)
        .where(
            Document.scan_id == scan_id,
            or_(
                Document.status.in_(("uploaded", "processed")),
                and_(Document.summary.isnot(None), Document.summary != ""),
            ),
        )
        .order_by(Document.created_at)
    ).scalars().all()
    if not documents:
        raise NotFoundError(resource="Completed documents", resource_id=scan_id)

    summaries = []
    for document in documents:
        summary = document.summary or brief_from_chunks(document)
        if not summary:
            continue
        summaries.append(
            f"Document Type: {document.document_type}\n"
            f"File Name: {document.file_name or 'Untitled'}\n"
            f"Summary:\n{summary}"
        )
    return summaries


def generate_lifecycles(tenant_slug, workspace_id, scan_id) -> list[dict]:
    """Replace the scan's lifecycles with LLM-generated ones."""
    scan = resolve_scan(tenant_slug, workspace_id, scan_id)
    summaries = _document_summaries(scan.id)
    if not summaries:
        raise NotFoundError(resource="Document summaries", resource_id=scan.id)

    result = _architect().generate_lifecycles(summaries, scan_id=scan.id)
    if result["error"]:
        db.session.commit()
        raise AIResponseError(result["error"])

    existing_ids = list(db.session.execute(
        select(Lifecycle.id).where(Lifecycle.scan_id == scan.id)
    ).scalars())
    _delete_dependants(existing_ids)
    db.session.execute(
        delete(Lifecycle).where(Lifecycle.scan_id == scan.id).execution_options(synchronize_session=False)
    )

    created = []
    for index, item in enumerate(result["lifecycles"]):
        lifecycle = Lifecycle(
            tenant_id=scan.tenant_id,
            workspace_id=scan.workspace_id,
            scan_id=scan.id,
            name=item["name"],
            description=item["description"],
            position=index,
            processes={"process_categories": []},
            stakeholders=[],
        )
        db.session.add(lifecycle)
        created.append(lifecycle)
    db.session.commit()

    logger.info(
        "Lifecycles generated",
        extra={"scan_id": scan.id, "replaced": len(existing_ids), "created": len(created)},
    )
    return [lc.to_dict() for lc in created]


def _hris_employees(scan_id: str) -> list[dict]:
    documents = db.session.execute(
        select(Document).where(Document.scan_id == scan_id, Document.document_type == HRIS_REPORTS)
    ).scalars().all()
    employees = []
    for document in documents:
        employees.extend(e for e in document.employees or [] if isinstance(e, dict))
    return employees


def generate_processes(tenant_slug, workspace_id, scan_id, lifecycle_id) -> dict:
    """
    Generate the process tree of a lifecycle, then suggest stakeholders.

    Raises:
        AIResponseError: the LLM call failed or returned no JSON.
        ValidationError: the returned tree has the wrong shape.
    """
    lifecycle = resolve_lifecycle(tenant_slug, workspace_id, scan_id, lifecycle_id)
    company = company_for_scan(lifecycle.scan_id)
    architect = _architect()

    result = architect.generate_processes(
        lifecycle.name, lifecycle.description, company=company, scan_id=lifecycle.scan_id,
    )
    if result["error"]:
        db.session.commit()
        raise AIResponseError(result["error"])

    error = scoring.validate_processes(result["processes"])
    if error:
        db.session.commit()
        raise ValidationError(error)

    processes = scoring.initialise_scores(result["processes"])
    lifecycle.processes = processes

    employees = _hris_employees(lifecycle.scan_id)
    if len(employees) > 1:
        lifecycle.stakeholders = architect.suggest_stakeholders(
            lifecycle.name,
            lifecycle.description,
            categories=processes["process_categories"],
            employees=employees,
            company=company,
            scan_id=lifecycle.scan_id,
        )
    db.session.commit()

    logger.info(
        "Processes generated",
        extra={
            "scan_id": lifecycle.scan_id,
            "lifecycle_id": lifecycle.id,
            "categories": len(processes["process_categories"]),
            "stakeholders": len(lifecycle.stakeholders or []),
        },
    )
    return lifecycle.to_dict()


# ── Costs ────────────────────────────────────────────────────────────────────

def get_lifecycle_costs(tenant_slug, workspace_id, scan_id) -> list[dict]:
    scan = resolve_scan(tenant_slug, workspace_id, scan_id)
    costs = []
    for lifecycle in _scan_lifecycles(scan.id):
        summary = latest_summary(lifecycle.id)
        pain_points = summary.pain_points if summary else []
        costs.append({
            "id": lifecycle.id,
            "name": lifecycle.name,
            "description": lifecycle.description or "",
            "position": lifecycle.position,
            "costMetrics": scoring.cost_metrics(lifecycle, pain_points),
        })
    return costs


def _cost_value(data: dict, key: str):
    value = data.get(key)
    if isinstance(value, str):
        try:
            value = float(value)
        except ValueError:
            raise ValidationError(f"{key} must be a number", details={key: "number required"})
    if not is_number(value):
        raise ValidationError(f"{key} must be a number", details={key: "number required"})
    return abs(value)


def update_lifecycle_costs(tenant_slug, workspace_id, scan_id, lifecycle_id, data: dict) -> dict:
    lifecycle = resolve_lifecycle(tenant_slug, workspace_id, scan_id, lifecycle_id)
    present = [k for k in ("cost_to_serve", "industry_benchmark") if data.get(k) is not None]
    if not present:
        raise ValidationError("cost_to_serve or industry_benchmark is required")

    for key in present:
        setattr(lifecycle, key, _cost_value(data, key))
    db.session.commit()

    logger.info("Lifecycle costs updated", extra={"scan_id": lifecycle.scan_id, "lifecycle_id": lifecycle.id})
    return lifecycle.to_dict()
