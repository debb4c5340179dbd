"""
Workspace Service.

Functions:
    - create_workspace:  Create a workspace (name unique per tenant, case-insensitive)
    - list_workspaces:   Workspaces of a tenant, newest first
    - get_workspace:     Single workspace (tenant-scoped)
    - update_workspace:  Rename / describe
    - delete_workspace:  Delete with every scan and scan-scoped record
"""

import logging

from sqlalchemy import delete, func, select

from app.core.exceptions import ConflictError, ValidationError
from app.models import db
from app.models.scan import Scan
from app.models.tenant import Workspace
from app.services.helpers.scoped_queries import resolve_tenant, resolve_workspace
from app.services.scan_service import purge_scan_records
from app.utils.helpers import text_value

logger = logging.getLogger(__name__)


def _check_unique_name(tenant_id: str, name: str, exclude_id: str | None = None) -> None:
    stmt = select(Workspace.id).where(
        Workspace.tenant_id == tenant_id,
        func.lower(Workspace.name) == name.lower(),
    )
    if exclude_id:
        stmt = stmt.where(Workspace.id != exclude_id)
    if db.session.execute(stmt).first():
        raise ConflictError(resource="Workspace", field="name", value=name)


def _required_name(data: dict) -> str:
    name = text_value(data, "name")
    if not name:
        raise ValidationError("name is required", details={"name": "required"})
    return name


def create_workspace(tenant_slug: str, data: dict) -> dict:
    tenant = resolve_tenant(tenant_slug)
    name = _required_name(data)
    _check_unique_name(tenant.id, name)

    workspace = Workspace(
        tenant_id=tenant.id,
        name=name,
        description=text_value(data, "description"),
    )
    db.session.add(workspace)
    db.session.commit()

    logger.info("Workspace created", extra={"tenant_id": tenant.id, "workspace_id": workspace.id})
    return workspace.to_dict()


def list_workspaces(tenant_slug: str) -> list[dict]:
    tenant = resolve_tenant(tenant_slug)
    workspaces = db.session.execute(
        select(Workspace)
        .where(Workspace.tenant_id == tenant.id)
        .order_by(Workspace.created_at.desc())
    ).scalars().all()
    return [w.to_dict() for w in workspaces]


def get_workspace(tenant_slug: str, workspace_id: str) -> dict:
    return resolve_workspace(tenant_slug, workspace_id).to_dict()


def update_workspace(tenant_slug: str, workspace_id: str, data: dict) -> dict:
    workspace = resolve_workspace(tenant_slug, workspace_id)
    name = _required_name(data)
    _check_unique_name(workspace.tenant_id, name, exclude_id=workspace.id)

    workspace.name = name
    if "description" in data:
        workspace.description = text_value(data, "description")
    db.session.commit()

    logger.info("Workspace updated", extra={"tenant_id": workspace.tenant_id, "workspace_id": workspace.id})
    return workspace.to_dict()


def delete_workspace(tenant_slug: str, workspace_id: str) -> dict:
    """Delete a workspace, its scans and everything recorded inside them."""
    workspace = resolve_workspace(tenant_slug, workspace_id)
    tenant_id = workspace.tenant_id
    scan_ids = list(db.session.execute(
        select(Scan.id).where(Scan.workspace_id == workspace.id)
    ).scalars())

    purge_scan_records(scan_ids)
    db.session.execute(delete(Scan).where(Scan.workspace_id == workspace.id))
    db.session.delete(workspace)
    db.session.commit()

    logger.info(
        "Workspace deleted",
        extra={"tenant_id": tenant_id, "workspace_id": workspace_id, "scans": len(scan_ids)},
    )
    return {"deleted": workspace_id, "scans_deleted": len(scan_ids)}
