"""
Scope-checked lookups for tenant / workspace / scan / lifecycle records.

Every get-by-id in the platform goes through these helpers instead of
db.session.get(Model, pk). A record that exists but lives in another
tenant, workspace or scan is reported exactly like a missing one.

Usage:
    # Scope by tenant_id (workspaces, tenant users)
    ws = get_scoped(Workspace, workspace_id, tenant_id=tenant.id)

    # Scope by scan_id (documents, lifecycles, transcriptions)
    lc = get_scoped(Lifecycle, lifecycle_id, scan_id=scan.id)

    # Walk the URL hierarchy in one call
    scan = resolve_scan(tenant_slug, workspace_id, scan_id)

Scope field resolution:
    Each keyword argument maps directly to a column name on the model.
    If the model does not have that column, a ValueError is raised at
    call time so the bug surfaces during development.
"""

import logging

from sqlalchemy import func, select

from app.core.exceptions import NotFoundError
from app.models import db
from app.models.lifecycle import Lifecycle
from app.models.scan import Scan
from app.models.tenant import Tenant, Workspace

logger = logging.getLogger(__name__)

_SCOPE_KWARGS = ("tenant_id", "workspace_id", "scan_id", "lifecycle_id")


def get_scoped(
    model,
    pk: str,
    *,
    tenant_id: str | None = None,
    workspace_id: str | None = None,
    scan_id: str | None = None,
    lifecycle_id: str | None = None,
):
    """Fetch a single entity by PK with a mandatory scope filter.

    Raises:
        ValueError: If no scope is given, or a scope names a column the
                    model does not have.
        NotFoundError: If the entity does not exist OR belongs to a
                       different scope.
    """
    provided = {
        "tenant_id": tenant_id,
        "workspace_id": workspace_id,
        "scan_id": scan_id,
        "lifecycle_id": lifecycle_id,
    }
    provided = {k: v for k, v in provided.items() if v is not None}

    if not provided:
        raise ValueError(
            f"{model.__name__} id={pk} requires at least one scope filter "
            f"({', '.join(_SCOPE_KWARGS)})."
        )

    missing = sorted(field for field in provided if not hasattr(model, field))
    if missing:
        raise ValueError(f"{model.__name__} has no scope column(s) {missing}")

    stmt = select(model).where(model.id == pk)
    for field, value in provided.items():
        stmt = stmt.where(getattr(model, field) == value)

    result = db.session.execute(stmt).scalar_one_or_none()
    if result is None:
        logger.debug("get_scoped: %s id=%s not found in scope %s", model.__name__, pk, provided)
        raise NotFoundError(resource=model.__name__, resource_id=pk)
    return result


# ── URL hierarchy ────────────────────────────────────────────────────────────

def resolve_tenant(tenant_slug: str) -> Tenant:
    """Case-insensitive slug lookup."""
    tenant = db.session.execute(
        select(Tenant).where(func.lower(Tenant.slug) == (tenant_slug or "").lower())
    ).scalar_one_or_none()
    if tenant is None:
        raise NotFoundError(resource="Tenant", resource_id=tenant_slug)
    return tenant


def resolve_workspace(tenant_slug: str, workspace_id: str) -> Workspace:
    tenant = resolve_tenant(tenant_slug)
    return get_scoped(Workspace, workspace_id, tenant_id=tenant.id)


def resolve_scan(tenant_slug: str, workspace_id: str, scan_id: str) -> Scan:
    workspace = resolve_workspace(tenant_slug, workspace_id)
    return get_scoped(Scan, scan_id, tenant_id=workspace.tenant_id, workspace_id=workspace.id)


def resolve_lifecycle(tenant_slug: str, workspace_id: str, scan_id: str, lifecycle_id: str) -> Lifecycle:
    scan = resolve_scan(tenant_slug, workspace_id, scan_id)
    return get_scoped(Lifecycle, lifecycle_id, scan_id=scan.id)
