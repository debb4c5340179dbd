"""
Tenant Service.

Functions:
    - create_tenant:           Create a tenant, slug derived from the name
    - list_tenants:            All tenants ordered by name
    - get_tenant_by_slug:      Case-insensitive slug lookup
    - update_tenant:           Patch name / description / region
    - list_users:              Tenant users ordered by email
    - add_user:                Add a user by email with Read / Write permission
    - update_user_permission:  Change a user's permission
    - remove_user:             Remove a user from the tenant
"""

import logging

from email_validator import EmailNotValidError, validate_email
from sqlalchemy import func, select

from app.core.exceptions import ConflictError, ValidationError
from app.models import db
from app.models.tenant import TENANT_PERMISSIONS, Tenant, TenantUser
from app.services.helpers.scoped_queries import get_scoped, resolve_tenant
from app.utils.helpers import slugify, text_value

logger = logging.getLogger(__name__)


def _slug_taken(slug: str, exclude_id: str | None = None) -> bool:
    stmt = select(Tenant.id).where(func.lower(Tenant.slug) == slug.lower())
    if exclude_id:
        stmt = stmt.where(Tenant.id != exclude_id)
    return db.session.execute(stmt).first() is not None


# ── Tenants ──────────────────────────────────────────────────────────────────

def create_tenant(data: dict) -> dict:
    """Create a tenant. The slug is the slugified name and must be unique."""
    name = text_value(data, "name")
    if not name:
        raise ValidationError("name is required", details={"name": "required"})

    slug = slugify(name)
    if not slug:
        raise ValidationError("name must contain letters or digits", details={"name": "invalid"})
    if _slug_taken(slug):
        raise ConflictError(resource="Tenant", field="slug", value=slug)

    tenant = Tenant(
        name=name,
        slug=slug,
        description=text_value(data, "description"),
        region=text_value(data, "region") or None,
    )
    db.session.add(tenant)
    db.session.commit()

    logger.info("Tenant created", extra={"tenant_id": tenant.id, "slug": slug})
    return tenant.to_dict()


def list_tenants() -> list[dict]:
    tenants = db.session.execute(select(Tenant).order_by(Tenant.name)).scalars().all()
    return [t.to_dict() for t in tenants]


def get_tenant_by_slug(slug: str) -> dict:
    return resolve_tenant(slug).to_dict()


def update_tenant(slug: str, data: dict) -> dict:
    """PATCH semantics: only keys present in ``data`` are changed."""
    tenant = resolve_tenant(slug)

    if "name" in data:
        name = text_value(data, "name")
        if not name:
            raise ValidationError("name cannot be empty", details={"name": "required"})
        tenant.name = name
    if "description" in data:
        tenant.description = text_value(data, "description")
    if "region" in data:
        tenant.region = text_value(data, "region") or None

    db.session.commit()
    logger.info("Tenant updated", extra={"tenant_id": tenant.id})
    return tenant.to_dict()


# ── Tenant users ─────────────────────────────────────────────────────────────

def _normalise_email(raw) -> str:
    if not isinstance(raw, str) or not raw.strip():
        raise ValidationError("email is required", details={"email": "required"})
    try:
        return validate_email(raw.strip(), check_deliverability=False).normalized.lower()
    except EmailNotValidError as exc:
        raise ValidationError(f"Invalid email: {exc}", details={"email": "invalid"})


def _permission(raw) -> str:
    if not isinstance(raw, str) or raw not in TENANT_PERMISSIONS:
        raise ValidationError(
            "permission must be Read or Write",
            details={"permission": sorted(TENANT_PERMISSIONS)},
        )
    return raw


def list_users(slug: str) -> list[dict]:
    tenant = resolve_tenant(slug)
    users = db.session.execute(
        select(TenantUser).where(TenantUser.tenant_id == tenant.id).order_by(TenantUser.email)
    ).scalars().all()
    return [u.to_dict() for u in users]


def add_user(slug: str, data: dict) -> dict:
    tenant = resolve_tenant(slug)
    email = _normalise_email(data.get("email"))
    permission = _permission(data.get("permission", "Read"))

    duplicate = db.session.execute(
        select(TenantUser.id).where(TenantUser.tenant_id == tenant.id, TenantUser.email == email)
    ).first()
    if duplicate:
        raise ConflictError(resource="TenantUser", field="email", value=email)

    user = TenantUser(
        tenant_id=tenant.id,
        email=email,
        permission=permission,
        added_by=text_value(data, "added_by") or None,
    )
    db.session.add(user)
    db.session.commit()

    logger.info("Tenant user added", extra={"tenant_id": tenant.id, "permission": permission})
    return user.to_dict()


def update_user_permission(slug: str, user_id: str, data: dict) -> dict:
    tenant = resolve_tenant(slug)
    user = get_scoped(TenantUser, user_id, tenant_id=tenant.id)
    user.permission = _permission(data.get("permission"))
    db.session.commit()

    logger.info("Tenant user permission updated", extra={"tenant_id": tenant.id, "user_id": user.id})
    return user.to_dict()


def remove_user(slug: str, user_id: str) -> None:
    tenant = resolve_tenant(slug)
    user = get_scoped(TenantUser, user_id, tenant_id=tenant.id)
    db.session.delete(user)
    db.session.commit()
    logger.info("Tenant user removed", extra={"tenant_id": tenant.id, "user_id": user_id})
