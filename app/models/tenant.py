"""
Process Scan Platform
Tenant domain models.

Models:
    - Tenant: customer organisation, addressed by slug in every URL
    - TenantUser: email membership with Read / Write permission
    - Workspace: grouping of scans inside a tenant
"""

from app.models import db
from app.models.base import TenantModel, _utcnow, _uuid, iso

TENANT_PERMISSIONS = {"Read", "Write"}


# ═══════════════════════════════════════════════════════════════
# 1. TENANTS
# ═══════════════════════════════════════════════════════════════
class Tenant(db.Model):
    """Top-level partition. ``id`` doubles as the tenant_id of every child row."""

    __tablename__ = "tenants"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    name = db.Column(db.String(200), nullable=False)
    slug = db.Column(db.String(100), unique=True, nullable=False)
    description = db.Column(db.Text, default="")
    region = db.Column(db.String(50), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    users = db.relationship(
        "TenantUser", backref="tenant", lazy="dynamic",
        cascade="all, delete-orphan", passive_deletes=True,
    )
    workspaces = db.relationship(
        "Workspace", backref="tenant", lazy="dynamic",
        cascade="all, delete-orphan", passive_deletes=True,
    )

    def to_dict(self):
        return {
            "id": self.id,
            "tenant_id": self.id,
            "name": self.name,
            "slug": self.slug,
            "description": self.description or "",
            "region": self.region,
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
        }


# ═══════════════════════════════════════════════════════════════
# 2. TENANT USERS
# ═══════════════════════════════════════════════════════════════
class TenantUser(TenantModel):
    __tablename__ = "tenant_users"

    email = db.Column(db.String(200), nullable=False)
    permission = db.Column(db.String(10), nullable=False, default="Read")
    added_by = db.Column(db.String(200), nullable=True)

    __table_args__ = (
        db.UniqueConstraint("tenant_id", "email", name="uq_tenant_user_email"),
    )

    def to_dict(self):
        data = self._base_dict()
        data.update({
            "email": self.email,
            "permission": self.permission,
            "added_by": self.added_by,
            "added_at": iso(self.created_at),
        })
        return data


# ═══════════════════════════════════════════════════════════════
# 3. WORKSPACES
# ═══════════════════════════════════════════════════════════════
class Workspace(TenantModel):
    __tablename__ = "workspaces"

    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, default="")

    scans = db.relationship(
        "Scan", backref="workspace", lazy="dynamic",
        cascade="all, delete-orphan", passive_deletes=True,
    )

    def to_dict(self):
        data = self._base_dict()
        data.update({
            "tenant_slug": self.tenant.slug if self.tenant else None,
            "name": self.name,
            "description": self.description or "",
        })
        return data
