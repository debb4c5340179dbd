"""
TenantModel — Abstract base class for tenant-scoped models.

All models that need tenant isolation should inherit from TenantModel
instead of db.Model directly. This adds:
  - UUID string primary key
  - tenant_id FK column with index
  - created_at / updated_at audit columns

ScanScopedModel adds the workspace_id / scan_id pair carried by every
record that lives inside a scan.
"""

import uuid
from datetime import datetime, timezone

from app.models import db


def _uuid():
    """Generate a new UUID4 string for primary keys."""
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(timezone.utc)


def iso(value):
    """Render a datetime column for JSON responses."""
    return value.isoformat() if value else None


class TenantModel(db.Model):
    """Abstract base for tenant-scoped tables."""
    __abstract__ = True

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    tenant_id = db.Column(
        db.String(36),
        db.ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def _base_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
        }


class ScanScopedModel(TenantModel):
    """Abstract base for records that belong to a single scan."""
    __abstract__ = True

    workspace_id = db.Column(
        db.String(36),
        db.ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    scan_id = db.Column(
        db.String(36),
        db.ForeignKey("scans.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    def _base_dict(self) -> dict:
        data = super()._base_dict()
        data["workspace_id"] = self.workspace_id
        data["scan_id"] = self.scan_id
        return data
