"""
Tenant context middleware.

Every scoped route starts with ``/api/v1/tenants/<tenant_slug>/``.  This hook
resolves the slug once per request and stores the result on ``g`` so logs and
services can read ``g.tenant`` / ``g.tenant_id`` without another lookup.

The hook never rejects a request.  An unknown slug leaves ``g.tenant`` as
None and the service layer raises NotFoundError, which the blueprint maps
to 404.
"""

import logging

from flask import g, request
from sqlalchemy import func, select

from app.models import db
from app.models.tenant import Tenant

logger = logging.getLogger(__name__)


def init_tenant_context(app):
    """Register tenant context middleware as a before_request hook."""

    @app.before_request
    def _tenant_context():
        g.tenant = None
        g.tenant_id = None

        if not request.path.startswith("/api/v1/tenants/"):
            return None

        slug = (request.view_args or {}).get("tenant_slug")
        if not slug:
            return None

        tenant = db.session.execute(
            select(Tenant).where(func.lower(Tenant.slug) == slug.lower())
        ).scalar_one_or_none()
        if tenant is None:
            logger.debug("Tenant slug %r not found", slug)
            return None

        g.tenant = tenant
        g.tenant_id = tenant.id
        return None

    logger.info("Tenant context middleware installed")
