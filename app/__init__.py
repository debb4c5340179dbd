"""
Process Scan Platform
Flask Application Factory.

Usage:
    from app import create_app
    app = create_app()           # defaults to "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

from flask import Flask, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_migrate import Migrate

from app.config import config
from app.models import db
from app.middleware.logging_config import configure_logging
from app.middleware.rate_limiter import init_rate_limits, tenant_rate_limit_key
from app.middleware.tenant_context import init_tenant_context
from app.middleware.timing import init_request_timing
from app.utils.errors import E, api_error

logger = logging.getLogger(__name__)

# ── SQLite FK enforcement (global engine event) ─────────────────────────
from sqlalchemy import event as _sa_event, engine as _sa_engine


@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    """Enable foreign key enforcement for SQLite connections."""
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


migrate = Migrate()
limiter = Limiter(
    key_func=tenant_rate_limit_key,
    default_limits=[],                     # limits are applied per blueprint
    storage_uri=os.getenv("REDIS_URL", "memory://"),
)

_MUTATING_METHODS = ("POST", "PUT", "PATCH")


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     One of: "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config[config_name])

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])
    else:
        CORS(app)

    # ── Request timing + tenant context ──────────────────────────────────
    init_request_timing(app)
    init_tenant_context(app)

    # ── Request guards (input length + Content-Type) ─────────────────────
    @app.before_request
    def _guard_request():
        if request.method not in _MUTATING_METHODS or not request.path.startswith("/api/"):
            return None
        max_len = app.config.get("MAX_CONTENT_LENGTH_BYTES")
        if max_len and request.content_length and request.content_length > max_len:
            return api_error(E.TOO_LARGE, "Request body too large")
        if request.content_length and not request.is_json:
            return api_error(E.UNSUPPORTED_MEDIA, "Content-Type must be application/json")
        return None

    # ── Import all models so Alembic can detect them ─────────────────────
    from app.models import ai as _ai_models                 # noqa: F401
    from app.models import lifecycle as _lifecycle_models   # noqa: F401
    from app.models import scan as _scan_models             # noqa: F401
    from app.models import tenant as _tenant_models         # noqa: F401

    # ── Auto-create tables (CREATE IF NOT EXISTS) ────────────────────────
    with app.app_context():
        try:
            db.create_all()
            app.logger.info("db.create_all() completed successfully")
        except Exception as e:
            app.logger.warning("db.create_all() failed: %s", e)

    # ── Blueprints ───────────────────────────────────────────────────────
    from app.blueprints.company_bp import company_bp
    from app.blueprints.document_bp import document_bp
    from app.blueprints.health_bp import health_bp
    from app.blueprints.lifecycle_bp import lifecycle_bp
    from app.blueprints.pain_point_bp import pain_point_bp
    from app.blueprints.tenant_bp import tenant_bp
    from app.blueprints.workspace_bp import workspace_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(tenant_bp)
    app.register_blueprint(workspace_bp)
    app.register_blueprint(document_bp)
    app.register_blueprint(company_bp)
    app.register_blueprint(lifecycle_bp)
    app.register_blueprint(pain_point_bp)

    # ── Error handlers ───────────────────────────────────────────────────
    @app.errorhandler(404)
    def not_found(e):
        return api_error(E.NOT_FOUND, "Not found", details={"path": request.path})

    @app.errorhandler(405)
    def method_not_allowed(e):
        return api_error(E.VALIDATION_INVALID, "Method not allowed", status=405)

    @app.errorhandler(429)
    def rate_limited(e):
        return api_error(
            E.VALIDATION_INVALID, "Too many requests",
            status=429, details={"retry_after": e.description},
        )

    @app.errorhandler(500)
    def server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        return api_error(E.INTERNAL, "Internal server error")

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    return app
