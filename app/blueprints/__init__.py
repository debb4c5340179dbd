"""
Process Scan Platform
Blueprint registry.

Every domain blueprint shares the same exception → HTTP mapping:

    NotFoundError    → 404
    ValidationError  → 400
    ConflictError    → 409
    AIResponseError  → 500
    anything else    → 500 (logged with traceback)
"""

import logging

from flask import request
from werkzeug.exceptions import HTTPException

from app.core.exceptions import AIResponseError, ConflictError, NotFoundError, ValidationError
from app.models import db
from app.utils.errors import E, api_error

logger = logging.getLogger(__name__)

SCAN_PREFIX = "/api/v1/tenants/<tenant_slug>/workspaces/<workspace_id>/scans/<scan_id>"


def json_body() -> dict:
    """Request JSON as a dict; anything else becomes ``{}``."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def register_error_handlers(bp):
    """Attach the shared service-exception handlers to ``bp``."""

    @bp.errorhandler(NotFoundError)
    def _handle_not_found(error: NotFoundError):
        return api_error(E.NOT_FOUND, str(error))

    @bp.errorhandler(ValidationError)
    def _handle_validation(error: ValidationError):
        code = E.VALIDATION_REQUIRED if "required" in str(error) else E.VALIDATION_INVALID
        return api_error(code, str(error), details=error.details)

    @bp.errorhandler(ConflictError)
    def _handle_conflict(error: ConflictError):
        return api_error(E.CONFLICT_DUPLICATE, str(error), details={"field": error.field})

    @bp.errorhandler(AIResponseError)
    def _handle_ai_response(error: AIResponseError):
        logger.error("AI response error endpoint=%s: %s", request.endpoint, error)
        return api_error(E.AI_RESPONSE, str(error))

    @bp.errorhandler(Exception)
    def _handle_unexpected(error: Exception):
        if isinstance(error, HTTPException):
            return error
        db.session.rollback()
        logger.exception("Unexpected error in %s endpoint=%s", bp.name, request.endpoint)
        return api_error(E.INTERNAL, "Internal server error")

    return bp
