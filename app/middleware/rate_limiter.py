"""
Rate limiting configuration.

Applies per-blueprint rate limits using Flask-Limiter.
The Limiter instance is created in app/__init__.py with no default limits;
this module applies granular limits per route category.

Usage:
    from app.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

from flask import g, request as flask_request

logger = logging.getLogger(__name__)

# Routes that call the LLM, keyed by endpoint suffix
AI_ENDPOINT_SUFFIXES = (
    "chat_with_documents",
    "research_company",
    "generate_objectives",
    "generate_scoring_criteria",
    "generate_lifecycles",
    "generate_processes",
    "extract_pain_points",
    "interview_chat",
)


def tenant_rate_limit_key():
    """Rate limit key: tenant_id if resolved, else remote IP."""
    tenant_id = getattr(g, "tenant_id", None)
    if tenant_id:
        return f"tenant:{tenant_id}"
    return flask_request.remote_addr or "unknown"


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints.

    Limits (per tenant, falling back to remote IP):
        - AI endpoints:     10/minute  (LLM calls are expensive)
        - Domain blueprints: 120/minute
        - Health check:     exempt

    Rate limiting is disabled in testing mode.
    """

    if app.config.get("TESTING"):
        app.logger.info("Rate limiter disabled (TESTING=True)")
        return

    for endpoint, view in list(app.view_functions.items()):
        if endpoint.endswith(AI_ENDPOINT_SUFFIXES):
            app.view_functions[endpoint] = limiter.limit(
                "10/minute", key_func=tenant_rate_limit_key
            )(view)

    for bp_name in ("tenants", "workspaces", "documents", "company",
                    "lifecycles", "pain_points"):
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit("120/minute", key_func=tenant_rate_limit_key)(bp)

    bp = app.blueprints.get("health_bp")
    if bp:
        limiter.exempt(bp)

    app.logger.info("Rate limiter configured: AI 10/min, domain 120/min")
