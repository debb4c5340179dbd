"""
Company Information & Strategic Objectives Blueprint.

Endpoints (prefix /api/v1/tenants/<tenant_slug>/workspaces/<workspace_id>/scans/<scan_id>):
  Company info:          GET/POST/PATCH/DELETE  /company-info
  Company research:      POST                   /company-research
  Strategic objectives:  GET/PUT                /strategic-objectives
                         POST                   /strategic-objectives/generate
  Scoring criteria:      POST                   /scoring-criteria
"""

import logging

from flask import Blueprint, jsonify

from app.blueprints import SCAN_PREFIX, json_body, register_error_handlers
from app.services import company_service

logger = logging.getLogger(__name__)

company_bp = Blueprint("company", __name__, url_prefix=SCAN_PREFIX)
register_error_handlers(company_bp)


# ── Company info ─────────────────────────────────────────────────────────────

@company_bp.route("/company-info", methods=["GET"])
def get_company_info(tenant_slug, workspace_id, scan_id):
    return jsonify(company_service.get_company_info(tenant_slug, workspace_id, scan_id)), 200


@company_bp.route("/company-info", methods=["POST"])
def create_company_info(tenant_slug, workspace_id, scan_id):
    """Body: { "name": str, "website"?, "country"?, "industry"?, "description"? }"""
    result = company_service.create_company_info(tenant_slug, workspace_id, scan_id, json_body())
    return jsonify(result), 201


@company_bp.route("/company-info", methods=["PATCH"])
def update_company_info(tenant_slug, workspace_id, scan_id):
    result = company_service.update_company_info(tenant_slug, workspace_id, scan_id, json_body())
    return jsonify(result), 200


@company_bp.route("/company-info", methods=["DELETE"])
def delete_company_info(tenant_slug, workspace_id, scan_id):
    return jsonify(company_service.delete_company_info(tenant_slug, workspace_id, scan_id)), 200


@company_bp.route("/company-research", methods=["POST"])
def research_company(tenant_slug, workspace_id, scan_id):
    """Generate the markdown company profile. Returns the updated company info."""
    return jsonify(company_service.research_company(tenant_slug, workspace_id, scan_id)), 200


# ── Strategic objectives ─────────────────────────────────────────────────────

@company_bp.route("/strategic-objectives", methods=["GET"])
def get_objectives(tenant_slug, workspace_id, scan_id):
    objectives = company_service.get_objectives(tenant_slug, workspace_id, scan_id)
    return jsonify({"objectives": objectives}), 200


@company_bp.route("/strategic-objectives", methods=["PUT"])
def put_objectives(tenant_slug, workspace_id, scan_id):
    """Body: { "objectives": [{name, description?, status?, scoring_criteria?}] }"""
    objectives = company_service.put_objectives(tenant_slug, workspace_id, scan_id, json_body())
    return jsonify({"objectives": objectives}), 200


@company_bp.route("/strategic-objectives/generate", methods=["POST"])
def generate_objectives(tenant_slug, workspace_id, scan_id):
    objectives = company_service.generate_objectives(tenant_slug, workspace_id, scan_id)
    return jsonify({"objectives": objectives}), 200


@company_bp.route("/scoring-criteria", methods=["POST"])
def generate_scoring_criteria(tenant_slug, workspace_id, scan_id):
    """Body: { "objective_name": str, "objective_description": str }

    Returns: { scoring_criteria: {low, medium, high} }
    """
    result = company_service.generate_scoring_criteria(tenant_slug, workspace_id, scan_id, json_body())
    return jsonify(result), 200
