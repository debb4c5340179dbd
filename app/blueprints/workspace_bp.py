"""
Workspace & Scan Blueprint.

Endpoints (prefix /api/v1/tenants/<tenant_slug>/workspaces):
  Workspaces:         GET/POST                ""
                      GET/PATCH/DELETE        /<workspace_id>
  Scans:              GET/POST                /<workspace_id>/scans
                      GET/PATCH/DELETE        /<workspace_id>/scans/<scan_id>
  Scenario planning:  GET/PUT                 /<workspace_id>/scans/<scan_id>/scenario-planning
"""

import logging

from flask import Blueprint, jsonify

from app.blueprints import json_body, register_error_handlers
from app.services import scan_service, workspace_service

logger = logging.getLogger(__name__)

workspace_bp = Blueprint(
    "workspaces", __name__, url_prefix="/api/v1/tenants/<tenant_slug>/workspaces",
)
register_error_handlers(workspace_bp)


# ═════════════════════════════════════════════════════════════════════════════
# Workspaces
# ═════════════════════════════════════════════════════════════════════════════

@workspace_bp.route("", methods=["GET"])
def list_workspaces(tenant_slug):
    items = workspace_service.list_workspaces(tenant_slug)
    return jsonify({"items": items, "total": len(items)}), 200


@workspace_bp.route("", methods=["POST"])
def create_workspace(tenant_slug):
    """Body: { "name": str, "description"?: str }"""
    return jsonify(workspace_service.create_workspace(tenant_slug, json_body())), 201


@workspace_bp.route("/<workspace_id>", methods=["GET"])
def get_workspace(tenant_slug, workspace_id):
    return jsonify(workspace_service.get_workspace(tenant_slug, workspace_id)), 200


@workspace_bp.route("/<workspace_id>", methods=["PATCH"])
def update_workspace(tenant_slug, workspace_id):
    return jsonify(workspace_service.update_workspace(tenant_slug, workspace_id, json_body())), 200


@workspace_bp.route("/<workspace_id>", methods=["DELETE"])
def delete_workspace(tenant_slug, workspace_id):
    return jsonify(workspace_service.delete_workspace(tenant_slug, workspace_id)), 200


# ═════════════════════════════════════════════════════════════════════════════
# Scans
# ═════════════════════════════════════════════════════════════════════════════

@workspace_bp.route("/<workspace_id>/scans", methods=["GET"])
def list_scans(tenant_slug, workspace_id):
    items = scan_service.list_scans(tenant_slug, workspace_id)
    return jsonify({"items": items, "total": len(items)}), 200


@workspace_bp.route("/<workspace_id>/scans", methods=["POST"])
def create_scan(tenant_slug, workspace_id):
    """Create a scan with its placeholder documents and default company info.

    Body: { "name": str, "description"?, "status"?, "website"?, "country"?, "industry"? }
    Returns: scan dict + placeholder_documents count (201).
    """
    return jsonify(scan_service.create_scan(tenant_slug, workspace_id, json_body())), 201


@workspace_bp.route("/<workspace_id>/scans/<scan_id>", methods=["GET"])
def get_scan(tenant_slug, workspace_id, scan_id):
    return jsonify(scan_service.get_scan(tenant_slug, workspace_id, scan_id)), 200


@workspace_bp.route("/<workspace_id>/scans/<scan_id>", methods=["PATCH"])
def update_scan(tenant_slug, workspace_id, scan_id):
    return jsonify(scan_service.update_scan(tenant_slug, workspace_id, scan_id, json_body())), 200


@workspace_bp.route("/<workspace_id>/scans/<scan_id>", methods=["DELETE"])
def delete_scan(tenant_slug, workspace_id, scan_id):
    return jsonify(scan_service.delete_scan(tenant_slug, workspace_id, scan_id)), 200


@workspace_bp.route("/<workspace_id>/scans/<scan_id>/scenario-planning", methods=["GET"])
def get_scenario_planning(tenant_slug, workspace_id, scan_id):
    return jsonify(scan_service.get_scenario_planning(tenant_slug, workspace_id, scan_id)), 200


@workspace_bp.route("/<workspace_id>/scans/<scan_id>/scenario-planning", methods=["PUT"])
def save_scenario_planning(tenant_slug, workspace_id, scan_id):
    """Body: { "scenarios": list, "notes"?: str }"""
    result = scan_service.save_scenario_planning(tenant_slug, workspace_id, scan_id, json_body())
    return jsonify(result), 200
