"""
Lifecycle Blueprint.

Endpoints (prefix /api/v1/tenants/<tenant_slug>/workspaces/<workspace_id>/scans/<scan_id>):
  Lifecycles:          GET/POST/PATCH     /lifecycles           (PATCH = reorder)
                       POST               /lifecycles/generate
                       GET/PUT/DELETE     /lifecycles/<lifecycle_id>
  Process tree:        POST               /lifecycles/<lifecycle_id>/actions
                       POST               /lifecycles/<lifecycle_id>/generate-processes
                       GET                /lifecycles/<lifecycle_id>/process-groups
  Costs:               GET                /lifecycle-costs
                       PUT                /lifecycles/<lifecycle_id>/costs
"""

import logging

from flask import Blueprint, jsonify, request

from app.blueprints import SCAN_PREFIX, json_body, register_error_handlers
from app.services import lifecycle_service

logger = logging.getLogger(__name__)

lifecycle_bp = Blueprint("lifecycles", __name__, url_prefix=SCAN_PREFIX)
register_error_handlers(lifecycle_bp)


# ═════════════════════════════════════════════════════════════════════════════
# Lifecycles
# ═════════════════════════════════════════════════════════════════════════════

@lifecycle_bp.route("/lifecycles", methods=["GET"])
def list_lifecycles(tenant_slug, workspace_id, scan_id):
    items = lifecycle_service.list_lifecycles(tenant_slug, workspace_id, scan_id)
    return jsonify({"items": items, "total": len(items)}), 200


@lifecycle_bp.route("/lifecycles", methods=["POST"])
def create_lifecycle(tenant_slug, workspace_id, scan_id):
    """Body: { "name": str, "description"?: str }"""
    return jsonify(lifecycle_service.create_lifecycle(tenant_slug, workspace_id, scan_id, json_body())), 201


@lifecycle_bp.route("/lifecycles", methods=["PATCH"])
def reorder_lifecycles(tenant_slug, workspace_id, scan_id):
    """Body: [{id, position}] or { "lifecycles": [{id, position}] }

    Returns: { updated: [ids] }
    """
    data = request.get_json(silent=True)
    items = data.get("lifecycles") if isinstance(data, dict) else data
    return jsonify(lifecycle_service.reorder_lifecycles(tenant_slug, workspace_id, scan_id, items)), 200


@lifecycle_bp.route("/lifecycles/generate", methods=["POST"])
def generate_lifecycles(tenant_slug, workspace_id, scan_id):
    """Replace the scan's lifecycles with ones generated from the document summaries."""
    items = lifecycle_service.generate_lifecycles(tenant_slug, workspace_id, scan_id)
    return jsonify({"lifecycles": items, "total": len(items)}), 201


@lifecycle_bp.route("/lifecycles/<lifecycle_id>", methods=["GET"])
def get_lifecycle(tenant_slug, workspace_id, scan_id, lifecycle_id):
    return jsonify(lifecycle_service.get_lifecycle(tenant_slug, workspace_id, scan_id, lifecycle_id)), 200


@lifecycle_bp.route("/lifecycles/<lifecycle_id>", methods=["PUT"])
def update_lifecycle(tenant_slug, workspace_id, scan_id, lifecycle_id):
    """Body: { "name": str, "description"?: str }"""
    result = lifecycle_service.update_lifecycle(tenant_slug, workspace_id, scan_id, lifecycle_id, json_body())
    return jsonify(result), 200


@lifecycle_bp.route("/lifecycles/<lifecycle_id>", methods=["DELETE"])
def delete_lifecycle(tenant_slug, workspace_id, scan_id, lifecycle_id):
    return jsonify(lifecycle_service.delete_lifecycle(tenant_slug, workspace_id, scan_id, lifecycle_id)), 200


# ═════════════════════════════════════════════════════════════════════════════
# Process tree
# ═════════════════════════════════════════════════════════════════════════════

@lifecycle_bp.route("/lifecycles/<lifecycle_id>/actions", methods=["POST"])
def apply_action(tenant_slug, workspace_id, scan_id, lifecycle_id):
    """Process tree editor.

    Body: { "action": "update_score" | "create_category" | "update_category" |
                      "delete_category" | "create_group" | "update_group" |
                      "delete_group" | "reorder_group", ...action fields }
    Returns: updated lifecycle.
    """
    result = lifecycle_service.apply_action(tenant_slug, workspace_id, scan_id, lifecycle_id, json_body())
    return jsonify(result), 200


@lifecycle_bp.route("/lifecycles/<lifecycle_id>/generate-processes", methods=["POST"])
def generate_processes(tenant_slug, workspace_id, scan_id, lifecycle_id):
    result = lifecycle_service.generate_processes(tenant_slug, workspace_id, scan_id, lifecycle_id)
    return jsonify(result), 200


@lifecycle_bp.route("/lifecycles/<lifecycle_id>/process-groups", methods=["GET"])
def list_process_groups(tenant_slug, workspace_id, scan_id, lifecycle_id):
    result = lifecycle_service.list_process_groups(tenant_slug, workspace_id, scan_id, lifecycle_id)
    return jsonify(result), 200


# ═════════════════════════════════════════════════════════════════════════════
# Costs
# ═════════════════════════════════════════════════════════════════════════════

@lifecycle_bp.route("/lifecycle-costs", methods=["GET"])
def get_lifecycle_costs(tenant_slug, workspace_id, scan_id):
    items = lifecycle_service.get_lifecycle_costs(tenant_slug, workspace_id, scan_id)
    return jsonify({"lifecycles": items}), 200


@lifecycle_bp.route("/lifecycles/<lifecycle_id>/costs", methods=["PUT"])
def update_lifecycle_costs(tenant_slug, workspace_id, scan_id, lifecycle_id):
    """Body: { "cost_to_serve"?: number, "industry_benchmark"?: number }"""
    result = lifecycle_service.update_lifecycle_costs(
        tenant_slug, workspace_id, scan_id, lifecycle_id, json_body(),
    )
    return jsonify(result), 200
