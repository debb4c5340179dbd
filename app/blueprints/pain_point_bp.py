"""
Pain Point & Interview Blueprint.

Endpoints (prefix /api/v1/tenants/<tenant_slug>/workspaces/<workspace_id>/scans/<scan_id>):
  Summary:         GET/POST/DELETE  /lifecycles/<lifecycle_id>/pain-points
  Sync scores:     POST             /lifecycles/<lifecycle_id>/pain-points/sync-scores
  Extraction:      POST             /lifecycles/<lifecycle_id>/pain-points/extract
  Interview chat:  POST             /lifecycles/<lifecycle_id>/interview-chat
  Transcriptions:  GET/POST         /lifecycles/<lifecycle_id>/transcriptions   (GET = latest)
                   GET              /transcriptions
                   GET/DELETE       /transcriptions/<transcription_id>
"""

import logging

from flask import Blueprint, jsonify

from app.blueprints import SCAN_PREFIX, json_body, register_error_handlers
from app.services import pain_point_service

logger = logging.getLogger(__name__)

pain_point_bp = Blueprint("pain_points", __name__, url_prefix=SCAN_PREFIX)
register_error_handlers(pain_point_bp)


# ── Pain point summary ───────────────────────────────────────────────────────

@pain_point_bp.route("/lifecycles/<lifecycle_id>/pain-points", methods=["GET"])
def get_summary(tenant_slug, workspace_id, scan_id, lifecycle_id):
    return jsonify(pain_point_service.get_summary(tenant_slug, workspace_id, scan_id, lifecycle_id)), 200


@pain_point_bp.route("/lifecycles/<lifecycle_id>/pain-points", methods=["POST"])
def save_summary(tenant_slug, workspace_id, scan_id, lifecycle_id):
    """Body: { "pain_points": [...], "overallSummary"?: str, "summary"?: str }"""
    result = pain_point_service.save_summary(tenant_slug, workspace_id, scan_id, lifecycle_id, json_body())
    return jsonify(result), 200


@pain_point_bp.route("/lifecycles/<lifecycle_id>/pain-points", methods=["DELETE"])
def delete_summary(tenant_slug, workspace_id, scan_id, lifecycle_id):
    return jsonify(pain_point_service.delete_summary(tenant_slug, workspace_id, scan_id, lifecycle_id)), 200


@pain_point_bp.route("/lifecycles/<lifecycle_id>/pain-points/sync-scores", methods=["POST"])
def sync_scores(tenant_slug, workspace_id, scan_id, lifecycle_id):
    """Returns: { updated_groups: [names], lifecycle }"""
    return jsonify(pain_point_service.sync_scores(tenant_slug, workspace_id, scan_id, lifecycle_id)), 200


@pain_point_bp.route("/lifecycles/<lifecycle_id>/pain-points/extract", methods=["POST"])
def extract_pain_points(tenant_slug, workspace_id, scan_id, lifecycle_id):
    """Body: { "text": str }"""
    result = pain_point_service.extract_pain_points(
        tenant_slug, workspace_id, scan_id, lifecycle_id, json_body(),
    )
    return jsonify(result), 200


@pain_point_bp.route("/lifecycles/<lifecycle_id>/interview-chat", methods=["POST"])
def interview_chat(tenant_slug, workspace_id, scan_id, lifecycle_id):
    """Body: { "query": str, "conversation_history"?, "lifecycle_context"?, "active_modes"? }

    Returns: { message, query }
    """
    result = pain_point_service.interview_chat(tenant_slug, workspace_id, scan_id, lifecycle_id, json_body())
    return jsonify(result), 200


# ── Transcriptions ───────────────────────────────────────────────────────────

@pain_point_bp.route("/lifecycles/<lifecycle_id>/transcriptions", methods=["GET"])
def get_latest_transcription(tenant_slug, workspace_id, scan_id, lifecycle_id):
    result = pain_point_service.get_latest_transcription(tenant_slug, workspace_id, scan_id, lifecycle_id)
    return jsonify(result), 200


@pain_point_bp.route("/lifecycles/<lifecycle_id>/transcriptions", methods=["POST"])
def create_transcription(tenant_slug, workspace_id, scan_id, lifecycle_id):
    """Body: { "transcription": str, "transcript_name"?: str, "journey_ref"?: str }

    Returns 200 with duplicate=true when the same text was already stored, else 201.
    """
    result = pain_point_service.create_transcription(
        tenant_slug, workspace_id, scan_id, lifecycle_id, json_body(),
    )
    return jsonify(result), 200 if result["duplicate"] else 201


@pain_point_bp.route("/transcriptions", methods=["GET"])
def list_scan_transcriptions(tenant_slug, workspace_id, scan_id):
    items = pain_point_service.list_scan_transcriptions(tenant_slug, workspace_id, scan_id)
    return jsonify({"items": items, "total": len(items)}), 200


@pain_point_bp.route("/transcriptions/<transcription_id>", methods=["GET"])
def get_transcription(tenant_slug, workspace_id, scan_id, transcription_id):
    result = pain_point_service.get_transcription(tenant_slug, workspace_id, scan_id, transcription_id)
    return jsonify(result), 200


@pain_point_bp.route("/transcriptions/<transcription_id>", methods=["DELETE"])
def delete_transcription(tenant_slug, workspace_id, scan_id, transcription_id):
    result = pain_point_service.delete_transcription(tenant_slug, workspace_id, scan_id, transcription_id)
    return jsonify(result), 200
