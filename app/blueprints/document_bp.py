"""
Document Blueprint.

Endpoints (prefix /api/v1/tenants/<tenant_slug>/workspaces/<workspace_id>/scans/<scan_id>):
  Documents:            GET/POST     /documents            (?document_type=)
                        GET/DELETE   /documents/<document_id>
  Summary:              POST         /documents/<document_id>/summary
  Summarization prompt: POST         /documents/summarization-prompt
  Document chat:        POST         /chat
"""

import logging

from flask import Blueprint, jsonify, request

from app.blueprints import SCAN_PREFIX, json_body, register_error_handlers
from app.services import document_service

logger = logging.getLogger(__name__)

document_bp = Blueprint("documents", __name__, url_prefix=SCAN_PREFIX)
register_error_handlers(document_bp)


@document_bp.route("/documents", methods=["GET"])
def list_documents(tenant_slug, workspace_id, scan_id):
    items = document_service.list_documents(
        tenant_slug, workspace_id, scan_id,
        document_type=request.args.get("document_type"),
    )
    return jsonify({"items": items, "total": len(items)}), 200


@document_bp.route("/documents", methods=["POST"])
def ingest_document(tenant_slug, workspace_id, scan_id):
    """Ingest extracted document text.

    Body: { "document_type" | "document_id", "file_name"?, "content": str, "content_type"? }
    Returns: document dict + chunk count (201).
    """
    result = document_service.ingest_document(tenant_slug, workspace_id, scan_id, json_body())
    return jsonify(result), 201


@document_bp.route("/documents/summarization-prompt", methods=["POST"])
def update_summarization_prompt(tenant_slug, workspace_id, scan_id):
    """Body: { "prompt": str, "document_id"? | "document_type"? }"""
    result = document_service.update_summarization_prompt(tenant_slug, workspace_id, scan_id, json_body())
    return jsonify(result), 200


@document_bp.route("/documents/<document_id>", methods=["GET"])
def get_document(tenant_slug, workspace_id, scan_id, document_id):
    return jsonify(document_service.get_document(tenant_slug, workspace_id, scan_id, document_id)), 200


@document_bp.route("/documents/<document_id>", methods=["DELETE"])
def reset_document(tenant_slug, workspace_id, scan_id, document_id):
    """Remove the document's content; the record goes back to a placeholder."""
    return jsonify(document_service.reset_document(tenant_slug, workspace_id, scan_id, document_id)), 200


@document_bp.route("/documents/<document_id>/summary", methods=["POST"])
def update_summary(tenant_slug, workspace_id, scan_id, document_id):
    """Body: { "summary": str }"""
    result = document_service.update_summary(tenant_slug, workspace_id, scan_id, document_id, json_body())
    return jsonify(result), 200


@document_bp.route("/chat", methods=["POST"])
def chat_with_documents(tenant_slug, workspace_id, scan_id):
    """Answer a question from the scan's documents.

    Body: { "query": str, "conversation_history"?: [...], "document_status"?: str,
            "company_info"?: {...} }
    Returns: { message, results: [{text, score}], query }
    """
    result = document_service.chat_with_documents(tenant_slug, workspace_id, scan_id, json_body())
    return jsonify(result), 200
