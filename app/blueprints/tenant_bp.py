"""
Tenant Blueprint.

Endpoints:
  Tenants:   GET/POST    /api/v1/tenants
             GET/PATCH   /api/v1/tenants/<slug>
  Users:     GET/POST    /api/v1/tenants/<slug>/users
             PATCH/DELETE /api/v1/tenants/<slug>/users/<user_id>
"""

import logging

from flask import Blueprint, jsonify

from app.blueprints import json_body, register_error_handlers
from app.services import tenant_service

logger = logging.getLogger(__name__)

tenant_bp = Blueprint("tenants", __name__, url_prefix="/api/v1/tenants")
register_error_handlers(tenant_bp)


@tenant_bp.route("", methods=["GET"])
def list_tenants():
    items = tenant_service.list_tenants()
    return jsonify({"items": items, "total": len(items)}), 200


@tenant_bp.route("", methods=["POST"])
def create_tenant():
    """Body: { "name": str, "description"?: str, "region"?: str }"""
    return jsonify(tenant_service.create_tenant(json_body())), 201


@tenant_bp.route("/<tenant_slug>", methods=["GET"])
def get_tenant(tenant_slug):
    return jsonify(tenant_service.get_tenant_by_slug(tenant_slug)), 200


@tenant_bp.route("/<tenant_slug>", methods=["PATCH"])
def update_tenant(tenant_slug):
    return jsonify(tenant_service.update_tenant(tenant_slug, json_body())), 200


# ── Users ────────────────────────────────────────────────────────────────────

@tenant_bp.route("/<tenant_slug>/users", methods=["GET"])
def list_users(tenant_slug):
    items = tenant_service.list_users(tenant_slug)
    return jsonify({"items": items, "total": len(items)}), 200


@tenant_bp.route("/<tenant_slug>/users", methods=["POST"])
def add_user(tenant_slug):
    """Body: { "email": str, "permission": "Read" | "Write", "added_by"?: str }"""
    return jsonify(tenant_service.add_user(tenant_slug, json_body())), 201


@tenant_bp.route("/<tenant_slug>/users/<user_id>", methods=["PATCH"])
def update_user(tenant_slug, user_id):
    """Body: { "permission": "Read" | "Write" }"""
    return jsonify(tenant_service.update_user_permission(tenant_slug, user_id, json_body())), 200


@tenant_bp.route("/<tenant_slug>/users/<user_id>", methods=["DELETE"])
def remove_user(tenant_slug, user_id):
    tenant_service.remove_user(tenant_slug, user_id)
    return jsonify({"deleted": user_id}), 200
