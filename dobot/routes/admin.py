"""Admin utilities for inspecting the store and managing the catalog cache."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from dobot import database
from dobot.errors import InputValidationError
from dobot.services import catalog_service, store_service
from dobot.utils.auth import require_admin

bp = Blueprint("admin", __name__, url_prefix="/api/admin")


@bp.get("/stats")
def get_stats():
    """Get live record counts per store namespace."""
    error_response = require_admin()
    if error_response:
        return error_response

    try:
        counts = store_service.count_by_namespace()
    except Exception as e:
        current_app.logger.exception("Failed to collect store stats")
        return jsonify(error=str(e)), 500

    stats = {
        "backend": "mongodb" if database.mongo_enabled() else "memory",
        "credentials": counts.get(store_service.CREDENTIAL_NAMESPACE, 0),
        "sessions": counts.get(store_service.SESSION_NAMESPACE, 0),
        "callback_tokens": counts.get(store_service.TOKEN_NAMESPACE, 0),
        "pending_confirmations": counts.get(store_service.PENDING_NAMESPACE, 0),
        "cached_catalogs": counts.get(store_service.CACHE_NAMESPACE, 0),
    }
    return jsonify(stats), 200


@bp.post("/cache/invalidate")
def invalidate_cache():
    """Drop cached catalogs; body ``{"class": "image"|"app"}`` limits it to one."""
    error_response = require_admin()
    if error_response:
        return error_response

    payload = request.get_json(silent=True) or {}
    catalog_class = payload.get("class")

    try:
        removed = catalog_service.invalidate(catalog_class)
    except InputValidationError as exc:
        return jsonify(error=exc.user_message), 400

    current_app.logger.info("Catalog cache invalidated: %s", ", ".join(removed) or "nothing cached")
    return jsonify(invalidated=removed), 200
