"""Authentication helpers for operators, webhook delivery and admin access."""

from __future__ import annotations

import hmac
import os
import secrets
import time
from typing import Any, List, Optional

from flask import Flask, jsonify, request


def now_seconds() -> int:
    """Return the current UNIX timestamp in seconds."""
    return int(time.time())


def now_millis() -> int:
    """Return the current UNIX timestamp in milliseconds."""
    return int(time.time() * 1000)


def generate_key(length: int = 8) -> str:
    """Return a short random url-safe key for store indirection."""
    return secrets.token_urlsafe(length)[:length]


def allowed_operator_ids() -> List[int]:
    """Parse the comma separated ALLOWED_USER_IDS whitelist."""
    raw = os.getenv("ALLOWED_USER_IDS", "")
    ids: List[int] = []
    for part in raw.split(","):
        part = part.strip()
        if part.isdigit():
            ids.append(int(part))
    return ids


def is_operator_allowed(user_id: Any) -> bool:
    """Return True when the Telegram user id is on the whitelist."""
    try:
        return int(user_id) in allowed_operator_ids()
    except (TypeError, ValueError):
        return False


def webhook_secret_valid() -> bool:
    """Check the secret token Telegram echoes on every webhook delivery."""
    expected = os.getenv("TELEGRAM_WEBHOOK_SECRET", "")
    if not expected:
        return True
    provided = request.headers.get("X-Telegram-Bot-Api-Secret-Token", "")
    return hmac.compare_digest(provided, expected)


def require_admin() -> Optional[Any]:
    """Validate the admin Bearer token; return an error response when it fails."""
    expected = os.getenv("ADMIN_TOKEN", "")
    if not expected:
        return jsonify(error="Admin API is disabled."), 403

    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        return jsonify(error="Missing authorization token."), 401

    token = auth_header[7:].strip()
    if not hmac.compare_digest(token, expected):
        return jsonify(error="Invalid authorization token."), 401

    return None


def register_store_cleanup(app: Flask) -> None:
    """Attach a before-request handler that sweeps expired store records."""
    from dobot.services import store_service

    @app.before_request  # pragma: no cover - trivial wiring
    def _cleanup_state() -> None:
        try:
            store_service.cleanup_expired()
        except Exception:
            app.logger.warning("Expired record sweep failed", exc_info=True)
