"""Telegram webhook endpoint and webhook registration."""

from __future__ import annotations

import os
from typing import Any, Dict

from flask import Blueprint, current_app, jsonify, request

from dobot.errors import BotError
from dobot.services import catalog_service, telegram_service, wizard_service
from dobot.services.wizard_service import Conversation
from dobot.utils.auth import is_operator_allowed, webhook_secret_valid

bp = Blueprint("webhook", __name__)

ACCESS_DENIED = "⛔ Access denied. You are not authorized to use this bot."

HELP_TEXT = (
    "👋 Welcome to the DigitalOcean Droplet Manager!\n\n"
    "Commands:\n"
    "/setapi - Set your DigitalOcean API token\n"
    "/droplets - List your droplets\n"
    "/create - Create a new droplet\n"
    "/cancel - Cancel the current wizard\n"
    "/refreshcache - Reload the image catalog"
)


def _handle_command(conv: Conversation, command: str) -> bool:
    """Run a slash command; return False when the text is not a known command."""
    if command == "/start":
        telegram_service.send_message(conv.chat_id, HELP_TEXT)
    elif command == "/setapi":
        wizard_service.start_credential_entry(conv)
    elif command == "/droplets":
        wizard_service.show_droplets(conv)
    elif command == "/create":
        wizard_service.start_create(conv)
    elif command == "/cancel":
        wizard_service.cancel(conv)
    elif command == "/refreshcache":
        removed = catalog_service.invalidate()
        telegram_service.send_message(
            conv.chat_id,
            f"🔄 Image catalog cache cleared ({len(removed)} entries). "
            "It will be reloaded on next use.",
        )
    else:
        return False
    return True


def _handle_message(message: Dict[str, Any]) -> None:
    sender = message.get("from") or {}
    conv = Conversation(operator_id=sender.get("id"), chat_id=message["chat"]["id"])
    text = (message.get("text") or "").strip()
    if not text:
        return

    if not is_operator_allowed(conv.operator_id):
        telegram_service.send_message(conv.chat_id, ACCESS_DENIED)
        return

    try:
        if text.startswith("/"):
            command = text.split()[0].split("@")[0].lower()
            if not _handle_command(conv, command):
                telegram_service.send_message(conv.chat_id, HELP_TEXT)
            return
        wizard_service.handle_text(conv, text, user_message_id=message.get("message_id"))
    except BotError as exc:
        wizard_service.report(conv, exc.user_message)


def _handle_callback_query(callback_query: Dict[str, Any]) -> None:
    telegram_service.answer_callback(callback_query["id"])

    sender = callback_query.get("from") or {}
    message = callback_query.get("message") or {}
    conv = Conversation(
        operator_id=sender.get("id"),
        chat_id=(message.get("chat") or {}).get("id"),
        message_id=message.get("message_id"),
    )
    if conv.chat_id is None:
        return

    if not is_operator_allowed(conv.operator_id):
        telegram_service.send_message(conv.chat_id, ACCESS_DENIED)
        return

    try:
        wizard_service.handle_callback(conv, callback_query.get("data") or "")
    except BotError as exc:
        wizard_service.report(conv, exc.user_message)


@bp.post("/webhook")
def webhook():
    """Receive one Telegram update. Always acknowledges so Telegram does not redeliver."""
    if not webhook_secret_valid():
        current_app.logger.warning("Webhook call with a bad secret token from %s", request.remote_addr)
        return jsonify(error="Forbidden"), 403

    update = request.get_json(silent=True) or {}

    try:
        if "message" in update:
            _handle_message(update["message"])
        elif "callback_query" in update:
            _handle_callback_query(update["callback_query"])
    except Exception:
        current_app.logger.exception("Failed to handle update %s", update.get("update_id"))

    return jsonify(ok=True), 200


@bp.get("/registerWebhook")
def register_webhook():
    """Point the Telegram bot at this deployment's /webhook URL."""
    webhook_url = request.url_root.rstrip("/") + "/webhook"
    result = telegram_service.set_webhook(webhook_url, os.getenv("TELEGRAM_WEBHOOK_SECRET") or None)

    if result.get("ok"):
        current_app.logger.info("Registered webhook at %s", webhook_url)
        return jsonify(ok=True, url=webhook_url), 200
    return jsonify(ok=False, url=webhook_url, error=result.get("description")), 502
