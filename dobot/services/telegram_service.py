"""Outbound calls to the Telegram Bot API."""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional

import requests

_LOGGER = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.telegram.org"


def _method_url(method: str) -> str:
    base = os.getenv("TELEGRAM_API_URL", DEFAULT_API_URL).rstrip("/")
    bot_token = os.getenv("TELEGRAM_BOT_TOKEN")
    if not bot_token:
        raise RuntimeError("TELEGRAM_BOT_TOKEN environment variable is not set")
    return f"{base}/bot{bot_token}/{method}"


def _call(method: str, body: Dict[str, Any]) -> Dict[str, Any]:
    """POST one Bot API method; transport failures are logged, not raised."""
    try:
        response = requests.post(
            _method_url(method),
            json=body,
            timeout=float(os.getenv("HTTP_TIMEOUT_SECONDS", "15")),
        )
        result = response.json()
    except (requests.RequestException, ValueError) as exc:
        _LOGGER.warning("Telegram %s failed: %s", method, exc)
        return {}

    if not result.get("ok"):
        _LOGGER.warning("Telegram %s rejected: %s", method, result.get("description"))
    return result


def send_message(chat_id: int, text: str, reply_markup: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"chat_id": chat_id, "text": text}
    if reply_markup:
        body["reply_markup"] = reply_markup
    return _call("sendMessage", body)


def edit_message(
    chat_id: int,
    message_id: int,
    text: str,
    reply_markup: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    body: Dict[str, Any] = {"chat_id": chat_id, "message_id": message_id, "text": text}
    if reply_markup:
        body["reply_markup"] = reply_markup
    return _call("editMessageText", body)


def delete_message(chat_id: int, message_id: int) -> Dict[str, Any]:
    return _call("deleteMessage", {"chat_id": chat_id, "message_id": message_id})


def answer_callback(callback_query_id: str) -> Dict[str, Any]:
    """Clear the loading state on the pressed button."""
    return _call("answerCallbackQuery", {"callback_query_id": callback_query_id})


def set_webhook(url: str, secret_token: Optional[str] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"url": url, "allowed_updates": ["message", "callback_query"]}
    if secret_token:
        body["secret_token"] = secret_token
    return _call("setWebhook", body)
