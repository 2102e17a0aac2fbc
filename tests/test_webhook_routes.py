"""Tests for the webhook and admin HTTP endpoints."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from conftest import CHAT_ID, OPERATOR_ID  # noqa: E402

from dobot.errors import CredentialMissingError  # noqa: E402
from dobot.main import create_app  # noqa: E402
from dobot.routes.webhook import ACCESS_DENIED  # noqa: E402
from dobot.services import store_service, wizard_service  # noqa: E402
from dobot.utils import callback_codec  # noqa: E402


@pytest.fixture
def client(telegram):
    app = create_app()
    app.config["TESTING"] = True
    return app.test_client()


def message_update(text, user_id=OPERATOR_ID):
    return {
        "update_id": 1,
        "message": {
            "message_id": 10,
            "from": {"id": user_id},
            "chat": {"id": CHAT_ID},
            "text": text,
        },
    }


def callback_update(data, user_id=OPERATOR_ID):
    return {
        "update_id": 2,
        "callback_query": {
            "id": "cbq-1",
            "from": {"id": user_id},
            "message": {"message_id": 20, "chat": {"id": CHAT_ID}},
            "data": data,
        },
    }


def test_start_sends_help(client, telegram):
    response = client.post("/webhook", json=message_update("/start"))

    assert response.status_code == 200
    assert "/create" in telegram.texts()[-1]


def test_unknown_user_is_denied(client, telegram, digitalocean):
    response = client.post("/webhook", json=message_update("/create", user_id=999))

    assert response.status_code == 200
    assert telegram.texts() == [ACCESS_DENIED]


def test_bad_secret_is_forbidden(client, telegram, monkeypatch):
    monkeypatch.setenv("TELEGRAM_WEBHOOK_SECRET", "s3cret")

    rejected = client.post("/webhook", json=message_update("/start"))
    accepted = client.post(
        "/webhook",
        json=message_update("/start"),
        headers={"X-Telegram-Bot-Api-Secret-Token": "s3cret"},
    )

    assert rejected.status_code == 403
    assert accepted.status_code == 200
    assert len(telegram.texts()) == 1


def test_bot_errors_are_reported_to_chat(client, telegram, digitalocean):
    response = client.post("/webhook", json=message_update("/droplets"))

    assert response.status_code == 200
    assert telegram.texts()[-1] == CredentialMissingError.user_message


def test_unexpected_errors_do_not_escape(client, telegram, monkeypatch):
    def explode(conv):
        raise RuntimeError("boom")

    monkeypatch.setattr(wizard_service, "start_create", explode)

    response = client.post("/webhook", json=message_update("/create"))

    assert response.status_code == 200
    assert response.get_json() == {"ok": True}


def test_callback_is_answered_and_dispatched(client, telegram, operator):
    response = client.post("/webhook", json=callback_update(callback_codec.encode("ls")))

    assert response.status_code == 200
    assert telegram.calls[0] == {"method": "answerCallbackQuery", "callback_query_id": "cbq-1"}
    assert telegram.calls[-1]["method"] == "editMessageText"
    assert telegram.calls[-1]["text"] == "Your Droplets:"


def test_stale_callback_reports_expiry(client, telegram, operator):
    client.post("/webhook", json=callback_update(callback_codec.encode("rg", ["nyc1"])))

    assert telegram.texts()[-1].startswith("⌛")


def test_create_command_starts_wizard(client, telegram, operator):
    client.post("/webhook", json=message_update("/create@dobot"))

    session = store_service.get(store_service.SESSION_NAMESPACE, f"{OPERATOR_ID}:{CHAT_ID}")
    assert session["step"] == "select_region"


def test_register_webhook(client, telegram, monkeypatch):
    monkeypatch.setenv("TELEGRAM_WEBHOOK_SECRET", "s3cret")

    response = client.get("/registerWebhook")

    assert response.status_code == 200
    assert response.get_json()["url"] == "http://localhost/webhook"
    assert telegram.calls[-1]["method"] == "setWebhook"
    assert telegram.calls[-1]["secret_token"] == "s3cret"


def test_admin_stats_require_token(client, monkeypatch, operator):
    monkeypatch.setenv("ADMIN_TOKEN", "admin-secret")

    assert client.get("/api/admin/stats").status_code == 401

    response = client.get("/api/admin/stats", headers={"Authorization": "Bearer admin-secret"})
    assert response.status_code == 200
    assert response.get_json()["credentials"] == 1
    assert response.get_json()["backend"] == "mongodb"


def test_admin_cache_invalidate(client, monkeypatch):
    monkeypatch.setenv("ADMIN_TOKEN", "admin-secret")
    headers = {"Authorization": "Bearer admin-secret"}

    response = client.post("/api/admin/cache/invalidate", json={"class": "app"}, headers=headers)
    assert response.get_json() == {"invalidated": ["app"]}

    response = client.post("/api/admin/cache/invalidate", json={"class": "snapshot"}, headers=headers)
    assert response.status_code == 400
