"""Tests for the expiring key/value store on both backends."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from dobot import storage  # noqa: E402
from dobot.errors import StaleSessionError  # noqa: E402
from dobot.services import store_service  # noqa: E402


@pytest.fixture(params=["mongodb", "memory"])
def backend(request, monkeypatch):
    if request.param == "memory":
        monkeypatch.setenv("ENABLE_MONGODB", "false")
        storage.store_entries.clear()
        yield request.param
        storage.store_entries.clear()
    else:
        yield request.param


def test_value_expires_after_ttl(backend, clock):
    store_service.put("session", "1:1", {"step": "select_region"}, ttl=600)

    clock.advance(599)
    assert store_service.get("session", "1:1") == {"step": "select_region"}

    clock.advance(1)
    assert store_service.get("session", "1:1") is None
    assert store_service.list_keys("session") == []


def test_value_without_ttl_never_expires(backend, clock):
    store_service.put("credential", "42", "dop_v1_abc")
    clock.advance(10 * 365 * 24 * 60 * 60)
    assert store_service.get("credential", "42") == "dop_v1_abc"


def test_delete_is_idempotent(backend):
    store_service.put("token", "1:abc", {"step": "rg"}, ttl=300)
    store_service.delete("token", "1:abc")
    store_service.delete("token", "1:abc")
    assert store_service.get("token", "1:abc") is None


def test_list_keys_and_delete_prefix(backend, clock):
    store_service.put("session", "1:10", {}, ttl=600)
    store_service.put("session", "1:11", {}, ttl=600)
    store_service.put("session", "12:10", {}, ttl=600)
    store_service.put("token", "1:x", {}, ttl=300)

    assert store_service.list_keys("session", "1:") == ["1:10", "1:11"]

    assert store_service.delete_prefix("session", "1:") == 2
    assert store_service.list_keys("session") == ["12:10"]
    assert store_service.get("token", "1:x") == {}


def test_versioned_put_rejects_stale_writer(backend):
    store_service.put("session", "1:1", {"step": "select_region"}, ttl=600)
    value, version = store_service.get_versioned("session", "1:1")

    store_service.put("session", "1:1", {"step": "select_class"}, ttl=600, expected_version=version)

    with pytest.raises(StaleSessionError):
        store_service.put("session", "1:1", {"step": "select_size"}, ttl=600, expected_version=version)
    assert store_service.get("session", "1:1") == {"step": "select_class"}


def test_versioned_put_fails_once_record_expired(backend, clock):
    version = store_service.put("session", "1:1", {"step": "search"}, ttl=600)
    clock.advance(601)

    with pytest.raises(StaleSessionError):
        store_service.put("session", "1:1", {"step": "select_item"}, ttl=600, expected_version=version)


def test_expected_version_zero_means_create_only(backend, clock):
    assert store_service.put("session", "1:1", {"step": "a"}, ttl=60, expected_version=0) == 1

    with pytest.raises(StaleSessionError):
        store_service.put("session", "1:1", {"step": "b"}, ttl=60, expected_version=0)

    clock.advance(61)
    store_service.put("session", "1:1", {"step": "c"}, ttl=60, expected_version=0)
    assert store_service.get("session", "1:1") == {"step": "c"}


def test_pop_returns_value_only_once(backend):
    store_service.put("pending", "1:k", {"operation": "delete"}, ttl=300)

    assert store_service.pop("pending", "1:k") == {"operation": "delete"}
    assert store_service.pop("pending", "1:k") is None


def test_count_and_cleanup(backend, clock):
    store_service.put("session", "1:1", {}, ttl=60)
    store_service.put("session", "2:2", {}, ttl=600)
    store_service.put("credential", "1", "token")

    clock.advance(120)

    assert store_service.count_by_namespace() == {"session": 1, "credential": 1}
    assert store_service.cleanup_expired() == 1


def test_mongo_records_carry_expiry(mongo_db, clock):
    store_service.put("cache", "image", [{"ref": "ubuntu"}], ttl=store_service.CACHE_TTL_SECONDS)

    document = mongo_db.store_entries.find_one({"namespace": "cache", "key": "image"})
    assert document["expires_at"] == clock.now + store_service.CACHE_TTL_SECONDS
    assert document["version"] == 1
