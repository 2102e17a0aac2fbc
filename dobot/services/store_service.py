"""Namespaced key/value store with per-key expiry.

Records live in the ``store_entries`` MongoDB collection when
``ENABLE_MONGODB=true`` and in the process-local dictionary from
``dobot.storage`` otherwise. Every read filters on ``expires_at`` so an
expired key is unreadable even before ``cleanup_expired`` has swept it.

Each record carries a ``version`` stamp that increases on every write.
Passing ``expected_version`` to :func:`put` turns the write into a
compare-and-swap: it fails with ``StaleSessionError`` when another writer got
there first.
"""

from __future__ import annotations

import copy
import re
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from pymongo import ASCENDING, ReturnDocument
from pymongo.collection import Collection

from dobot import database
from dobot.errors import StaleSessionError
from dobot.storage import store_entries, store_lock
from dobot.utils.auth import now_seconds

CREDENTIAL_NAMESPACE = "credential"
SESSION_NAMESPACE = "session"
TOKEN_NAMESPACE = "token"
PENDING_NAMESPACE = "pending"
CACHE_NAMESPACE = "cache"

SESSION_TTL_SECONDS = 10 * 60
TOKEN_TTL_SECONDS = 5 * 60
CACHE_TTL_SECONDS = 24 * 60 * 60


def _collection() -> Collection:
    return database.get_database()["store_entries"]


def _is_expired(expires_at: Optional[int], current: int) -> bool:
    return expires_at is not None and expires_at <= current


def _live_filter(current: int) -> Dict[str, Any]:
    return {"$or": [{"expires_at": None}, {"expires_at": {"$gt": current}}]}


def get_versioned(namespace: str, key: str) -> Tuple[Any, int]:
    """Return ``(value, version)``; ``(None, 0)`` when absent or expired."""
    current = now_seconds()

    if database.mongo_enabled():
        document = _collection().find_one({"namespace": namespace, "key": key})
        if not document or _is_expired(document.get("expires_at"), current):
            return None, 0
        return document["value"], int(document.get("version", 1))

    with store_lock:
        record = store_entries.get((namespace, key))
        if record is None:
            return None, 0
        if _is_expired(record["expires_at"], current):
            store_entries.pop((namespace, key), None)
            return None, 0
        return copy.deepcopy(record["value"]), record["version"]


def get(namespace: str, key: str) -> Any:
    """Return the stored value or None."""
    value, _ = get_versioned(namespace, key)
    return value


def put(
    namespace: str,
    key: str,
    value: Any,
    ttl: Optional[int] = None,
    expected_version: Optional[int] = None,
) -> int:
    """
    Store a value and return its new version stamp.

    Args:
        namespace: Logical area of the store (session, token, cache, ...)
        key: Key inside the namespace
        value: JSON-compatible value
        ttl: Seconds until the key becomes unreadable; None never expires
        expected_version: When set, only write if the live record still
            carries this version

    Raises:
        StaleSessionError: The record changed or expired since it was read
    """
    current = now_seconds()
    expires_at = current + ttl if ttl else None

    if database.mongo_enabled():
        query: Dict[str, Any] = {"namespace": namespace, "key": key}
        update = {
            "$set": {"value": value, "expires_at": expires_at, "updated_at": datetime.utcnow()},
            "$inc": {"version": 1},
            "$setOnInsert": {"created_at": datetime.utcnow()},
        }
        if expected_version is None:
            document = _collection().find_one_and_update(
                query, update, upsert=True, return_document=ReturnDocument.AFTER
            )
        elif expected_version == 0:
            # Only an absent or expired record may be replaced.
            _collection().delete_one(
                {**query, "expires_at": {"$ne": None, "$lte": current}}
            )
            result = _collection().update_one(
                query,
                {"$setOnInsert": {
                    "value": value,
                    "expires_at": expires_at,
                    "version": 1,
                    "created_at": datetime.utcnow(),
                    "updated_at": datetime.utcnow(),
                }},
                upsert=True,
            )
            if result.upserted_id is None:
                raise StaleSessionError()
            return 1
        else:
            query["version"] = expected_version
            query.update(_live_filter(current))
            document = _collection().find_one_and_update(
                query, update, return_document=ReturnDocument.AFTER
            )
            if document is None:
                raise StaleSessionError()
        return int(document["version"])

    with store_lock:
        record = store_entries.get((namespace, key))
        live_version = 0
        if record is not None and not _is_expired(record["expires_at"], current):
            live_version = record["version"]
        if expected_version is not None and live_version != expected_version:
            raise StaleSessionError()
        version = (record["version"] if record else 0) + 1
        store_entries[(namespace, key)] = {
            "value": copy.deepcopy(value),
            "version": version,
            "expires_at": expires_at,
        }
        return version


def pop(namespace: str, key: str) -> Any:
    """Atomically read and delete a key. Returns None when absent or expired."""
    current = now_seconds()

    if database.mongo_enabled():
        document = _collection().find_one_and_delete({"namespace": namespace, "key": key})
        if not document or _is_expired(document.get("expires_at"), current):
            return None
        return document["value"]

    with store_lock:
        record = store_entries.pop((namespace, key), None)
    if record is None or _is_expired(record["expires_at"], current):
        return None
    return record["value"]


def delete(namespace: str, key: str) -> None:
    """Delete a key. Deleting an absent key is not an error."""
    if database.mongo_enabled():
        _collection().delete_one({"namespace": namespace, "key": key})
        return

    with store_lock:
        store_entries.pop((namespace, key), None)


def list_keys(namespace: str, prefix: str = "") -> List[str]:
    """Return a snapshot of the live keys in a namespace that start with prefix."""
    current = now_seconds()

    if database.mongo_enabled():
        query: Dict[str, Any] = {"namespace": namespace}
        if prefix:
            query["key"] = {"$regex": "^" + re.escape(prefix)}
        query.update(_live_filter(current))
        documents = _collection().find(query, {"key": 1, "_id": 0}).sort("key", ASCENDING)
        return [document["key"] for document in documents]

    with store_lock:
        return sorted(
            key
            for (record_namespace, key), record in store_entries.items()
            if record_namespace == namespace
            and key.startswith(prefix)
            and not _is_expired(record["expires_at"], current)
        )


def delete_prefix(namespace: str, prefix: str) -> int:
    """Delete every key in a namespace starting with prefix; return how many went."""
    if database.mongo_enabled():
        result = _collection().delete_many(
            {"namespace": namespace, "key": {"$regex": "^" + re.escape(prefix)}}
        )
        return result.deleted_count

    with store_lock:
        doomed = [
            entry
            for entry in store_entries
            if entry[0] == namespace and entry[1].startswith(prefix)
        ]
        for entry in doomed:
            store_entries.pop(entry, None)
    return len(doomed)


def count_by_namespace() -> Dict[str, int]:
    """Return the number of live records per namespace."""
    current = now_seconds()

    if database.mongo_enabled():
        pipeline = [
            {"$match": _live_filter(current)},
            {"$group": {"_id": "$namespace", "count": {"$sum": 1}}},
        ]
        return {row["_id"]: row["count"] for row in _collection().aggregate(pipeline)}

    counts: Dict[str, int] = {}
    with store_lock:
        for (namespace, _), record in store_entries.items():
            if not _is_expired(record["expires_at"], current):
                counts[namespace] = counts.get(namespace, 0) + 1
    return counts


def cleanup_expired() -> int:
    """Remove expired records; return how many were deleted."""
    current = now_seconds()

    if database.mongo_enabled():
        result = _collection().delete_many({"expires_at": {"$ne": None, "$lte": current}})
        return result.deleted_count

    with store_lock:
        doomed = [
            entry
            for entry, record in store_entries.items()
            if _is_expired(record["expires_at"], current)
        ]
        for entry in doomed:
            store_entries.pop(entry, None)
    return len(doomed)


def create_indexes():
    """Create the lookup and sweep indexes for the store collection."""
    collection = _collection()
    collection.create_index([("namespace", 1), ("key", 1)], unique=True)
    collection.create_index("expires_at")
