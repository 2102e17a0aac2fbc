"""Single-use confirmation records for create, rebuild and delete calls."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from dobot.services import store_service
from dobot.utils.auth import generate_key

_LOGGER = logging.getLogger(__name__)

OPERATIONS = ("create", "rebuild", "delete")


def _pending_key(owner: int, key: str) -> str:
    return f"{owner}:{key}"


def propose(operation: str, params: Dict[str, Any], owner: int) -> str:
    """
    Store a fully resolved mutation and return the key the confirm button carries.

    Args:
        operation: One of create, rebuild or delete
        params: Everything the remote call needs
        owner: The operator allowed to confirm it

    Returns:
        A short random key valid for five minutes
    """
    if operation not in OPERATIONS:
        raise ValueError(f"Unknown operation: {operation}")

    key = generate_key()
    store_service.put(
        store_service.PENDING_NAMESPACE,
        _pending_key(owner, key),
        {"operation": operation, "params": params, "owner": owner},
        ttl=store_service.TOKEN_TTL_SECONDS,
    )
    return key


def consume(key: str, owner: int) -> Optional[Dict[str, Any]]:
    """
    Take a pending mutation out of the store.

    The record is deleted before anything else happens, so only the first of
    two presses of the same button gets the record; the second gets None.
    """
    record = store_service.pop(store_service.PENDING_NAMESPACE, _pending_key(owner, key))
    if record is None:
        return None
    if record.get("owner") != owner:
        _LOGGER.warning("Pending mutation %s presented by a non-owner", key)
        return None
    return record


def discard_for_owner(owner: int) -> int:
    """Remove every pending mutation of an operator."""
    return store_service.delete_prefix(store_service.PENDING_NAMESPACE, f"{owner}:")
