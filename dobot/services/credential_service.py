"""Per-operator DigitalOcean API tokens."""

from __future__ import annotations

import logging
from typing import Optional

from dobot.errors import CredentialInvalidError, CredentialMissingError
from dobot.services import confirmation_service, digitalocean_service, store_service

_LOGGER = logging.getLogger(__name__)


def get_credential(operator_id: int) -> Optional[str]:
    return store_service.get(store_service.CREDENTIAL_NAMESPACE, str(operator_id))


def require_credential(operator_id: int) -> str:
    """Return the operator's token or raise CredentialMissingError."""
    api_token = get_credential(operator_id)
    if not api_token:
        raise CredentialMissingError()
    return api_token


def clear_operator_state(operator_id: int) -> int:
    """Delete all sessions, callback tokens and pending mutations of an operator."""
    prefix = f"{operator_id}:"
    removed = store_service.delete_prefix(store_service.SESSION_NAMESPACE, prefix)
    removed += store_service.delete_prefix(store_service.TOKEN_NAMESPACE, prefix)
    removed += confirmation_service.discard_for_owner(operator_id)
    return removed


def save_credential(operator_id: int, api_token: str) -> None:
    """
    Validate and store a new API token for an operator.

    Everything that could still refer to the previous token is removed first,
    so a crash in between leaves the old token with no sessions rather than
    sessions pointing at the new one.

    Raises:
        CredentialInvalidError: The provider rejected the token
    """
    api_token = (api_token or "").strip()
    if not api_token or not digitalocean_service.validate_token(api_token):
        raise CredentialInvalidError()

    removed = clear_operator_state(operator_id)
    store_service.put(store_service.CREDENTIAL_NAMESPACE, str(operator_id), api_token)
    _LOGGER.info("Stored new API token for operator %s (cleared %d records)", operator_id, removed)
